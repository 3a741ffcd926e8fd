"""bulletlog — bullet journal entry migration and archival engine."""

__version__ = "0.1.0"
