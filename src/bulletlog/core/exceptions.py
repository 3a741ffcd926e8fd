"""
bulletlog exception hierarchy.

All bulletlog exceptions inherit from BulletlogError, making it easy for consumers
to catch library-level errors while still distinguishing specific failure modes.
"""


class BulletlogError(Exception):
    """Base exception class for all bulletlog errors."""


class ConfigurationError(BulletlogError):
    """Raised for configuration errors (missing keys, invalid values)."""


class MigrationError(BulletlogError):
    """Base class for failures of a migration or archival invocation."""


class QueryFailure(MigrationError):
    """Raised when the record store cannot be read or queried."""


class SaveFailure(MigrationError):
    """Raised when a batch cannot be committed to the record store."""


class ValidationFailure(MigrationError):
    """Raised for a single malformed record (missing id or required date).

    Engines skip the offending record and keep going; this never aborts a batch.
    """

    def __init__(self, message: str, entry_id: str | None = None):
        super().__init__(message)
        self.entry_id = entry_id
