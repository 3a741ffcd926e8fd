"""Triggers that drive the migration engine from outside the app lifecycle."""

from .scheduler import MigrationScheduler

__all__ = ["MigrationScheduler"]
