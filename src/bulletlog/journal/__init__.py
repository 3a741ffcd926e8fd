"""Journal entries and the migration/archival engine.

Provides the entry and collection models, the RecordStore protocol with
in-memory and YAML-file backends, checkpoint stores, the collection
registry, and the engines that forward tasks, promote future entries and
archive finished months.
"""

from .archival import ArchiveResult, MonthEndArchiver
from .checkpoint import CheckpointStore, MemoryCheckpointStore, YamlCheckpointStore
from .migration import DailyMigrationEngine, DailyMigrationResult
from .models import Collection, CollectionType, Entry, EntryKind, Priority, SpecialEntryType, TaskStatus
from .old_tasks import OldTaskDetector
from .parser import parse_future_date
from .registry import CollectionRegistry
from .service import MigrationReport, MigrationService
from .store import EntryQuery, MemoryRecordStore, RecordStore, StoreSession
from .yaml_store import YamlRecordStore

__all__ = [
    "ArchiveResult",
    "CheckpointStore",
    "Collection",
    "CollectionRegistry",
    "CollectionType",
    "DailyMigrationEngine",
    "DailyMigrationResult",
    "Entry",
    "EntryKind",
    "EntryQuery",
    "MemoryCheckpointStore",
    "MemoryRecordStore",
    "MigrationReport",
    "MigrationService",
    "MonthEndArchiver",
    "OldTaskDetector",
    "Priority",
    "RecordStore",
    "SpecialEntryType",
    "StoreSession",
    "TaskStatus",
    "YamlCheckpointStore",
    "YamlRecordStore",
    "parse_future_date",
]
