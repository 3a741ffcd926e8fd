"""Month-end archival engine.

On the first run in a new calendar month, every daily-log entry of the
previous month is snapshotted into that month's archive collection
(``"{year}/{MonthName}"``). Sources stay where they are, so after archival
both the live entry and its archive copy exist.

Entries that are themselves archive copies are never archived again:
copies carry ``archived=True``, and entries sitting in a collection whose
name contains "/" are treated as archived too (journals written before
the flag existed). A source that already has a copy in the target bucket
is skipped, which keeps a re-run idempotent even if the month checkpoint
is lost.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from bulletlog.core.exceptions import SaveFailure, ValidationFailure

from .checkpoint import CheckpointStore, month_key
from .dates import month_bounds, previous_month
from .models import Collection, Entry
from .registry import CollectionRegistry
from .store import EntryQuery, RecordStore, StoreSession
from .transitions import archive_copy


@dataclass
class ArchiveResult:
    """What one committed archival produced."""

    month_key: str
    year: int
    month: int
    collection: Collection | None = None
    archived: list[Entry] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def _is_archive_entry(session: StoreSession, entry: Entry) -> bool:
    if entry.archived:
        return True
    if entry.collection_id:
        collection = session.get_collection(entry.collection_id)
        if collection is not None and "/" in collection.name:
            return True
    return False


class MonthEndArchiver:
    """Copies the previous month's entries into a per-month archive bucket."""

    def __init__(
        self,
        store: RecordStore,
        checkpoints: CheckpointStore,
        registry: CollectionRegistry | None = None,
    ) -> None:
        self.store = store
        self.checkpoints = checkpoints
        self.registry = registry or CollectionRegistry()

    def is_due(self, now: datetime) -> bool:
        return self.checkpoints.last_archived_month() != month_key(now.year, now.month)

    def run(self, now: datetime) -> ArchiveResult | None:
        """Archive the month before *now*'s month. Returns None if this month already ran.

        Raises:
            QueryFailure: the store could not be read.
            SaveFailure: the copies could not be committed; the month
                checkpoint was not advanced.
        """
        target_key = month_key(now.year, now.month)
        if not self.is_due(now):
            logger.debug(f"Month-end archival already ran for {target_key}")
            return None

        year, month = previous_month(now.year, now.month)
        result = ArchiveResult(month_key=target_key, year=year, month=month)
        first, last = month_bounds(year, month)

        with self.store.session() as session:
            entries = session.query(EntryQuery(date_from=first, date_until=last, is_future_entry=False))
            if entries:
                self._archive(session, entries, now, result)
            try:
                session.commit()
            except SaveFailure:
                logger.error(f"Archival of {year}-{month:02d} failed to commit ({len(result.archived)} copies discarded)")
                raise

        self.checkpoints.set_last_archived_month(target_key)
        logger.info(f"Archived {len(result.archived)} entries from {year}-{month:02d} (checkpoint {target_key})")
        return result

    def _archive(self, session: StoreSession, entries: list[Entry], now: datetime, result: ArchiveResult) -> None:
        self.registry.year(session, result.year)
        bucket = self.registry.month_archive(session, result.year, result.month)
        result.collection = bucket

        already_copied = {
            existing.source_id for existing in session.query(EntryQuery(collection_id=bucket.id, archived=True))
        }
        for entry in entries:
            if _is_archive_entry(session, entry) or entry.id in already_copied:
                continue
            try:
                snapshot = archive_copy(entry, bucket, now=now)
            except ValidationFailure as e:
                logger.warning(f"Skipping entry during archival: {e}")
                result.skipped.append(entry.id)
                continue
            session.add(snapshot)
            result.archived.append(snapshot)
