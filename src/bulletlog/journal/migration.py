"""Daily migration engine.

Once per calendar day:

1. Pending tasks from earlier days are forwarded to today. The original is
   retired with ``has_migrated`` and a fresh pending copy is dated today.
2. Future entries whose scheduled day has arrived (today inclusive) are
   promoted: a copy lands in the daily log on the scheduled day and the
   future entry stays in the Future Log flagged as migrated.

Both steps share one session and commit together. When the engine has a
collection registry, the automatic collections are ensured in that same
session, so a bucket created on first launch or on Jan 1 commits with the
batch. The day checkpoint only
advances after that commit succeeds, so a failed run is retried whole on
the next trigger.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from loguru import logger

from bulletlog.core.exceptions import SaveFailure, ValidationFailure

from .checkpoint import CheckpointStore
from .dates import end_of_day, start_of_day
from .models import Entry, EntryKind, TaskStatus
from .registry import CollectionRegistry
from .store import EntryQuery, RecordStore, StoreSession
from .transitions import DEFAULT_FORWARD_MARKER, forward_task, promote_future_entry


@dataclass
class DailyMigrationResult:
    """What one committed daily run produced."""

    day: date
    forwarded: list[Entry] = field(default_factory=list)
    promoted: list[Entry] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)


def stale_task_query(today: datetime) -> EntryQuery:
    """Pending, never-forwarded daily-log tasks dated before *today*."""
    return EntryQuery(
        kind=EntryKind.TASK,
        status=TaskStatus.PENDING,
        date_before=start_of_day(today),
        has_migrated=False,
        is_future_entry=False,
        is_special_entry=False,
        archived=False,
    )


def due_future_query(now: datetime) -> EntryQuery:
    """Unpromoted future entries scheduled on or before today."""
    return EntryQuery(
        is_future_entry=True,
        scheduled_until=end_of_day(now),
        has_migrated=False,
    )


class DailyMigrationEngine:
    """Forwards stale tasks and promotes due future entries, once per day."""

    def __init__(
        self,
        store: RecordStore,
        checkpoints: CheckpointStore,
        *,
        forward_marker: str = DEFAULT_FORWARD_MARKER,
        registry: CollectionRegistry | None = None,
    ) -> None:
        self.store = store
        self.checkpoints = checkpoints
        self.forward_marker = forward_marker
        self.registry = registry

    def is_due(self, now: datetime) -> bool:
        return self.checkpoints.last_migration_date() != now.date()

    def run(self, now: datetime) -> DailyMigrationResult | None:
        """Run today's migration. Returns None when today already ran.

        Raises:
            QueryFailure: the store could not be read.
            SaveFailure: the batch could not be committed. Nothing was written
                and the checkpoint was not advanced.
        """
        if not self.is_due(now):
            logger.debug(f"Daily migration already ran for {now.date().isoformat()}")
            return None

        result = DailyMigrationResult(day=now.date())
        with self.store.session() as session:
            if self.registry is not None:
                self.registry.ensure_automatic_collections(session, now)
            self._forward_tasks(session, now, result)
            self._promote_future_entries(session, now, result)
            try:
                session.commit()
            except SaveFailure:
                logger.error(
                    f"Daily migration for {result.day} failed to commit "
                    f"({len(result.forwarded)} forwards, {len(result.promoted)} promotions discarded)"
                )
                raise

        self.checkpoints.set_last_migration_date(result.day)
        logger.info(
            f"Daily migration {result.day}: forwarded {len(result.forwarded)}, "
            f"promoted {len(result.promoted)}, skipped {len(result.skipped)}"
        )
        return result

    def _forward_tasks(self, session: StoreSession, now: datetime, result: DailyMigrationResult) -> None:
        for task in session.query(stale_task_query(now), order_by="date"):
            try:
                retired, forwarded = forward_task(task, now, marker=self.forward_marker, now=now)
            except ValidationFailure as e:
                logger.warning(f"Skipping task during forward: {e}")
                result.skipped.append(task.id)
                continue
            session.update(retired)
            session.add(forwarded)
            result.forwarded.append(forwarded)

    def _promote_future_entries(self, session: StoreSession, now: datetime, result: DailyMigrationResult) -> None:
        for entry in session.query(due_future_query(now), order_by="scheduled_date"):
            try:
                retired, daily = promote_future_entry(entry, now=now)
            except ValidationFailure as e:
                logger.warning(f"Skipping future entry during promotion: {e}")
                result.skipped.append(entry.id)
                continue
            session.update(retired)
            session.add(daily)
            result.promoted.append(daily)
