"""MigrationService — the composition root the app talks to.

Wires the daily engine, the month-end archiver and the old-task detector
around one record store and one checkpoint store, and adds:

- a single-flight lock, so a trigger arriving while a run is in progress
  is turned away instead of duplicating work;
- event notifications (see ``bulletlog.core.events``) for front ends;
- the two user remediations for old tasks, and entry creation with
  ``@date`` parsing.

Store failures are raised to the caller as ``QueryFailure`` /
``SaveFailure``; what to do about them (log, retry on next trigger,
surface) is the caller's policy.
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from bulletlog.core.events import (
    ARCHIVE_COMPLETE,
    MIGRATION_COMPLETE,
    MIGRATION_FAILED,
    MIGRATION_STARTED,
    OLD_TASKS_FOUND,
    Event,
    EventBus,
)
from bulletlog.core.exceptions import MigrationError, ValidationFailure

from .archival import ArchiveResult, MonthEndArchiver
from .checkpoint import CheckpointStore, YamlCheckpointStore
from .dates import start_of_day
from .migration import DailyMigrationEngine, DailyMigrationResult
from .models import Entry, EntryKind, Priority, TaskStatus
from .old_tasks import DEFAULT_OLD_TASK_DAYS, OldTaskDetector
from .parser import parse_future_date
from .registry import CollectionRegistry
from .store import RecordStore
from .transitions import DEFAULT_FORWARD_MARKER, defer_to_future_log, reschedule_task
from .yaml_store import YamlRecordStore

_SOURCE = "migration"


@dataclass
class MigrationReport:
    """Outcome of one trigger."""

    ran: bool = False
    in_progress: bool = False
    daily: DailyMigrationResult | None = None
    archive: ArchiveResult | None = None
    old_tasks: list[Entry] = field(default_factory=list)

    @property
    def forwarded(self) -> list[Entry]:
        return self.daily.forwarded if self.daily else []

    @property
    def promoted(self) -> list[Entry]:
        return self.daily.promoted if self.daily else []

    @property
    def skipped(self) -> list[str]:
        skipped = list(self.daily.skipped) if self.daily else []
        if self.archive:
            skipped.extend(self.archive.skipped)
        return skipped


class MigrationService:
    """Entry point for migration triggers and old-task remediation."""

    def __init__(
        self,
        store: RecordStore,
        checkpoints: CheckpointStore,
        *,
        registry: CollectionRegistry | None = None,
        events: EventBus | None = None,
        old_task_days: int = DEFAULT_OLD_TASK_DAYS,
        forward_marker: str = DEFAULT_FORWARD_MARKER,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.store = store
        self.checkpoints = checkpoints
        self.registry = registry or CollectionRegistry()
        self.events = events or EventBus()
        self.forward_marker = forward_marker
        self._clock = clock
        self._lock = threading.Lock()

        self.daily = DailyMigrationEngine(
            store, checkpoints, forward_marker=forward_marker, registry=self.registry
        )
        self.archiver = MonthEndArchiver(store, checkpoints, self.registry)
        self.detector = OldTaskDetector(store, threshold_days=old_task_days)

    @classmethod
    def from_config(cls, config, events: EventBus | None = None) -> MigrationService:
        """Build a service over the YAML stores named in *config*."""
        settings = config.validated()
        return cls(
            YamlRecordStore(settings.paths.journal_file),
            YamlCheckpointStore(settings.paths.checkpoint_file),
            events=events,
            old_task_days=settings.migration.old_task_days,
            forward_marker=settings.migration.forward_marker,
        )

    # -- Triggers -------------------------------------------------------------

    @property
    def in_progress(self) -> bool:
        return self._lock.locked()

    def on_app_active(self, now: datetime | None = None) -> MigrationReport:
        """The app became active: make sure automatic collections exist, then migrate."""
        return self._single_flight(now or self._clock(), bootstrap=True)

    def run_daily_migration(self, now: datetime | None = None) -> MigrationReport:
        """Run the daily migration; on success also archive and detect old tasks.

        A no-op (``ran=False``) if today already ran. If another run holds
        the lock, returns immediately with ``in_progress=True``.

        Raises:
            QueryFailure, SaveFailure: the run failed; checkpoints for the
                failed step were not advanced.
        """
        return self._single_flight(now or self._clock(), bootstrap=False)

    def _single_flight(self, now: datetime, *, bootstrap: bool) -> MigrationReport:
        if not self._lock.acquire(blocking=False):
            logger.info("Migration already in progress; ignoring trigger")
            return MigrationReport(in_progress=True)
        try:
            return self._run(now, bootstrap=bootstrap)
        finally:
            self._lock.release()

    def _run(self, now: datetime, *, bootstrap: bool = False) -> MigrationReport:
        report = MigrationReport()
        if not self.daily.is_due(now):
            logger.debug(f"Nothing to do for {now.date().isoformat()}")
            if bootstrap:
                # the daily batch ensures collections itself when it runs
                with self.store.session() as session:
                    self.registry.ensure_automatic_collections(session, now)
                    session.commit()
            return report

        self._emit(MIGRATION_STARTED, day=now.date().isoformat())
        try:
            report.daily = self.daily.run(now)
            report.ran = report.daily is not None
            if report.ran:
                report.archive = self.archiver.run(now)
                report.old_tasks = self.detector.find(now)
        except MigrationError as e:
            logger.error(f"Migration for {now.date().isoformat()} failed: {e}")
            self._emit(MIGRATION_FAILED, day=now.date().isoformat(), error=str(e))
            raise

        self._emit(
            MIGRATION_COMPLETE,
            day=now.date().isoformat(),
            forwarded=len(report.forwarded),
            promoted=len(report.promoted),
            skipped=report.skipped,
        )
        if report.archive is not None:
            self._emit(
                ARCHIVE_COMPLETE,
                month_key=report.archive.month_key,
                collection=report.archive.collection.name if report.archive.collection else None,
                archived=len(report.archive.archived),
            )
        if report.old_tasks:
            self._emit(OLD_TASKS_FOUND, task_ids=[t.id for t in report.old_tasks])
        return report

    def run_month_end_archival(self, now: datetime | None = None) -> ArchiveResult | None:
        """Run archival on its own (it is normally chained after the daily run)."""
        return self.archiver.run(now or self._clock())

    def list_old_tasks(self, now: datetime | None = None) -> list[Entry]:
        return self.detector.find(now or self._clock())

    def reset_checkpoints(self) -> None:
        self.checkpoints.reset()

    def _emit(self, name: str, **payload) -> None:
        self.events.emit_sync(Event(name=name, payload=payload, source=_SOURCE))

    # -- Remediation ----------------------------------------------------------

    def move_to_future_log(self, tasks: Iterable[Entry | str]) -> list[Entry]:
        """Convert tasks into dateless future entries, in one batch.

        Unknown ids are skipped with a warning.
        """
        moved: list[Entry] = []
        with self.store.session() as session:
            for task in tasks:
                entry_id = task if isinstance(task, str) else task.id
                current = session.get(entry_id)
                if current is None:
                    logger.warning(f"Cannot move missing entry {entry_id} to Future Log")
                    continue
                updated = defer_to_future_log(current, marker=self.forward_marker)
                session.update(updated)
                moved.append(updated)
            session.commit()
        logger.info(f"Moved {len(moved)} task(s) to the Future Log")
        return moved

    def reschedule(self, task: Entry | str, to_date: datetime) -> Entry:
        """Move a task to *to_date* and restart its age clock.

        Raises:
            ValidationFailure: no entry with that id exists.
        """
        entry_id = task if isinstance(task, str) else task.id
        with self.store.session() as session:
            current = session.get(entry_id)
            if current is None:
                raise ValidationFailure(f"Entry not found: {entry_id}", entry_id=entry_id)
            updated = reschedule_task(current, to_date, marker=self.forward_marker)
            session.update(updated)
            session.commit()
        logger.info(f"Rescheduled {entry_id} to {to_date.date().isoformat()}")
        return updated

    # -- Creation -------------------------------------------------------------

    def add_entry(
        self,
        text: str,
        *,
        kind: EntryKind = EntryKind.TASK,
        priority: Priority = Priority.NONE,
        tags: list[str] | None = None,
        now: datetime | None = None,
    ) -> Entry:
        """Create an entry. Text with an ``@date`` mention becomes a Future Log entry."""
        now = now or self._clock()
        content, scheduled = parse_future_date(text, reference=now)
        if not content.strip():
            raise ValidationFailure("Entry text is empty")

        entry = Entry(
            content=content,
            kind=kind,
            status=TaskStatus.PENDING if kind == EntryKind.TASK else None,
            date=start_of_day(now),
            priority=priority,
            tags=list(tags or []),
            created_at=now,
        )
        with self.store.session() as session:
            if scheduled is not None:
                entry.is_future_entry = True
                entry.scheduled_date = scheduled
                entry.collection_id = self.registry.future_log(session).id
            session.add(entry)
            session.commit()
        return entry
