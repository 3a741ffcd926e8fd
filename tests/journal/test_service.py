"""Tests for bulletlog.journal.service — MigrationService."""

import os
from datetime import date, datetime

import pytest

from bulletlog.core.config import Config
from bulletlog.core.events import (
    ARCHIVE_COMPLETE,
    MIGRATION_COMPLETE,
    MIGRATION_FAILED,
    MIGRATION_STARTED,
    OLD_TASKS_FOUND,
    EventBus,
)
from bulletlog.core.exceptions import SaveFailure, ValidationFailure
from bulletlog.journal.checkpoint import MemoryCheckpointStore, YamlCheckpointStore
from bulletlog.journal.models import CollectionType, EntryKind, Priority, TaskStatus
from bulletlog.journal.registry import FUTURE_LOG_NAME, MONTHLY_LOG_NAME
from bulletlog.journal.service import MigrationReport, MigrationService
from bulletlog.journal.store import EntryQuery, MemoryRecordStore
from bulletlog.journal.yaml_store import YamlRecordStore


@pytest.fixture
def events():
    return EventBus()


@pytest.fixture
def received(events):
    names: list[str] = []
    events.on_all(lambda event: names.append(event.name))
    return names


def _get(store, entry_id):
    with store.session() as session:
        return session.get(entry_id)


class TestOnAppActive:
    def test_creates_automatic_collections(self, service, store):
        service.on_app_active(datetime(2025, 1, 2, 8))
        names = [c.name for c in store.all_collections()]
        assert FUTURE_LOG_NAME in names
        assert MONTHLY_LOG_NAME in names
        assert "2025" in names

    def test_full_run(self, service, store, seed, make_task):
        seed(store, make_task(day=datetime(2024, 12, 30)))

        report = service.on_app_active(datetime(2025, 1, 2, 8))

        assert report.ran is True
        assert report.in_progress is False
        assert len(report.forwarded) == 1
        assert report.archive is not None
        assert report.archive.collection.name == "2024/December"

    def test_second_trigger_same_day(self, service, store, seed, make_task):
        seed(store, make_task())
        service.on_app_active(datetime(2025, 1, 2, 8))

        report = service.on_app_active(datetime(2025, 1, 2, 17))

        assert report.ran is False
        assert report.daily is None
        assert report.forwarded == []


class InterruptingStore(MemoryRecordStore):
    """Runs ``on_publish`` once, just before the next commit lands."""

    def __init__(self):
        super().__init__()
        self.on_publish = None

    def _publish(self, entries, collections, base_version):
        callback, self.on_publish = self.on_publish, None
        if callback is not None:
            callback()
        return super()._publish(entries, collections, base_version)


class TestRunDailyMigration:
    def test_in_progress_trigger_returns_immediately(self, service, store, seed, make_task):
        seed(store, make_task())
        service._lock.acquire()
        try:
            assert service.in_progress
            report = service.run_daily_migration(datetime(2025, 1, 2))
        finally:
            service._lock.release()

        assert report.in_progress is True
        assert report.ran is False
        assert _get(store, store.all_entries()[0].id).has_migrated is False

    def test_app_active_during_batch_is_turned_away(self, checkpoints, seed, make_task):
        store = InterruptingStore()
        seed(store, make_task())
        service = MigrationService(store, checkpoints)
        now = datetime(2025, 1, 2, 8)
        overlapping = []
        store.on_publish = lambda: overlapping.append(service.on_app_active(now))

        report = service.on_app_active(now)

        assert overlapping[0].in_progress is True
        assert len(report.forwarded) == 1
        assert any(e.content.startswith("→ ") for e in store.all_entries())
        assert "2025" in [c.name for c in store.all_collections()]

    def test_app_active_bootstraps_when_already_ran(self, service, store, checkpoints):
        checkpoints.set_last_migration_date(date(2025, 1, 2))
        report = service.on_app_active(datetime(2025, 1, 2, 17))
        assert report.ran is False
        assert "2025" in [c.name for c in store.all_collections()]

    def test_lock_released_after_run(self, service):
        service.run_daily_migration(datetime(2025, 1, 2))
        assert not service.in_progress

    def test_archive_follows_daily_run(self, service, checkpoints):
        service.run_daily_migration(datetime(2025, 2, 1))
        assert checkpoints.last_migration_date() == date(2025, 2, 1)
        assert checkpoints.last_archived_month() == "2025-2"

    def test_clock_is_used_when_now_omitted(self, store, checkpoints):
        service = MigrationService(store, checkpoints, clock=lambda: datetime(2025, 4, 2, 9))
        service.run_daily_migration()
        assert checkpoints.last_migration_date() == date(2025, 4, 2)

    def test_seven_day_scenario(self, service, store, seed, make_task):
        task = make_task(day=datetime(2025, 1, 1))
        seed(store, task)

        for day in range(2, 8):
            report = service.run_daily_migration(datetime(2025, 1, day, 8))

        assert _get(store, task.id).has_migrated is True
        [flagged] = report.old_tasks
        assert flagged.date == datetime(2025, 1, 7)
        assert flagged.original_date == datetime(2025, 1, 1)
        assert flagged.content == "→ Buy milk"
        assert service.list_old_tasks(datetime(2025, 1, 7, 8)) == [flagged]


class TestEvents:
    def test_success_events(self, store, checkpoints, events, received, seed, make_task):
        seed(store, make_task(day=datetime(2024, 12, 1)))
        service = MigrationService(store, checkpoints, events=events)

        service.run_daily_migration(datetime(2025, 1, 2))

        assert received == [MIGRATION_STARTED, MIGRATION_COMPLETE, ARCHIVE_COMPLETE, OLD_TASKS_FOUND]

    def test_complete_payload(self, store, checkpoints, events, seed, make_task):
        payloads = []
        events.on(MIGRATION_COMPLETE, lambda event: payloads.append(event.payload))
        seed(store, make_task())
        service = MigrationService(store, checkpoints, events=events)

        service.run_daily_migration(datetime(2025, 1, 2))

        assert payloads == [{"day": "2025-01-02", "forwarded": 1, "promoted": 0, "skipped": []}]

    def test_nothing_emitted_when_already_ran(self, store, events, received):
        checkpoints = MemoryCheckpointStore(last_migration_date=date(2025, 1, 2))
        service = MigrationService(store, checkpoints, events=events)

        service.run_daily_migration(datetime(2025, 1, 2))

        assert received == []

    def test_failure_emits_and_raises(self, failing_store, checkpoints, events, received, seed, make_task):
        failing_store.fail_saves = False
        seed(failing_store, make_task())
        failing_store.fail_saves = True
        service = MigrationService(failing_store, checkpoints, events=events)

        with pytest.raises(SaveFailure):
            service.run_daily_migration(datetime(2025, 1, 2))

        assert received == [MIGRATION_STARTED, MIGRATION_FAILED]
        assert not service.in_progress
        assert checkpoints.last_migration_date() is None


class TestRemediation:
    def test_move_to_future_log(self, service, store, seed, make_task):
        task = make_task("→ Buy milk", day=datetime(2025, 1, 7), original_date=datetime(2025, 1, 1))
        seed(store, task)

        [moved] = service.move_to_future_log([task.id, "missing-id"])

        assert moved.id == task.id
        stored = _get(store, task.id)
        assert stored.is_future_entry is True
        assert stored.scheduled_date is None
        assert stored.original_date is None
        assert stored.content == "Buy milk"
        assert service.list_old_tasks(datetime(2025, 1, 7)) == []

    def test_moved_task_is_not_forwarded(self, service, store, seed, make_task):
        task = make_task(day=datetime(2025, 1, 1))
        seed(store, task)
        service.move_to_future_log([task])

        report = service.run_daily_migration(datetime(2025, 1, 8))

        assert report.forwarded == []
        assert report.promoted == []

    def test_reschedule(self, service, store, seed, make_task):
        task = make_task("→ Buy milk", day=datetime(2025, 1, 7), original_date=datetime(2025, 1, 1))
        seed(store, task)

        updated = service.reschedule(task, datetime(2025, 1, 10))

        assert updated.date == datetime(2025, 1, 10)
        stored = _get(store, task.id)
        assert stored.original_date is None
        assert stored.content == "Buy milk"
        assert service.list_old_tasks(datetime(2025, 1, 12)) == []

    def test_reschedule_missing_raises(self, service):
        with pytest.raises(ValidationFailure, match="not found"):
            service.reschedule("missing-id", datetime(2025, 1, 10))

    def test_reset_checkpoints(self, service, checkpoints):
        service.run_daily_migration(datetime(2025, 1, 2))
        service.reset_checkpoints()
        assert checkpoints.last_migration_date() is None
        assert checkpoints.last_archived_month() is None


class TestAddEntry:
    def test_plain_task(self, service, store):
        entry = service.add_entry("Buy milk", priority=Priority.HIGH, tags=["home"], now=datetime(2025, 1, 2, 15))

        assert entry.date == datetime(2025, 1, 2)
        assert entry.status == TaskStatus.PENDING
        assert entry.is_future_entry is False
        assert entry.priority == Priority.HIGH
        assert _get(store, entry.id).tags == ["home"]

    def test_note_has_no_status(self, service):
        entry = service.add_entry("Idea", kind=EntryKind.NOTE, now=datetime(2025, 1, 2))
        assert entry.status is None

    def test_mention_goes_to_future_log(self, service, store):
        entry = service.add_entry("Renew passport @march-15", now=datetime(2025, 1, 2))

        assert entry.content == "Renew passport"
        assert entry.is_future_entry is True
        assert entry.scheduled_date == datetime(2025, 3, 15)
        with store.session() as session:
            [future_log] = session.collections(collection_type=CollectionType.FUTURE)
        assert entry.collection_id == future_log.id

    def test_future_entry_promoted_on_its_day(self, service, store):
        entry = service.add_entry("Renew passport @3/15", now=datetime(2025, 1, 2))

        report = service.run_daily_migration(datetime(2025, 3, 15, 7))

        [promoted] = report.promoted
        assert promoted.content == "Renew passport"
        assert promoted.date == datetime(2025, 3, 15)
        assert _get(store, entry.id).has_migrated is True

    def test_empty_text_raises(self, service):
        with pytest.raises(ValidationFailure):
            service.add_entry("   ")

    def test_mention_only_raises(self, service):
        with pytest.raises(ValidationFailure):
            service.add_entry("@march-15", now=datetime(2025, 1, 2))


class TestFromConfig:
    def test_uses_yaml_stores(self, tmp_dir):
        config = Config(data_dir=tmp_dir, defaults={"migration": {"old_task_days": 3}})
        service = MigrationService.from_config(config)

        assert isinstance(service.store, YamlRecordStore)
        assert isinstance(service.checkpoints, YamlCheckpointStore)
        assert service.detector.threshold_days == 3

    def test_end_to_end_persists(self, tmp_dir):
        config = Config(data_dir=tmp_dir)
        service = MigrationService.from_config(config)
        service.add_entry("Buy milk", now=datetime(2025, 1, 1, 10))
        service.on_app_active(datetime(2025, 1, 2, 8))

        reopened = MigrationService.from_config(Config(data_dir=tmp_dir))
        assert reopened.checkpoints.last_migration_date() == date(2025, 1, 2)
        with reopened.store.session() as session:
            live = session.query(EntryQuery(has_migrated=False, is_future_entry=False, archived=False))
        assert [e.content for e in live] == ["→ Buy milk"]
        assert os.path.exists(os.path.join(tmp_dir, "journal.yaml"))


def test_report_defaults():
    report = MigrationReport()
    assert report.forwarded == []
    assert report.promoted == []
    assert report.skipped == []
