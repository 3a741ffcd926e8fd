"""Shared test fixtures for bulletlog."""

import os
import sys
import tempfile
from datetime import datetime

import pytest
from loguru import logger

from bulletlog.core.exceptions import SaveFailure
from bulletlog.journal.checkpoint import MemoryCheckpointStore
from bulletlog.journal.models import Entry, EntryKind, TaskStatus
from bulletlog.journal.service import MigrationService
from bulletlog.journal.store import MemoryRecordStore


class FailingRecordStore(MemoryRecordStore):
    """Memory store whose commits fail while ``fail_saves`` is set."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fail_saves = True

    def _save(self, entries, collections):
        if self.fail_saves:
            raise SaveFailure("disk full")
        super()._save(entries, collections)


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {"data_dir": os.path.join(tmp_dir, "data")},
        "migration": {"old_task_days": 5},
        "logging": {"level": "ERROR"},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


@pytest.fixture
def store():
    return MemoryRecordStore()


@pytest.fixture
def failing_store():
    return FailingRecordStore()


@pytest.fixture
def checkpoints():
    return MemoryCheckpointStore()


@pytest.fixture
def service(store, checkpoints):
    return MigrationService(store, checkpoints)


@pytest.fixture
def seed():
    """Commit entries into a store: ``seed(store, entry, ...)``."""

    def _seed(target, *entries):
        with target.session() as session:
            for entry in entries:
                session.add(entry)
            session.commit()
        return entries

    return _seed


@pytest.fixture
def make_task():
    """Build a pending task dated on the given day."""

    def _make(content="Buy milk", day=datetime(2025, 1, 1), **overrides):
        fields = dict(content=content, kind=EntryKind.TASK, status=TaskStatus.PENDING, date=day)
        fields.update(overrides)
        return Entry(**fields)

    return _make


@pytest.fixture(autouse=True)
def _reset_loguru():
    """Put loguru back to a single stderr sink after tests that reconfigure it."""
    yield
    logger.remove()
    logger.add(sys.stderr, level="WARNING")
