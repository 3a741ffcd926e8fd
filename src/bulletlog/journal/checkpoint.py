"""Checkpoint markers that keep the batch jobs to one run per period.

Two scalars are tracked:

- ``last_migration_date``: calendar day of the last committed daily migration.
- ``last_archived_month``: month key (``"{year}-{month}"``, unpadded month)
  of the last committed month-end archival.
"""

from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

import yaml
from loguru import logger

from bulletlog.core.exceptions import QueryFailure, SaveFailure
from bulletlog.core.utils.file_io import read_yaml, write_yaml


def month_key(year: int, month: int) -> str:
    return f"{year}-{month}"


@runtime_checkable
class CheckpointStore(Protocol):
    def last_migration_date(self) -> date | None: ...

    def set_last_migration_date(self, day: date) -> None: ...

    def last_archived_month(self) -> str | None: ...

    def set_last_archived_month(self, key: str) -> None: ...

    def reset(self) -> None: ...


class MemoryCheckpointStore:
    """Checkpoints held in memory (tests, embedding)."""

    def __init__(self, last_migration_date: date | None = None, last_archived_month: str | None = None):
        self._last_migration_date = last_migration_date
        self._last_archived_month = last_archived_month

    def last_migration_date(self) -> date | None:
        return self._last_migration_date

    def set_last_migration_date(self, day: date) -> None:
        self._last_migration_date = day

    def last_archived_month(self) -> str | None:
        return self._last_archived_month

    def set_last_archived_month(self, key: str) -> None:
        self._last_archived_month = key

    def reset(self) -> None:
        self._last_migration_date = None
        self._last_archived_month = None


class YamlCheckpointStore:
    """Checkpoints persisted in a small YAML file that survives restarts."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read(self) -> dict:
        try:
            data = read_yaml(self.path)
        except (OSError, yaml.YAMLError) as e:
            raise QueryFailure(f"Cannot read checkpoints {self.path}: {e}") from e
        return data if isinstance(data, dict) else {}

    def _write(self, **changes: object) -> None:
        data = self._read()
        data.update(changes)
        try:
            write_yaml(self.path, data)
        except (OSError, yaml.YAMLError) as e:
            raise SaveFailure(f"Cannot write checkpoints {self.path}: {e}") from e

    def last_migration_date(self) -> date | None:
        raw = self._read().get("last_migration_date")
        if not raw:
            return None
        if isinstance(raw, datetime):
            return raw.date()
        if isinstance(raw, date):
            return raw
        try:
            return date.fromisoformat(str(raw))
        except ValueError:
            logger.warning(f"Ignoring unparseable last_migration_date {raw!r} in {self.path}")
            return None

    def set_last_migration_date(self, day: date) -> None:
        self._write(last_migration_date=day.isoformat())

    def last_archived_month(self) -> str | None:
        raw = self._read().get("last_archived_month")
        return str(raw) if raw else None

    def set_last_archived_month(self, key: str) -> None:
        self._write(last_archived_month=key)

    def reset(self) -> None:
        self._write(last_migration_date=None, last_archived_month=None)
        logger.info("Migration checkpoints cleared")
