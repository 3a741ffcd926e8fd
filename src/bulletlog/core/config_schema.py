"""Pydantic models for config validation.

Opt-in schema validation for ``Config.config_data``.  Call
``Config.validated()`` to obtain a typed, validated ``BulletlogConfig``
instance.  Dict-based access through ``Config.get`` keeps working.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

_CRON_FIELDS = {"year", "month", "day", "week", "day_of_week", "hour", "minute", "second"}


class PathsConfig(BaseModel):
    """File-system paths used by the journal."""

    data_dir: Path
    journal_file: Path | None = None
    checkpoint_file: Path | None = None
    log_dir: Path | None = None

    @field_validator("data_dir", "journal_file", "checkpoint_file", "log_dir", mode="before")
    @classmethod
    def _expand_user(cls, v: Any) -> Any:
        if isinstance(v, str):
            return Path(v).expanduser() if v else None
        if isinstance(v, Path):
            return v.expanduser()
        return v

    @model_validator(mode="after")
    def _fill_defaults(self) -> PathsConfig:
        if self.journal_file is None:
            self.journal_file = self.data_dir / "journal.yaml"
        if self.checkpoint_file is None:
            self.checkpoint_file = self.data_dir / "checkpoints.yaml"
        if self.log_dir is None:
            self.log_dir = self.data_dir / "logs"
        return self


class MigrationConfig(BaseModel):
    """Tuning for the daily migration engine."""

    old_task_days: int = 5
    forward_marker: str = "→ "

    @field_validator("old_task_days")
    @classmethod
    def _positive_days(cls, v: int) -> int:
        if v < 1:
            raise ValueError("old_task_days must be at least 1")
        return v

    @field_validator("forward_marker")
    @classmethod
    def _non_blank_marker(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("forward_marker must contain a visible character")
        return v


class SchedulerConfig(BaseModel):
    """Periodic trigger settings (``bulletlog watch``)."""

    timezone: str = "UTC"
    cron: dict[str, Any] = {"hour": 0, "minute": 5}

    @field_validator("cron")
    @classmethod
    def _known_cron_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        unknown = set(v) - _CRON_FIELDS
        if unknown:
            raise ValueError(f"unknown cron fields: {sorted(unknown)}")
        return v


class LoggingConfig(BaseModel):
    """Log level and optional log file."""

    level: str = "WARNING"
    file: str = ""

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return level


class BulletlogConfig(BaseModel):
    """Root configuration model.

    Uses ``extra="allow"`` so consumers can bolt on custom sections
    without touching this schema.
    """

    model_config = ConfigDict(extra="allow")

    paths: PathsConfig = PathsConfig(data_dir=Path("~/.bulletlog-data"))
    migration: MigrationConfig = MigrationConfig()
    scheduler: SchedulerConfig = SchedulerConfig()
    logging: LoggingConfig = LoggingConfig()
