"""Shared setup logic for CLI commands."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import click

from bulletlog.core.exceptions import ConfigurationError

BULLETLOG_DIR = Path.home() / ".bulletlog"
CONFIG_PATH = BULLETLOG_DIR / "config.yaml"


def load_config(ctx: click.Context):
    """Load config from --config (or ~/.bulletlog/config.yaml) and apply logging settings."""
    from bulletlog.core.config import Config
    from bulletlog.core.utils.logging import setup_logging_from_config

    opts = ctx.obj or {}
    config_file = opts.get("config_file") or str(CONFIG_PATH)
    try:
        config = Config(config_file=config_file)
        if opts.get("data_dir"):
            # --data-dir beats the config file and env
            config.set("paths.data_dir", opts["data_dir"])
        config.validated()
    except ConfigurationError as e:
        raise click.ClickException(str(e)) from e
    setup_logging_from_config(config)
    return config


def create_service(config):
    """Create a MigrationService over the configured YAML stores."""
    from bulletlog.journal.service import MigrationService

    config.ensure_directories()
    return MigrationService.from_config(config)


def parse_when(value: str | None) -> datetime | None:
    """Parse an ISO date/datetime option value (None passes through).

    The journal stores naive local times, so a value with a UTC offset is
    converted to local time and the offset dropped.
    """
    if not value:
        return None
    try:
        when = datetime.fromisoformat(value)
    except ValueError as e:
        raise click.BadParameter(f"expected an ISO date like 2025-01-07, got {value!r}") from e
    if when.tzinfo is not None:
        when = when.astimezone().replace(tzinfo=None)
    return when


def resolve_entry_ids(service, prefixes: tuple[str, ...] | list[str]) -> list[str]:
    """Expand id prefixes (as printed by the CLI) to full entry ids."""
    from bulletlog.journal.store import EntryQuery

    with service.store.session() as session:
        all_ids = [e.id for e in session.query(EntryQuery())]

    resolved = []
    for prefix in prefixes:
        matches = [i for i in all_ids if i.startswith(prefix)]
        if not matches:
            raise click.ClickException(f"No entry matches id {prefix!r}")
        if len(matches) > 1:
            raise click.ClickException(f"Id {prefix!r} is ambiguous ({len(matches)} entries)")
        resolved.append(matches[0])
    return resolved


def format_entry(entry, now: datetime | None = None) -> str:
    """One-line rendering: short id, day, age, content."""
    day = entry.date.date().isoformat() if entry.date else "----------"
    line = f"{entry.id[:8]}  {day}  {entry.content}"
    anchor = entry.original_date or entry.date
    if now is not None and anchor is not None:
        age = (now.date() - anchor.date()).days
        line += f"  ({age}d old)"
    return line
