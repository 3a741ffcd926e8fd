"""Pure state transitions for migrated entries.

Every placement change is append-only: the transition takes the existing
entry and returns ``(retired_original, new_entry)``. The original keeps its
identity and content; only ``has_migrated`` flips. Nothing here touches a
store, so each transition is testable on its own.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from bulletlog.core.exceptions import ValidationFailure

from .dates import start_of_day
from .models import Collection, Entry, TaskStatus, new_id

DEFAULT_FORWARD_MARKER = "→ "


def has_forward_marker(content: str, marker: str = DEFAULT_FORWARD_MARKER) -> bool:
    return content.startswith(marker)


def add_forward_marker(content: str, marker: str = DEFAULT_FORWARD_MARKER) -> str:
    """Prefix *marker* once; already-marked content is returned unchanged."""
    if has_forward_marker(content, marker):
        return content
    return f"{marker}{content}"


def strip_forward_marker(content: str, marker: str = DEFAULT_FORWARD_MARKER) -> str:
    if has_forward_marker(content, marker):
        return content[len(marker) :]
    return content


def forward_task(
    task: Entry,
    today: datetime,
    *,
    marker: str = DEFAULT_FORWARD_MARKER,
    now: datetime | None = None,
) -> tuple[Entry, Entry]:
    """Carry a stale pending task over to *today*.

    ``original_date`` on the copy points at the first day the task ever
    existed on, however many times it has been forwarded.

    Raises:
        ValidationFailure: if the task has no id or no date.
    """
    task.validate()
    if task.has_migrated:
        raise ValidationFailure(f"Task {task.id} was already forwarded", entry_id=task.id)

    retired = replace(task, has_migrated=True, tags=list(task.tags))
    forwarded = Entry(
        id=new_id(),
        content=add_forward_marker(task.content, marker),
        kind=task.kind,
        status=TaskStatus.PENDING,
        date=start_of_day(today),
        original_date=task.original_date or task.date,
        priority=task.priority,
        tags=list(task.tags),
        collection_id=task.collection_id,
        created_at=now or datetime.now(),
    )
    return retired, forwarded


def promote_future_entry(entry: Entry, *, now: datetime | None = None) -> tuple[Entry, Entry]:
    """Copy a due future entry into the daily log on its scheduled day.

    The future entry stays in the Future Log as a record, flagged migrated.

    Raises:
        ValidationFailure: if the entry has no id or no scheduled date.
    """
    entry.validate(require_date=False)
    if entry.scheduled_date is None:
        raise ValidationFailure(f"Future entry {entry.id} has no scheduled date", entry_id=entry.id)
    if entry.has_migrated:
        raise ValidationFailure(f"Future entry {entry.id} was already promoted", entry_id=entry.id)

    retired = replace(entry, has_migrated=True, tags=list(entry.tags))
    daily = Entry(
        id=new_id(),
        content=entry.content,
        kind=entry.kind,
        status=entry.status,
        date=entry.scheduled_date,
        is_future_entry=False,
        priority=entry.priority,
        tags=list(entry.tags),
        collection_id=entry.collection_id,
        created_at=now or datetime.now(),
    )
    return retired, daily


def archive_copy(entry: Entry, archive: Collection, *, now: datetime | None = None) -> Entry:
    """Snapshot *entry* into a month-archive collection. The source is untouched.

    Raises:
        ValidationFailure: if the entry has no id or no date.
    """
    entry.validate()
    return Entry(
        id=new_id(),
        content=entry.content,
        kind=entry.kind,
        status=entry.status,
        date=entry.date,
        original_date=entry.original_date,
        has_migrated=entry.has_migrated,
        is_future_entry=False,
        priority=entry.priority,
        tags=list(entry.tags),
        collection_id=archive.id,
        archived=True,
        source_id=entry.id,
        created_at=now or datetime.now(),
    )


def defer_to_future_log(task: Entry, *, marker: str = DEFAULT_FORWARD_MARKER) -> Entry:
    """Turn a task into a dateless future entry, restarting its age clock."""
    task.validate(require_date=False)
    return replace(
        task,
        is_future_entry=True,
        scheduled_date=None,
        has_migrated=False,
        original_date=None,
        content=strip_forward_marker(task.content, marker),
        tags=list(task.tags),
    )


def reschedule_task(task: Entry, to_date: datetime, *, marker: str = DEFAULT_FORWARD_MARKER) -> Entry:
    """Move a task to *to_date*, restarting its age clock."""
    task.validate(require_date=False)
    return replace(
        task,
        date=to_date,
        original_date=None,
        content=strip_forward_marker(task.content, marker),
        tags=list(task.tags),
    )
