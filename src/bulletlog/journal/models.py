"""Journal entry and collection models.

Entries and collections are plain dataclasses with typed fields. The
record/round-trip helpers at the bottom turn them into YAML-safe dicts
for the file-backed store.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import StrEnum
from typing import Any

from bulletlog.core.exceptions import ValidationFailure


class EntryKind(StrEnum):
    TASK = "task"
    EVENT = "event"
    NOTE = "note"


class TaskStatus(StrEnum):
    PENDING = "pending"
    COMPLETED = "completed"
    MIGRATED = "migrated"
    SCHEDULED = "scheduled"


class Priority(StrEnum):
    NONE = "none"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CollectionType(StrEnum):
    FUTURE = "future"
    MONTHLY = "monthly"
    YEAR = "year"
    MONTH_ARCHIVE = "month_archive"


class SpecialEntryType(StrEnum):
    REVIEW = "review"
    OUTLOOK = "outlook"


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class Entry:
    """A journal record: task, event or note.

    Attributes:
        id: Stable unique id, never reassigned.
        content: Entry text. Forwarded tasks carry a single forward marker prefix.
        kind: Task, event or note.
        status: Task status; None for events and notes.
        date: The day the entry lives on in the daily log.
        scheduled_date: Due day for future entries.
        is_future_entry: Lives in the Future Log until promoted.
        has_migrated: One-shot flag; True means already forwarded/promoted.
        original_date: First day this logical task existed on. Survives forwards.
        priority: Priority marker.
        tags: Tag names.
        collection_id: Owning collection, if any.
        archived: True only on month-archive snapshot copies.
        source_id: On archive copies, the id of the entry that was snapshotted.
    """

    id: str = field(default_factory=new_id)
    content: str = ""
    kind: EntryKind = EntryKind.TASK
    status: TaskStatus | None = TaskStatus.PENDING
    date: datetime | None = None
    scheduled_date: datetime | None = None
    is_future_entry: bool = False
    has_migrated: bool = False
    original_date: datetime | None = None
    priority: Priority = Priority.NONE
    tags: list[str] = field(default_factory=list)
    collection_id: str | None = None
    is_special_entry: bool = False
    special_entry_type: SpecialEntryType | None = None
    target_month: str | None = None
    is_draft: bool = False
    archived: bool = False
    source_id: str | None = None
    created_at: datetime = field(default_factory=datetime.now)

    @property
    def is_task(self) -> bool:
        return self.kind == EntryKind.TASK

    @property
    def age_anchor(self) -> datetime | None:
        """The date age is measured from: ``original_date`` when known, else ``date``."""
        return self.original_date or self.date

    def validate(self, *, require_date: bool = True) -> None:
        """Raise ValidationFailure if identity or the placement date is missing."""
        if not self.id:
            raise ValidationFailure("Entry has no id", entry_id=None)
        if require_date and self.date is None:
            raise ValidationFailure(f"Entry {self.id} has no date", entry_id=self.id)

    def __repr__(self) -> str:
        preview = self.content[:40] + "..." if len(self.content) > 40 else self.content
        day = self.date.date().isoformat() if self.date else "-"
        return f"Entry(id='{self.id[:8]}', kind={self.kind.value}, date={day}, content='{preview}')"


@dataclass
class Collection:
    """A named bucket of entries."""

    name: str
    collection_type: CollectionType | None = None
    id: str = field(default_factory=new_id)
    is_automatic: bool = False
    sort_order: int = 0
    created_at: datetime = field(default_factory=datetime.now)


# ---------------------------------------------------------------------------
# Record helpers
# ---------------------------------------------------------------------------

_ENTRY_DATETIMES = {"date", "scheduled_date", "original_date", "created_at"}
_ENTRY_ENUMS: dict[str, type[StrEnum]] = {
    "kind": EntryKind,
    "status": TaskStatus,
    "priority": Priority,
    "special_entry_type": SpecialEntryType,
}
_ENTRY_FIELDS = {f.name for f in fields(Entry)}


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_datetime(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat(timespec="seconds")


def entry_to_record(entry: Entry) -> dict[str, Any]:
    """Serialize an Entry to a YAML-safe dict."""
    record: dict[str, Any] = {}
    for name in (f.name for f in fields(Entry)):
        value = getattr(entry, name)
        if name in _ENTRY_DATETIMES:
            value = _format_datetime(value)
        elif isinstance(value, StrEnum):
            value = value.value
        elif isinstance(value, list):
            value = list(value)
        record[name] = value
    return record


def entry_from_record(record: dict[str, Any]) -> Entry:
    """Parse a stored dict into an Entry. Unknown keys are ignored.

    Raises:
        ValidationFailure: if the record has no id.
        ValueError: if a date or enum value cannot be parsed.
    """
    if not record.get("id"):
        raise ValidationFailure("Stored entry record has no id")
    kwargs: dict[str, Any] = {}
    for name, value in record.items():
        if name not in _ENTRY_FIELDS:
            continue
        if name in _ENTRY_DATETIMES:
            value = _parse_datetime(value)
            if value is None and name == "created_at":
                continue
        elif name in _ENTRY_ENUMS and value is not None:
            value = _ENTRY_ENUMS[name](value)
        elif name == "tags":
            value = [str(t) for t in (value or [])]
        kwargs[name] = value
    kwargs["id"] = str(record["id"])
    return Entry(**kwargs)


def collection_to_record(collection: Collection) -> dict[str, Any]:
    return {
        "id": collection.id,
        "name": collection.name,
        "collection_type": collection.collection_type.value if collection.collection_type else None,
        "is_automatic": collection.is_automatic,
        "sort_order": collection.sort_order,
        "created_at": _format_datetime(collection.created_at),
    }


def collection_from_record(record: dict[str, Any]) -> Collection:
    if not record.get("id") or not record.get("name"):
        raise ValidationFailure("Stored collection record has no id or name")
    ctype = record.get("collection_type")
    return Collection(
        id=str(record["id"]),
        name=str(record["name"]),
        collection_type=CollectionType(ctype) if ctype else None,
        is_automatic=bool(record.get("is_automatic", False)),
        sort_order=int(record.get("sort_order") or 0),
        created_at=_parse_datetime(record.get("created_at")) or datetime.now(),
    )
