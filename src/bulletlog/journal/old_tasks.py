"""Old-task detection. Read-only: it reports, the user decides."""

from __future__ import annotations

from datetime import datetime

from .dates import days_between
from .models import Entry, EntryKind, TaskStatus
from .store import EntryQuery, RecordStore

DEFAULT_OLD_TASK_DAYS = 5

# Live daily-log tasks only: retired originals, future entries and archive
# copies are represented elsewhere.
_OPEN_TASKS = EntryQuery(
    kind=EntryKind.TASK,
    status=TaskStatus.PENDING,
    has_migrated=False,
    is_future_entry=False,
    is_special_entry=False,
    archived=False,
)


class OldTaskDetector:
    """Finds pending tasks that have been carried for *threshold_days* or more.

    Age counts calendar days from the task's first occurrence
    (``original_date``), so forwarding does not reset it.
    """

    def __init__(self, store: RecordStore, threshold_days: int = DEFAULT_OLD_TASK_DAYS) -> None:
        self.store = store
        self.threshold_days = threshold_days

    def is_old(self, entry: Entry, now: datetime) -> bool:
        anchor = entry.age_anchor
        if anchor is None:
            return False
        return days_between(anchor, now) >= self.threshold_days

    def find(self, now: datetime) -> list[Entry]:
        """Return old tasks, oldest first."""
        with self.store.session() as session:
            candidates = session.query(_OPEN_TASKS)
        old = [t for t in candidates if self.is_old(t, now)]
        old.sort(key=lambda t: t.age_anchor)
        return old
