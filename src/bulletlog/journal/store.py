"""RecordStore protocol — the contract the migration engines consume.

A store hands out sessions. A session is one mutable, transactional view
of the journal: reads see the session's own pending changes, and nothing
becomes visible to other sessions until ``commit()``. Leaving a session
without committing (or via an exception) discards every pending change,
so a batch is all-or-nothing. A commit made on top of a state that another
session has changed since is refused with ``SaveFailure`` instead of
overwriting that session's work.

``MemoryRecordStore`` is the reference implementation and the base of the
YAML-file store; tests inject it (or a subclass that fails on save).
"""

from __future__ import annotations

import copy
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol, runtime_checkable

from loguru import logger

from bulletlog.core.exceptions import QueryFailure, SaveFailure

from .models import Collection, CollectionType, Entry, EntryKind, TaskStatus


@dataclass(frozen=True)
class EntryQuery:
    """Compound AND predicate over entries. ``None`` clauses are ignored.

    Date clauses never match an entry whose compared date is missing.
    """

    kind: EntryKind | None = None
    status: TaskStatus | None = None
    is_future_entry: bool | None = None
    has_migrated: bool | None = None
    is_special_entry: bool | None = None
    archived: bool | None = None
    collection_id: str | None = None
    date_before: datetime | None = None  # date < x
    date_from: datetime | None = None  # date >= x
    date_until: datetime | None = None  # date <= x
    scheduled_until: datetime | None = None  # scheduled_date <= x

    def matches(self, entry: Entry) -> bool:
        if self.kind is not None and entry.kind != self.kind:
            return False
        if self.status is not None and entry.status != self.status:
            return False
        for flag in ("is_future_entry", "has_migrated", "is_special_entry", "archived"):
            wanted = getattr(self, flag)
            if wanted is not None and getattr(entry, flag) != wanted:
                return False
        if self.collection_id is not None and entry.collection_id != self.collection_id:
            return False

        if self.date_before or self.date_from or self.date_until:
            if entry.date is None:
                return False
            if self.date_before and not entry.date < self.date_before:
                return False
            if self.date_from and not entry.date >= self.date_from:
                return False
            if self.date_until and not entry.date <= self.date_until:
                return False

        if self.scheduled_until:
            if entry.scheduled_date is None or not entry.scheduled_date <= self.scheduled_until:
                return False
        return True


@runtime_checkable
class StoreSession(Protocol):
    """One transactional unit of work against a RecordStore."""

    def query(self, query: EntryQuery, order_by: str = "date") -> list[Entry]: ...

    def get(self, entry_id: str) -> Entry | None: ...

    def add(self, entry: Entry) -> Entry: ...

    def update(self, entry: Entry) -> Entry: ...

    def collections(
        self,
        *,
        collection_type: CollectionType | None = None,
        name: str | None = None,
        is_automatic: bool | None = None,
    ) -> list[Collection]: ...

    def get_collection(self, collection_id: str) -> Collection | None: ...

    def add_collection(self, collection: Collection) -> Collection: ...

    def commit(self) -> None: ...

    def rollback(self) -> None: ...

    def __enter__(self) -> StoreSession: ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


@runtime_checkable
class RecordStore(Protocol):
    """Anything that can open transactional sessions over entries and collections."""

    def session(self) -> StoreSession: ...


def _sort_key(order_by: str):
    def key(entry: Entry):
        value = getattr(entry, order_by)
        # Missing values sort last
        return (value is None, value or datetime.min)

    return key


class SnapshotSession:
    """Session over a private deep copy of the store's state.

    Writes land in the copy; ``commit`` hands the whole copy back to the
    store in one step, ``rollback`` re-reads the committed state.
    """

    _ORDER_FIELDS = {"date", "scheduled_date", "original_date", "created_at"}

    def __init__(self, store: MemoryRecordStore) -> None:
        self._store = store
        self._entries: dict[str, Entry] = {}
        self._collections: dict[str, Collection] = {}
        self._base_version = 0
        self._dirty = False
        self._reload()

    def _reload(self) -> None:
        self._base_version, self._entries, self._collections = self._store._checkout()
        self._dirty = False

    # -- Entries ------------------------------------------------------------

    def query(self, query: EntryQuery, order_by: str = "date") -> list[Entry]:
        if order_by not in self._ORDER_FIELDS:
            raise QueryFailure(f"Cannot order entries by {order_by!r}")
        found = [e for e in self._entries.values() if query.matches(e)]
        found.sort(key=_sort_key(order_by))
        return found

    def get(self, entry_id: str) -> Entry | None:
        return self._entries.get(entry_id)

    def add(self, entry: Entry) -> Entry:
        if entry.id in self._entries:
            raise ValueError(f"Entry already exists: {entry.id}")
        self._entries[entry.id] = entry
        self._dirty = True
        return entry

    def update(self, entry: Entry) -> Entry:
        if entry.id not in self._entries:
            raise ValueError(f"Entry not found: {entry.id}")
        self._entries[entry.id] = entry
        self._dirty = True
        return entry

    # -- Collections --------------------------------------------------------

    def collections(
        self,
        *,
        collection_type: CollectionType | None = None,
        name: str | None = None,
        is_automatic: bool | None = None,
    ) -> list[Collection]:
        found = []
        for c in self._collections.values():
            if collection_type is not None and c.collection_type != collection_type:
                continue
            if name is not None and c.name != name:
                continue
            if is_automatic is not None and c.is_automatic != is_automatic:
                continue
            found.append(c)
        found.sort(key=lambda c: (c.sort_order, c.created_at))
        return found

    def get_collection(self, collection_id: str) -> Collection | None:
        return self._collections.get(collection_id)

    def add_collection(self, collection: Collection) -> Collection:
        if collection.id in self._collections:
            raise ValueError(f"Collection already exists: {collection.id}")
        self._collections[collection.id] = collection
        self._dirty = True
        return collection

    # -- Transaction --------------------------------------------------------

    @property
    def has_changes(self) -> bool:
        return self._dirty

    def commit(self) -> None:
        if not self._dirty:
            return
        self._base_version = self._store._publish(self._entries, self._collections, self._base_version)
        self._dirty = False

    def rollback(self) -> None:
        if self._dirty:
            logger.debug("Rolling back uncommitted session changes")
        self._reload()

    def __enter__(self) -> SnapshotSession:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._dirty:
            self.rollback()


class MemoryRecordStore:
    """In-process RecordStore. State lives only as long as the object."""

    def __init__(
        self,
        entries: list[Entry] | None = None,
        collections: list[Collection] | None = None,
    ) -> None:
        self._lock = threading.Lock()
        self._version = 0  # bumped on every publish
        self._entries: dict[str, Entry] = {e.id: e for e in entries or []}
        self._collections: dict[str, Collection] = {c.id: c for c in collections or []}

    def session(self) -> SnapshotSession:
        return SnapshotSession(self)

    def _load(self) -> tuple[dict[str, Entry], dict[str, Collection]]:
        return self._entries, self._collections

    def _save(self, entries: dict[str, Entry], collections: dict[str, Collection]) -> None:
        self._entries = entries
        self._collections = collections

    def _snapshot(self) -> tuple[dict[str, Entry], dict[str, Collection]]:
        _, entries, collections = self._checkout()
        return entries, collections

    def _checkout(self) -> tuple[int, dict[str, Entry], dict[str, Collection]]:
        with self._lock:
            entries, collections = self._load()
            return self._version, copy.deepcopy(entries), copy.deepcopy(collections)

    def _publish(
        self,
        entries: dict[str, Entry],
        collections: dict[str, Collection],
        base_version: int,
    ) -> int:
        with self._lock:
            if base_version != self._version:
                raise SaveFailure("Journal changed since this session started; commit refused")
            self._save(copy.deepcopy(entries), copy.deepcopy(collections))
            self._version += 1
            return self._version

    # Convenience read-only views (committed state)

    def all_entries(self) -> list[Entry]:
        entries, _ = self._snapshot()
        return sorted(entries.values(), key=_sort_key("date"))

    def all_collections(self) -> list[Collection]:
        _, collections = self._snapshot()
        return sorted(collections.values(), key=lambda c: (c.sort_order, c.created_at))
