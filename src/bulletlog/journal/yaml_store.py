"""YAML-file RecordStore.

The whole journal lives in one YAML document::

    version: 1
    collections:
      - {id: ..., name: Future Log, collection_type: future, ...}
    entries:
      - {id: ..., content: ..., kind: task, status: pending, date: ...}

Sessions read the file when they open and rewrite it atomically on
commit, so a crash mid-commit leaves the previous journal intact.
"""

from __future__ import annotations

from pathlib import Path

import yaml
from loguru import logger

from bulletlog.core.exceptions import QueryFailure, SaveFailure, ValidationFailure
from bulletlog.core.utils.file_io import read_yaml, write_yaml

from .models import (
    Collection,
    Entry,
    collection_from_record,
    collection_to_record,
    entry_from_record,
    entry_to_record,
)
from .store import MemoryRecordStore

_FORMAT_VERSION = 1


class YamlRecordStore(MemoryRecordStore):
    """File-backed store using a single YAML document."""

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path).expanduser()

    def _load(self) -> tuple[dict[str, Entry], dict[str, Collection]]:
        try:
            data = read_yaml(self.path)
        except (OSError, yaml.YAMLError) as e:
            raise QueryFailure(f"Cannot read journal {self.path}: {e}") from e
        if data is None:
            return {}, {}
        if not isinstance(data, dict):
            raise QueryFailure(f"Journal {self.path} is not a mapping")

        collections: dict[str, Collection] = {}
        for raw in data.get("collections") or []:
            try:
                c = collection_from_record(raw)
            except (ValidationFailure, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed collection record in {self.path.name}: {e}")
                continue
            collections[c.id] = c

        entries: dict[str, Entry] = {}
        for raw in data.get("entries") or []:
            try:
                entry = entry_from_record(raw)
            except (ValidationFailure, ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed entry record in {self.path.name}: {e}")
                continue
            entries[entry.id] = entry
        return entries, collections

    def _save(self, entries: dict[str, Entry], collections: dict[str, Collection]) -> None:
        data = {
            "version": _FORMAT_VERSION,
            "collections": [collection_to_record(c) for c in collections.values()],
            "entries": [entry_to_record(e) for e in entries.values()],
        }
        try:
            write_yaml(self.path, data)
        except (OSError, yaml.YAMLError) as e:
            raise SaveFailure(f"Cannot write journal {self.path}: {e}") from e
        logger.debug(f"Wrote {len(entries)} entries, {len(collections)} collections to {self.path}")
