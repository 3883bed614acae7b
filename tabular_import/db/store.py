from __future__ import annotations

import itertools
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any, Protocol, runtime_checkable

"""Record store contract and the in-memory implementation.

The pipeline only needs three operations per target store id. Stores report
failures as PersistenceError; a uniqueness constraint hit is reported as
DuplicateRecordError so the importer can count it as Skipped(Duplicate)
even when two runs race between lookup and insert.
"""

__all__ = [
    "DuplicateRecordError",
    "MemoryRecordStore",
    "PersistenceError",
    "RecordStore",
    "store_lock",
]


class PersistenceError(Exception):
    """A store operation was rejected or failed."""


class DuplicateRecordError(PersistenceError):
    """The store refused an insert because the natural key already exists."""


@runtime_checkable
class RecordStore(Protocol):
    def find_one(self, store_id: str, key_filter: dict[str, Any]) -> dict[str, Any] | None: ...

    def insert(self, store_id: str, record: dict[str, Any]) -> Any: ...

    def delete(self, store_id: str, key_filter: dict[str, Any]) -> int: ...


_locks: dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


@contextmanager
def store_lock(store_id: str) -> Iterator[None]:
    """Serialize import runs against the same store id within this process."""
    with _locks_guard:
        lock = _locks.setdefault(store_id, threading.Lock())
    with lock:
        yield


def _matches(record: dict[str, Any], key_filter: dict[str, Any]) -> bool:
    return all(record.get(k) == v for k, v in key_filter.items())


class MemoryRecordStore:
    """Dict-backed RecordStore for tests and dry runs.

    unique_keys optionally declares a uniqueness constraint per store id
    (tuple of column names); inserts violating it raise DuplicateRecordError.
    """

    def __init__(self, unique_keys: dict[str, tuple[str, ...]] | None = None) -> None:
        self._tables: dict[str, list[dict[str, Any]]] = {}
        self._ids = itertools.count(1)
        self.unique_keys = dict(unique_keys or {})

    def records(self, store_id: str) -> list[dict[str, Any]]:
        return list(self._tables.get(store_id, []))

    def find_one(self, store_id: str, key_filter: dict[str, Any]) -> dict[str, Any] | None:
        for record in self._tables.get(store_id, []):
            if _matches(record, key_filter):
                return dict(record)
        return None

    def insert(self, store_id: str, record: dict[str, Any]) -> int:
        table = self._tables.setdefault(store_id, [])
        unique = self.unique_keys.get(store_id)
        if unique:
            key = {k: record.get(k) for k in unique}
            if any(_matches(existing, key) for existing in table):
                raise DuplicateRecordError(f"duplicate key {key} in {store_id}")
        new_id = next(self._ids)
        table.append({**record, "id": new_id})
        return new_id

    def delete(self, store_id: str, key_filter: dict[str, Any]) -> int:
        table = self._tables.get(store_id, [])
        kept = [r for r in table if not _matches(r, key_filter)]
        removed = len(table) - len(kept)
        self._tables[store_id] = kept
        return removed
