from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from functools import lru_cache
from threading import RLock
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .models import TodoEntity
from .settings import get_settings

# Fields a caller may change through update_by_id; everything else is owned by the store
UPDATABLE_FIELDS = frozenset({"title"})


def _check_fields(fields: Mapping[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unsupported todo fields: {', '.join(sorted(unknown))}")


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """Abstract contract for todo storage backends."""

    @abstractmethod
    def list_all(self) -> List[TodoEntity]:
        """Return every TodoEntity in insertion order."""

    @abstractmethod
    def get(self, todo_id: int) -> Optional[TodoEntity]:
        """Return a TodoEntity by id, or None if not found."""

    @abstractmethod
    def insert(self, title: str) -> TodoEntity:
        """Create and return a new TodoEntity; id and timestamps are assigned here."""

    @abstractmethod
    def update_by_id(self, todo_id: int, fields: Mapping[str, Any]) -> int:
        """
        Apply field changes to the row with this id and refresh updated_at.
        Return the number of affected rows (0 when the id is absent).
        """

    @abstractmethod
    def delete_by_id(self, todo_id: int) -> int:
        """Delete the row with this id. Return affected rows (0 when absent)."""

    @abstractmethod
    def delete_by_id_set(self, todo_ids: Iterable[int]) -> int:
        """Delete every row whose id is in ``todo_ids`` in one operation; absent ids are ignored."""


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-memory store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, TodoEntity] = {}
        self._next_id = 1

    def _now(self) -> datetime:
        return datetime.now()

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    def list_all(self) -> List[TodoEntity]:
        with self._lock:
            # dict keeps insertion order; return copies to avoid external mutation
            return [t.copy() for t in self._items.values()]

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def insert(self, title: str) -> TodoEntity:
        now = self._now()
        with self._lock:
            entity: TodoEntity = {
                "id": self._allocate_id(),
                "title": title,
                "created_at": now,
                "updated_at": now,
            }
            self._items[entity["id"]] = entity
            return entity.copy()

    def update_by_id(self, todo_id: int, fields: Mapping[str, Any]) -> int:
        _check_fields(fields)
        with self._lock:
            existing = self._items.get(todo_id)
            if existing is None:
                return 0
            updated = existing.copy()
            updated.update(fields)  # type: ignore[typeddict-item]
            updated["updated_at"] = self._now()
            self._items[todo_id] = updated
            return 1

    def delete_by_id(self, todo_id: int) -> int:
        with self._lock:
            return 0 if self._items.pop(todo_id, None) is None else 1

    def delete_by_id_set(self, todo_ids: Iterable[int]) -> int:
        with self._lock:
            removed = 0
            for todo_id in set(todo_ids):
                if self._items.pop(todo_id, None) is not None:
                    removed += 1
            return removed


# PUBLIC_INTERFACE
@lru_cache(maxsize=1)
def get_record_store() -> RecordStore:
    """
    Factory returning the process-wide record store selected by settings.
    - memory: InMemoryRecordStore
    - sqlite: SQLiteRecordStore at SQLITE_DB_PATH
    """
    settings = get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteRecordStore

        return SQLiteRecordStore(settings.sqlite_db_path)
    return InMemoryRecordStore()
