from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generator, Iterable, List, Mapping, Optional

from .errors import StoreFailure
from .models import TodoEntity
from .repositories import RecordStore, UPDATABLE_FIELDS, _check_fields

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Cols:
    table: str = "todos"
    id: str = "id"
    title: str = "title"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_COLS = _Cols()


class SQLiteRecordStore(RecordStore):
    """
    Lightweight SQLite store implementing the RecordStore interface.

    Every sqlite3 error is re-raised as StoreFailure.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            raise StoreFailure(f"cannot open {self._db_path}: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreFailure(str(e)) from e
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {_COLS.table} (
                    {_COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
                    {_COLS.title} TEXT NOT NULL,
                    {_COLS.created_at} TEXT NOT NULL,
                    {_COLS.updated_at} TEXT NOT NULL
                )
                """
            )
        logger.debug("SQLite store ready at %s", self._db_path)

    def _row_to_entity(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row[_COLS.id]),
            "title": str(row[_COLS.title]),
            "created_at": datetime.fromisoformat(row[_COLS.created_at]),
            "updated_at": datetime.fromisoformat(row[_COLS.updated_at]),
        }

    def list_all(self) -> List[TodoEntity]:
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM {_COLS.table} ORDER BY {_COLS.id} ASC").fetchall()
            return [self._row_to_entity(r) for r in rows]

    def get(self, todo_id: int) -> Optional[TodoEntity]:
        with self._conn() as conn:
            row = conn.execute(f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def insert(self, title: str) -> TodoEntity:
        now = datetime.now().isoformat()
        with self._conn() as conn:
            cur = conn.execute(
                f"""
                INSERT INTO {_COLS.table} ({_COLS.title}, {_COLS.created_at}, {_COLS.updated_at})
                VALUES (?, ?, ?)
                """,
                (title, now, now),
            )
            row = conn.execute(
                f"SELECT * FROM {_COLS.table} WHERE {_COLS.id} = ?", (cur.lastrowid,)
            ).fetchone()
            if row is None:
                raise StoreFailure(f"inserted row {cur.lastrowid} could not be read back")
            return self._row_to_entity(row)

    def update_by_id(self, todo_id: int, fields: Mapping[str, Any]) -> int:
        _check_fields(fields)
        # Column names come from UPDATABLE_FIELDS only, never from the caller
        columns = [c for c in sorted(UPDATABLE_FIELDS) if c in fields]
        assignments = [f"{c} = ?" for c in columns] + [f"{_COLS.updated_at} = ?"]
        params: list = [fields[c] for c in columns]
        params.extend([datetime.now().isoformat(), todo_id])
        with self._conn() as conn:
            cur = conn.execute(
                f"UPDATE {_COLS.table} SET {', '.join(assignments)} WHERE {_COLS.id} = ?",
                params,
            )
            return cur.rowcount

    def delete_by_id(self, todo_id: int) -> int:
        with self._conn() as conn:
            cur = conn.execute(f"DELETE FROM {_COLS.table} WHERE {_COLS.id} = ?", (todo_id,))
            return cur.rowcount

    def delete_by_id_set(self, todo_ids: Iterable[int]) -> int:
        ids = sorted(set(todo_ids))
        if not ids:
            return 0
        placeholders = ", ".join("?" for _ in ids)
        with self._conn() as conn:
            cur = conn.execute(
                f"DELETE FROM {_COLS.table} WHERE {_COLS.id} IN ({placeholders})", ids
            )
            return cur.rowcount
