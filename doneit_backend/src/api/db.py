from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Generator, List, Mapping, Optional

from .models import DEFAULT_PRIORITY, PRIORITIES, TodoEntity, UserEntity
from .repositories import Repository, TodoStats, build_assignments
from .utils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todos (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title TEXT NOT NULL,
        description TEXT NULL,
        priority TEXT NOT NULL DEFAULT 'medium',
        category TEXT NULL,
        completed INTEGER NOT NULL DEFAULT 0,
        completed_at TEXT NULL,
        due_date TEXT NULL,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_todos_user_id ON todos(user_id)",
)


def _timestamp(value: datetime) -> str:
    # Fixed width keeps text ordering equal to time ordering
    return value.isoformat(timespec="microseconds")


def _to_sql(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, datetime):
        return _timestamp(value)
    return value


class SQLiteRepository(Repository):
    """
    Embedded single-file repository backed by the sqlite3 standard library module.

    Each operation opens a short-lived connection, so one instance can be shared
    across request threads. The database runs in WAL journal mode.
    """

    def __init__(self, db_path: str) -> None:
        super().__init__()
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path

    @property
    def db_path(self) -> str:
        return self._db_path

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init_schema(self) -> None:
        with self._conn() as conn:
            conn.execute("PRAGMA journal_mode = WAL")
            for statement in _SCHEMA:
                conn.execute(statement)

    def _row_to_user(self, row: sqlite3.Row) -> UserEntity:
        return {
            "id": int(row["id"]),
            "username": str(row["username"]),
            "password_hash": str(row["password_hash"]),
            "created_at": parse_timestamp(row["created_at"]),  # type: ignore
        }

    def _row_to_todo(self, row: sqlite3.Row) -> TodoEntity:
        return {
            "id": int(row["id"]),
            "user_id": int(row["user_id"]),
            "title": str(row["title"]),
            "description": row["description"],
            "priority": str(row["priority"]),
            "category": row["category"],
            "completed": bool(row["completed"]),
            "completed_at": parse_timestamp(row["completed_at"]),
            "due_date": row["due_date"],
            "created_at": parse_timestamp(row["created_at"]),  # type: ignore
            "updated_at": parse_timestamp(row["updated_at"]),  # type: ignore
        }

    # Users

    def create_user(self, username: str, password_hash: str) -> Optional[UserEntity]:
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    "INSERT INTO users (username, password_hash, created_at) VALUES (?, ?, ?)",
                    (username, password_hash, _timestamp(utc_now())),
                )
                row = conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()
                return self._row_to_user(row) if row else None
        except sqlite3.IntegrityError:
            logger.warning("Rejected duplicate username %r", username)
            return None
        except sqlite3.Error:
            logger.exception("Error creating user")
            return None

    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        try:
            with self._conn() as conn:
                row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
                return self._row_to_user(row) if row else None
        except sqlite3.Error:
            logger.exception("Error loading user by username")
            return None

    def get_user_by_id(self, user_id: int) -> Optional[UserEntity]:
        try:
            with self._conn() as conn:
                row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
                return self._row_to_user(row) if row else None
        except sqlite3.Error:
            logger.exception("Error loading user %s", user_id)
            return None

    # Todos

    def create_todo(
        self,
        user_id: int,
        title: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Optional[TodoEntity]:
        if priority not in PRIORITIES:
            priority = DEFAULT_PRIORITY
        now = _timestamp(utc_now())
        try:
            with self._conn() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO todos (user_id, title, description, priority, category,
                        completed, completed_at, due_date, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, 0, NULL, ?, ?, ?)
                    """,
                    (user_id, title, description, priority, category, due_date, now, now),
                )
                row = conn.execute("SELECT * FROM todos WHERE id = ?", (cur.lastrowid,)).fetchone()
                return self._row_to_todo(row) if row else None
        except sqlite3.Error:
            logger.exception("Error creating todo for user %s", user_id)
            return None

    def get_todos_by_user_id(self, user_id: int) -> List[TodoEntity]:
        try:
            with self._conn() as conn:
                rows = conn.execute(
                    "SELECT * FROM todos WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                    (user_id,),
                ).fetchall()
                return [self._row_to_todo(r) for r in rows]
        except sqlite3.Error:
            logger.exception("Error listing todos for user %s", user_id)
            return []

    def get_todo_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        try:
            with self._conn() as conn:
                row = conn.execute("SELECT * FROM todos WHERE id = ?", (todo_id,)).fetchone()
                return self._row_to_todo(row) if row else None
        except (sqlite3.Error, OverflowError):
            logger.exception("Error loading todo %s", todo_id)
            return None

    def update_todo(self, todo_id: int, changes: Mapping[str, Any]) -> Optional[TodoEntity]:
        if not changes:
            return self.get_todo_by_id(todo_id)

        assignments, values = build_assignments(
            {column: _to_sql(value) for column, value in changes.items()},
            lambda _column: "?",
        )
        assignments.append("updated_at = ?")
        values.extend([_timestamp(utc_now()), todo_id])
        try:
            with self._conn() as conn:
                cur = conn.execute(f"UPDATE todos SET {', '.join(assignments)} WHERE id = ?", values)
                if cur.rowcount == 0:
                    return None
                row = conn.execute("SELECT * FROM todos WHERE id = ?", (todo_id,)).fetchone()
                return self._row_to_todo(row) if row else None
        except (sqlite3.Error, OverflowError):
            logger.exception("Error updating todo %s", todo_id)
            return None

    def delete_todo(self, todo_id: int) -> bool:
        try:
            with self._conn() as conn:
                cur = conn.execute("DELETE FROM todos WHERE id = ?", (todo_id,))
                return cur.rowcount > 0
        except (sqlite3.Error, OverflowError):
            logger.exception("Error deleting todo %s", todo_id)
            return False

    def get_completed_todo_stats(self, user_id: int) -> TodoStats:
        try:
            with self._conn() as conn:
                row = conn.execute(
                    """
                    SELECT COUNT(*) AS total,
                        SUM(CASE WHEN completed = 1 THEN 1 ELSE 0 END) AS completed
                    FROM todos WHERE user_id = ?
                    """,
                    (user_id,),
                ).fetchone()
        except sqlite3.Error:
            logger.exception("Error computing stats for user %s", user_id)
            return TodoStats()
        return TodoStats(total=int(row["total"] or 0), completed=int(row["completed"] or 0))
