from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from .models import DEFAULT_PRIORITY, PRIORITIES, TodoEntity, UserEntity
from .repositories import Repository, TodoStats, build_assignments
from .settings import Settings
from .utils import parse_timestamp, utc_now

logger = logging.getLogger(__name__)

# Arbitrary constant identifying the schema-creation advisory lock
_SCHEMA_LOCK_KEY = 741_520_391

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        username VARCHAR(255) UNIQUE NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS todos (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        title VARCHAR(500) NOT NULL,
        description TEXT,
        priority VARCHAR(20) NOT NULL DEFAULT 'medium',
        category VARCHAR(100),
        completed BOOLEAN NOT NULL DEFAULT FALSE,
        completed_at TIMESTAMPTZ,
        due_date TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_todos_user_id ON todos(user_id)",
)


# PUBLIC_INTERFACE
def normalize_database_url(url: str) -> str:
    """
    Pin connection strings to the psycopg2 driver.

    'postgres://' and bare 'postgresql://' are rewritten to
    'postgresql+psycopg2://'; URLs that already name a driver are left alone.
    """
    url = url.strip()
    for scheme in ("postgres://", "postgresql://"):
        if url.startswith(scheme):
            return "postgresql+psycopg2://" + url[len(scheme):]
    return url


# PUBLIC_INTERFACE
def build_connect_args(ssl_enabled: bool, reject_unauthorized: bool) -> Dict[str, Any]:
    """
    Map the TLS settings onto a libpq sslmode.
    - TLS off: 'disable'
    - TLS on, certificate verified: 'verify-full'
    - TLS on, certificate not verified: 'require'
    """
    if not ssl_enabled:
        return {"sslmode": "disable"}
    return {"sslmode": "verify-full" if reject_unauthorized else "require"}


class PostgresRepository(Repository):
    """
    Networked repository on a pooled SQLAlchemy engine.

    Statements are plain SQL through text() with named bind parameters; every
    mutation is a single statement using RETURNING.
    """

    def __init__(self, engine: Engine) -> None:
        super().__init__()
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "PostgresRepository":
        if not settings.database_url:
            raise ValueError("DATABASE_URL must be set to use the PostgreSQL backend")
        engine = create_engine(
            normalize_database_url(settings.database_url),
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            connect_args=build_connect_args(settings.db_ssl_enabled, settings.db_ssl_reject_unauthorized),
        )
        return cls(engine)

    def init_schema(self) -> None:
        # Concurrent CREATE ... IF NOT EXISTS can still collide in the catalog
        with self._engine.begin() as conn:
            conn.execute(text("SELECT pg_advisory_xact_lock(:key)"), {"key": _SCHEMA_LOCK_KEY})
            for statement in _SCHEMA:
                conn.execute(text(statement))

    def _to_user(self, row: Mapping[str, Any]) -> UserEntity:
        return {
            "id": int(row["id"]),
            "username": row["username"],
            "password_hash": row["password_hash"],
            "created_at": parse_timestamp(row["created_at"]),  # type: ignore
        }

    def _to_todo(self, row: Mapping[str, Any]) -> TodoEntity:
        return {
            "id": int(row["id"]),
            "user_id": int(row["user_id"]),
            "title": row["title"],
            "description": row["description"],
            "priority": row["priority"],
            "category": row["category"],
            "completed": bool(row["completed"]),
            "completed_at": parse_timestamp(row["completed_at"]),
            "due_date": row["due_date"],
            "created_at": parse_timestamp(row["created_at"]),  # type: ignore
            "updated_at": parse_timestamp(row["updated_at"]),  # type: ignore
        }

    def _fetch_one(self, sql: str, params: Dict[str, Any]) -> Optional[Mapping[str, Any]]:
        with self._engine.begin() as conn:
            return conn.execute(text(sql), params).mappings().first()

    # Users

    def create_user(self, username: str, password_hash: str) -> Optional[UserEntity]:
        try:
            row = self._fetch_one(
                """
                INSERT INTO users (username, password_hash, created_at)
                VALUES (:username, :password_hash, :created_at)
                RETURNING *
                """,
                {"username": username, "password_hash": password_hash, "created_at": utc_now()},
            )
        except IntegrityError:
            logger.warning("Rejected duplicate username %r", username)
            return None
        except SQLAlchemyError:
            logger.exception("Error creating user")
            return None
        return self._to_user(row) if row else None

    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        try:
            row = self._fetch_one("SELECT * FROM users WHERE username = :username", {"username": username})
        except SQLAlchemyError:
            logger.exception("Error loading user by username")
            return None
        return self._to_user(row) if row else None

    def get_user_by_id(self, user_id: int) -> Optional[UserEntity]:
        try:
            row = self._fetch_one("SELECT * FROM users WHERE id = :id", {"id": user_id})
        except SQLAlchemyError:
            logger.exception("Error loading user %s", user_id)
            return None
        return self._to_user(row) if row else None

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
        now = utc_now()
        try:
            row = self._fetch_one(
                """
                INSERT INTO todos (user_id, title, description, priority, category,
                    completed, completed_at, due_date, created_at, updated_at)
                VALUES (:user_id, :title, :description, :priority, :category,
                    FALSE, NULL, :due_date, :now, :now)
                RETURNING *
                """,
                {
                    "user_id": user_id,
                    "title": title,
                    "description": description,
                    "priority": priority,
                    "category": category,
                    "due_date": due_date,
                    "now": now,
                },
            )
        except SQLAlchemyError:
            logger.exception("Error creating todo for user %s", user_id)
            return None
        return self._to_todo(row) if row else None

    def get_todos_by_user_id(self, user_id: int) -> List[TodoEntity]:
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(
                    text("SELECT * FROM todos WHERE user_id = :user_id ORDER BY created_at DESC, id DESC"),
                    {"user_id": user_id},
                ).mappings().all()
        except SQLAlchemyError:
            logger.exception("Error listing todos for user %s", user_id)
            return []
        return [self._to_todo(r) for r in rows]

    def get_todo_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        try:
            row = self._fetch_one("SELECT * FROM todos WHERE id = :id", {"id": todo_id})
        except SQLAlchemyError:
            logger.exception("Error loading todo %s", todo_id)
            return None
        return self._to_todo(row) if row else None

    def update_todo(self, todo_id: int, changes: Mapping[str, Any]) -> Optional[TodoEntity]:
        if not changes:
            return self.get_todo_by_id(todo_id)

        assignments, values = build_assignments(changes, lambda column: f":{column}")
        params: Dict[str, Any] = dict(zip(changes.keys(), values))
        assignments.append("updated_at = :updated_at")
        params.update(updated_at=utc_now(), todo_id=todo_id)
        try:
            row = self._fetch_one(
                f"UPDATE todos SET {', '.join(assignments)} WHERE id = :todo_id RETURNING *",
                params,
            )
        except SQLAlchemyError:
            logger.exception("Error updating todo %s", todo_id)
            return None
        return self._to_todo(row) if row else None

    def delete_todo(self, todo_id: int) -> bool:
        try:
            with self._engine.begin() as conn:
                deleted = conn.execute(text("DELETE FROM todos WHERE id = :id"), {"id": todo_id}).rowcount
        except SQLAlchemyError:
            logger.exception("Error deleting todo %s", todo_id)
            return False
        return deleted > 0

    def get_completed_todo_stats(self, user_id: int) -> TodoStats:
        try:
            row = self._fetch_one(
                """
                SELECT COUNT(*) AS total,
                    COUNT(*) FILTER (WHERE completed) AS completed
                FROM todos WHERE user_id = :user_id
                """,
                {"user_id": user_id},
            )
        except SQLAlchemyError:
            logger.exception("Error computing stats for user %s", user_id)
            return TodoStats()
        if row is None:
            return TodoStats()
        return TodoStats(total=int(row["total"] or 0), completed=int(row["completed"] or 0))
