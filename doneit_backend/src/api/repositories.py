from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from functools import lru_cache
from threading import Lock
from typing import Any, Callable, List, Mapping, Optional, Tuple

from .models import UPDATABLE_COLUMNS, TodoEntity, UserEntity
from .settings import get_settings
from .utils import round_half_up_percent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TodoStats:
    """
    Completion statistics for one user's todos.
    """
    total: int = 0
    completed: int = 0

    @property
    def completion_rate(self) -> int:
        return round_half_up_percent(self.completed, self.total)


# PUBLIC_INTERFACE
def build_assignments(
    changes: Mapping[str, Any],
    placeholder: Callable[[str], str],
) -> Tuple[List[str], List[Any]]:
    """
    Build the SET list of an UPDATE statement from a mapping of column -> value.

    Column names are checked against UPDATABLE_COLUMNS so that only known
    identifiers ever reach the SQL text; values are returned separately to be
    bound by the driver. `placeholder` renders the bind marker for a column
    ('?' for sqlite3, ':title' for SQLAlchemy text()).

    Raises:
        ValueError: if a key is not an updatable column.
    """
    unknown = sorted(set(changes) - UPDATABLE_COLUMNS)
    if unknown:
        raise ValueError(f"Not updatable: {', '.join(unknown)}")
    assignments = [f"{column} = {placeholder(column)}" for column in changes]
    return assignments, list(changes.values())


# PUBLIC_INTERFACE
class Repository(ABC):
    """Abstract storage contract for users and todos.

    Implementations catch their backend's errors, log them and return the
    sentinel documented on each method instead of raising.
    """

    def __init__(self) -> None:
        self._init_lock = Lock()
        self._initialized = False

    def ensure_initialized(self) -> None:
        """Create the schema once for this repository instance."""
        if self._initialized:
            return
        with self._init_lock:
            if not self._initialized:
                self.init_schema()
                self._initialized = True

    @abstractmethod
    def init_schema(self) -> None:
        """Create tables and indexes if they do not exist. Safe to run repeatedly."""

    # Users

    @abstractmethod
    def create_user(self, username: str, password_hash: str) -> Optional[UserEntity]:
        """Insert a user. Return None on duplicate username or storage error."""

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserEntity]:
        """Return the user with this exact username, or None."""

    @abstractmethod
    def get_user_by_id(self, user_id: int) -> Optional[UserEntity]:
        """Return the user with this id, or None."""

    # Todos

    @abstractmethod
    def create_todo(
        self,
        user_id: int,
        title: str,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        category: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Optional[TodoEntity]:
        """Insert a todo owned by user_id. Return the stored todo, or None on failure."""

    @abstractmethod
    def get_todos_by_user_id(self, user_id: int) -> List[TodoEntity]:
        """Return the user's todos, most recently created first."""

    @abstractmethod
    def get_todo_by_id(self, todo_id: int) -> Optional[TodoEntity]:
        """Return a todo by id, or None if not found."""

    @abstractmethod
    def update_todo(self, todo_id: int, changes: Mapping[str, Any]) -> Optional[TodoEntity]:
        """
        Apply exactly the given columns plus an updated_at refresh in one statement.
        An empty mapping returns the current record untouched. Return the updated
        todo, or None on failure.
        """

    @abstractmethod
    def delete_todo(self, todo_id: int) -> bool:
        """Delete a todo by id. Return True if a row was removed."""

    @abstractmethod
    def get_completed_todo_stats(self, user_id: int) -> TodoStats:
        """Return total and completed counts for the user's todos."""


@lru_cache(maxsize=1)
def _build_repository() -> Repository:
    settings = get_settings()
    if settings.persistence_backend == "postgres":
        from .pg import PostgresRepository

        logger.info("Using PostgreSQL storage backend")
        return PostgresRepository.from_settings(settings)

    from .db import SQLiteRepository

    logger.info("Using SQLite storage backend at %s", settings.sqlite_db_path)
    return SQLiteRepository(settings.sqlite_db_path)


# PUBLIC_INTERFACE
def get_repository() -> Repository:
    """
    Return the process-wide repository for the configured backend.
    - DATABASE_URL set: PostgresRepository
    - otherwise: SQLiteRepository at SQLITE_DB_PATH
    The schema is created on first use.
    """
    repo = _build_repository()
    repo.ensure_initialized()
    return repo
