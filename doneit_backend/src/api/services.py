from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from .errors import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    StorageError,
    UnauthorizedError,
)
from .models import PRIORITIES, TITLE_MAX_LENGTH, UPDATABLE_FIELDS, TodoEntity, UserEntity
from .repositories import Repository, TodoStats
from .security import hash_password, validate_password, validate_username, verify_password
from .session import SessionData
from .utils import parse_todo_id, utc_now

logger = logging.getLogger(__name__)


def _require_user_id(session: SessionData) -> int:
    user_id = session.authenticated_user_id
    if user_id is None:
        raise UnauthorizedError()
    return user_id


def _clean_title(value: Any, *, required_message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise BadRequestError(required_message)
    title = value.strip()
    if len(title) > TITLE_MAX_LENGTH:
        raise BadRequestError(f"Title must be less than {TITLE_MAX_LENGTH} characters")
    return title


def _clean_optional_text(value: Any, field: str) -> Optional[str]:
    """Trim optional free text; blank becomes None."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise BadRequestError(f"{field.capitalize()} must be a string")
    return value.strip() or None


class TodoService:
    """
    Authorization and payload rules for todo operations.

    Checks run in a fixed order: session, id format, existence, ownership.
    Nothing touches storage before the session check passes.
    """

    def __init__(self, repository: Repository, now_fn: Callable = utc_now) -> None:
        self.repository = repository
        self.now_fn = now_fn

    def _load_owned(self, session: SessionData, raw_todo_id: Any) -> TodoEntity:
        user_id = _require_user_id(session)
        todo_id = parse_todo_id(raw_todo_id)
        if todo_id is None:
            raise BadRequestError("Invalid todo ID")
        todo = self.repository.get_todo_by_id(todo_id)
        if todo is None:
            raise NotFoundError("Todo not found")
        if todo["user_id"] != user_id:
            raise ForbiddenError()
        return todo

    def list_todos(self, session: SessionData) -> List[TodoEntity]:
        return self.repository.get_todos_by_user_id(_require_user_id(session))

    def get_todo(self, session: SessionData, raw_todo_id: Any) -> TodoEntity:
        return self._load_owned(session, raw_todo_id)

    def get_stats(self, session: SessionData) -> TodoStats:
        return self.repository.get_completed_todo_stats(_require_user_id(session))

    def create_todo(self, session: SessionData, payload: Mapping[str, Any]) -> TodoEntity:
        """
        Create a todo for the session's user.

        An absent or unknown priority silently becomes 'medium'. The owner always
        comes from the session, never from the payload.
        """
        user_id = _require_user_id(session)
        title = _clean_title(payload.get("title"), required_message="Title is required")
        priority = payload.get("priority")
        due_date = payload.get("dueDate")
        if due_date is not None and not isinstance(due_date, str):
            raise BadRequestError("Due date must be a string")

        todo = self.repository.create_todo(
            user_id,
            title,
            description=_clean_optional_text(payload.get("description"), "description"),
            priority=priority if priority in PRIORITIES else None,
            category=_clean_optional_text(payload.get("category"), "category"),
            due_date=due_date or None,
        )
        if todo is None:
            raise StorageError("Failed to create todo")
        return todo

    def filter_updates(self, existing: TodoEntity, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Reduce a raw update payload to validated column changes.

        Unknown keys are dropped. A change of `completed` also sets or clears
        completed_at; re-completing a completed todo keeps its timestamp.
        """
        changes: Dict[str, Any] = {}
        for key in UPDATABLE_FIELDS:
            if key not in payload:
                continue
            value = payload[key]
            if key == "title":
                changes[key] = _clean_title(value, required_message="Title cannot be empty")
            elif key == "priority":
                if value not in PRIORITIES:
                    raise BadRequestError("Invalid priority")
                changes[key] = value
            elif key == "completed":
                if not isinstance(value, bool):
                    raise BadRequestError("Completed must be a boolean")
                changes[key] = value
                if value and not existing["completed"]:
                    changes["completed_at"] = self.now_fn()
                elif not value:
                    changes["completed_at"] = None
            elif key == "due_date":
                if value is not None and not isinstance(value, str):
                    raise BadRequestError("Due date must be a string")
                changes[key] = value or None
            else:
                changes[key] = _clean_optional_text(value, key)
        return changes

    def update_todo(self, session: SessionData, raw_todo_id: Any, payload: Mapping[str, Any]) -> TodoEntity:
        existing = self._load_owned(session, raw_todo_id)
        changes = self.filter_updates(existing, payload)
        todo = self.repository.update_todo(existing["id"], changes)
        if todo is None:
            raise StorageError("Failed to update todo")
        return todo

    def delete_todo(self, session: SessionData, raw_todo_id: Any) -> None:
        existing = self._load_owned(session, raw_todo_id)
        if not self.repository.delete_todo(existing["id"]):
            raise StorageError("Failed to delete todo")
        logger.info("User %s deleted todo %s", existing["user_id"], existing["id"])


class AuthService:
    """Registration and login over the credential and user stores."""

    def __init__(self, repository: Repository) -> None:
        self.repository = repository

    def register(self, username: Any, password: Any) -> UserEntity:
        for result in (validate_username(username), validate_password(password)):
            if not result.valid:
                raise BadRequestError(result.error or "Invalid credentials")

        if self.repository.get_user_by_username(username) is not None:
            raise ConflictError("Username already exists")

        user = self.repository.create_user(username, hash_password(password))
        if user is None:
            # A concurrent registration may have won the unique constraint
            if self.repository.get_user_by_username(username) is not None:
                raise ConflictError("Username already exists")
            raise StorageError("Failed to create user")
        logger.info("Registered user %s", user["id"])
        return user

    def login(self, username: Any, password: Any) -> UserEntity:
        if not isinstance(username, str) or not username or not isinstance(password, str) or not password:
            raise BadRequestError("Username and password are required")
        user = self.repository.get_user_by_username(username)
        if user is None or not verify_password(password, user["password_hash"]):
            logger.info("Failed login attempt")
            raise UnauthorizedError("Invalid username or password")
        return user
