from __future__ import annotations

from datetime import datetime
from typing import FrozenSet, Literal, Optional, TypedDict

Priority = Literal["high", "medium", "low"]

PRIORITIES: FrozenSet[str] = frozenset({"high", "medium", "low"})
DEFAULT_PRIORITY: Priority = "medium"
TITLE_MAX_LENGTH = 500

# Fields a client may change on an existing todo
UPDATABLE_FIELDS = ("title", "description", "priority", "category", "completed", "due_date")

# Columns an UPDATE statement may set; completed_at is derived server-side
UPDATABLE_COLUMNS: FrozenSet[str] = frozenset(UPDATABLE_FIELDS) | {"completed_at"}


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered account as stored by the persistence layer.

    Fields:
    - id: Unique integer identifier, assigned on insert
    - username: Unique, case-sensitive login name
    - password_hash: Opaque bcrypt hash; never serialized in responses
    - created_at: Insert timestamp (UTC)
    """

    id: int
    username: str
    password_hash: str
    created_at: datetime


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo item owned by exactly one user.

    Fields:
    - id: Unique integer identifier
    - user_id: Owner; fixed at creation
    - title: 1..500 chars, trimmed
    - description / category: Optional free text
    - priority: 'high', 'medium' or 'low'
    - completed: Completion flag
    - completed_at: Set when the todo becomes completed, cleared when it is reopened
    - due_date: Opaque client-provided string
    - created_at / updated_at: UTC timestamps
    """

    id: int
    user_id: int
    title: str
    description: Optional[str]
    priority: str
    category: Optional[str]
    completed: bool
    completed_at: Optional[datetime]
    due_date: Optional[str]
    created_at: datetime
    updated_at: datetime
