from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import TodoEntity, UserEntity
from .repositories import TodoStats


# PUBLIC_INTERFACE
class CredentialsIn(BaseModel):
    """
    Username/password body for register and login.
    Format rules are enforced by the account service, not here, so that
    failures come back as {"error": ...} with the rule that was broken.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "Str0ngPass!"}}
    )

    username: Optional[str] = Field(default=None, description="Case-sensitive login name")
    password: Optional[str] = Field(default=None, description="Plaintext password")


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """Public view of an account; the password hash is never included."""

    id: int
    username: str

    @classmethod
    def from_entity(cls, user: UserEntity) -> "UserOut":
        return cls(id=user["id"], username=user["username"])


class AuthResponse(BaseModel):
    success: bool = True
    user: UserOut


class SessionResponse(BaseModel):
    isLoggedIn: bool
    user: Optional[UserOut] = None


class SuccessResponse(BaseModel):
    success: bool = True


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "user_id": 1,
                "title": "Buy milk",
                "description": "Semi-skimmed",
                "priority": "medium",
                "category": "groceries",
                "completed": True,
                "completed_at": "2026-10-17T09:12:44.120331+00:00",
                "due_date": "2026-10-18",
                "created_at": "2026-10-16T18:02:10.552012+00:00",
                "updated_at": "2026-10-17T09:12:44.120331+00:00",
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the todo item")
    user_id: int = Field(..., description="Owner of the todo item")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    priority: str = Field(..., description="One of high, medium, low")
    category: Optional[str] = Field(default=None, description="Optional free-text category")
    completed: bool = Field(..., description="Completion status flag")
    completed_at: Optional[datetime] = Field(default=None, description="When the todo was last completed")
    due_date: Optional[str] = Field(default=None, description="Due date exactly as the client sent it")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")

    @classmethod
    def from_entity(cls, todo: TodoEntity) -> "TodoOut":
        return cls(**todo)


class TodoResponse(BaseModel):
    todo: TodoOut


class TodoListResponse(BaseModel):
    todos: List[TodoOut]


# PUBLIC_INTERFACE
class StatsOut(BaseModel):
    """Completion statistics; completionRate is a whole percentage."""

    model_config = ConfigDict(populate_by_name=True)

    total: int
    completed: int
    completion_rate: int = Field(..., alias="completionRate")

    @classmethod
    def from_stats(cls, stats: TodoStats) -> "StatsOut":
        return cls(total=stats.total, completed=stats.completed, completion_rate=stats.completion_rate)


class StatsResponse(BaseModel):
    stats: StatsOut
