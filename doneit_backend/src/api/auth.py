from __future__ import annotations

from fastapi import Depends, Request

from .repositories import Repository, get_repository
from .services import AuthService, TodoService
from .session import SessionData, load_session


# PUBLIC_INTERFACE
def get_current_session(request: Request) -> SessionData:
    """
    Return the session carried by the request's signed cookie.

    An absent, expired or tampered cookie yields an anonymous session; endpoints
    decide whether that is acceptable, so this dependency never raises.
    """
    return load_session(request)


# PUBLIC_INTERFACE
def get_todo_service(repo: Repository = Depends(get_repository)) -> TodoService:
    """Dependency providing a TodoService bound to the configured repository."""
    return TodoService(repo)


# PUBLIC_INTERFACE
def get_auth_service(repo: Repository = Depends(get_repository)) -> AuthService:
    """Dependency providing an AuthService bound to the configured repository."""
    return AuthService(repo)
