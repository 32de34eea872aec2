from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, status

from ..auth import get_current_session, get_todo_service
from ..schemas import (
    StatsOut,
    StatsResponse,
    SuccessResponse,
    TodoListResponse,
    TodoOut,
    TodoResponse,
)
from ..services import TodoService
from ..session import SessionData

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
)

_ERRORS = {
    400: {"description": "Validation error or invalid todo ID"},
    401: {"description": "Not logged in"},
    403: {"description": "Todo belongs to another user"},
    404: {"description": "Todo not found"},
    500: {"description": "Storage failure"},
}


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TodoListResponse,
    summary="List Todos",
    description="List the current user's todos, most recently created first.",
    responses={401: _ERRORS[401]},
)
def list_todos(
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> TodoListResponse:
    todos = service.list_todos(session)
    return TodoListResponse(todos=[TodoOut.from_entity(t) for t in todos])


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TodoResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description=(
        "Create a todo owned by the current user.\n\n"
        "Body keys: title (required), description, priority (high|medium|low, "
        "anything else becomes medium), category, dueDate."
    ),
    responses={code: _ERRORS[code] for code in (400, 401, 500)},
)
def create_todo(
    payload: Dict[str, Any] = Body(..., examples=[{"title": "Buy milk", "priority": "high", "dueDate": "2026-10-18"}]),
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    todo = service.create_todo(session, payload)
    return TodoResponse(todo=TodoOut.from_entity(todo))


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Completion Stats",
    description="Total todos, completed todos and the completion rate as a whole percentage.",
    responses={401: _ERRORS[401]},
)
def get_stats(
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> StatsResponse:
    return StatsResponse(stats=StatsOut.from_stats(service.get_stats(session)))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Get Todo",
    description="Get one of the current user's todos by ID.",
    responses={code: _ERRORS[code] for code in (400, 401, 403, 404)},
)
def get_todo(
    todo_id: str,
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    return TodoResponse(todo=TodoOut.from_entity(service.get_todo(session, todo_id)))


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=TodoResponse,
    summary="Update Todo",
    description=(
        "Partially update a todo. Recognized keys: title, description, priority, "
        "category, completed, due_date; other keys are ignored."
    ),
    responses=_ERRORS,
)
def patch_todo(
    todo_id: str,
    payload: Dict[str, Any] = Body(..., examples=[{"completed": True}]),
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> TodoResponse:
    todo = service.update_todo(session, todo_id, payload)
    return TodoResponse(todo=TodoOut.from_entity(todo))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=SuccessResponse,
    summary="Delete Todo",
    description="Delete one of the current user's todos.",
    responses=_ERRORS,
)
def delete_todo(
    todo_id: str,
    session: SessionData = Depends(get_current_session),
    service: TodoService = Depends(get_todo_service),
) -> SuccessResponse:
    service.delete_todo(session, todo_id)
    return SuccessResponse()
