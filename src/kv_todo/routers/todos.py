from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request, status

from ..auth import get_user_id
from ..errors import TodoOwnershipError, TodoValidationError
from ..models import Priority, TodoFilters
from ..schemas import (
    ErrorEnvelope,
    MessageEnvelope,
    StatsEnvelope,
    TodoCreate,
    TodoEnvelope,
    TodoListEnvelope,
    TodoUpdate,
    parse_due_date,
)
from ..service import TodoService

router = APIRouter(
    prefix="/api/todos",
    tags=["todos"],
)


# PUBLIC_INTERFACE
def get_todo_service(request: Request) -> TodoService:
    """
    Dependency returning the service for the configured namespace.
    """
    state = request.app.state
    return state.registry.get(state.settings.todo_namespace)


def _parse_bound(name: str, value: Optional[str]) -> Optional[datetime]:
    try:
        return parse_due_date(value)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid {name}: {e}") from e


_NOT_FOUND = {"model": ErrorEnvelope, "description": "Todo not found"}
_BAD_REQUEST = {"model": ErrorEnvelope, "description": "Missing user identity or invalid input"}


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=TodoListEnvelope,
    summary="List Todos",
    description=(
        "List the caller's todos, newest first.\n\n"
        "Query parameters (all optional, combined with AND):\n"
        "- completed: filter by completion status\n"
        "- priority: low, medium or high\n"
        "- tags: comma-separated; a todo matches if it has any of them\n"
        "- dueBefore / dueAfter: ISO8601 bounds on dueDate; todos without a dueDate always match"
    ),
    responses={400: _BAD_REQUEST},
)
async def list_todos(
    user_id: str = Depends(get_user_id),
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    tags: Optional[str] = Query(None, description="Comma-separated tags, any of which must match"),
    due_before: Optional[str] = Query(None, alias="dueBefore", description="Upper bound on dueDate"),
    due_after: Optional[str] = Query(None, alias="dueAfter", description="Lower bound on dueDate"),
    service: TodoService = Depends(get_todo_service),
) -> TodoListEnvelope:
    filters = TodoFilters(
        completed=completed,
        priority=priority,
        tags=tuple(t.strip() for t in tags.split(",") if t.strip()) if tags else (),
        due_before=_parse_bound("dueBefore", due_before),
        due_after=_parse_bound("dueAfter", due_after),
    )
    todos = await service.get_user_todos(user_id, filters)
    return TodoListEnvelope(data=todos)


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=TodoListEnvelope,
    summary="Search Todos",
    description="Case-insensitive substring search over task text and tags.",
    responses={400: _BAD_REQUEST},
)
async def search_todos(
    user_id: str = Depends(get_user_id),
    q: Optional[str] = Query(None, description="Search text"),
    service: TodoService = Depends(get_todo_service),
) -> TodoListEnvelope:
    # Present-but-empty q counts as missing
    if not q:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Query parameter "q" is required')
    return TodoListEnvelope(data=await service.search_todos(user_id, q))


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=StatsEnvelope,
    summary="Todo Statistics",
    description="Total, completed and pending counts plus a per-priority breakdown.",
    responses={400: _BAD_REQUEST},
)
async def todo_stats(
    user_id: str = Depends(get_user_id),
    service: TodoService = Depends(get_todo_service),
) -> StatsEnvelope:
    return StatsEnvelope(data=await service.get_todos_stats(user_id))


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=TodoEnvelope,
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={404: _NOT_FOUND},
)
async def get_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoEnvelope:
    todo = await service.get_todo(todo_id)
    if todo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return TodoEnvelope(data=todo)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=TodoEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item owned by the caller.",
    responses={400: _BAD_REQUEST},
)
async def create_todo(
    payload: TodoCreate = Body(...),
    user_id: str = Depends(get_user_id),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    try:
        todo = await service.create_todo(user_id, payload)
    except TodoValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return TodoEnvelope(data=todo)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=TodoEnvelope,
    summary="Update Todo",
    description="Partially update task, completed, dueDate, priority or tags. The owner cannot be changed.",
    responses={404: _NOT_FOUND, 400: _BAD_REQUEST},
)
async def update_todo(
    todo_id: str,
    payload: TodoUpdate = Body(...),
    service: TodoService = Depends(get_todo_service),
) -> TodoEnvelope:
    try:
        todo = await service.update_todo(todo_id, payload)
    except TodoValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if todo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return TodoEnvelope(data=todo)


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}/toggle",
    response_model=TodoEnvelope,
    summary="Toggle Todo",
    description="Flip the completed flag of a Todo item.",
    responses={404: _NOT_FOUND},
)
async def toggle_todo(todo_id: str, service: TodoService = Depends(get_todo_service)) -> TodoEnvelope:
    todo = await service.toggle_todo(todo_id)
    if todo is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return TodoEnvelope(data=todo)


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=MessageEnvelope,
    summary="Delete Todo",
    description="Delete a Todo item owned by the caller.",
    responses={
        400: _BAD_REQUEST,
        403: {"model": ErrorEnvelope, "description": "Todo belongs to another user"},
        404: _NOT_FOUND,
    },
)
async def delete_todo(
    todo_id: str,
    user_id: str = Depends(get_user_id),
    service: TodoService = Depends(get_todo_service),
) -> MessageEnvelope:
    try:
        deleted = await service.delete_todo(user_id, todo_id)
    except TodoOwnershipError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    return MessageEnvelope(message="Todo deleted successfully")
