from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

Priority = Literal["low", "medium", "high"]
PRIORITIES: Tuple[Priority, ...] = ("low", "medium", "high")


def as_utc(value: datetime) -> datetime:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def unique_tags(tags: List[str]) -> List[str]:
    """Drop repeated tags, keeping the first occurrence of each."""
    seen = set()
    result: List[str] = []
    for tag in tags:
        if tag not in seen:
            seen.add(tag)
            result.append(tag)
    return result


# PUBLIC_INTERFACE
class Todo(BaseModel):
    """
    A persisted Todo record.

    Fields:
    - id: UUID string minted at creation, immutable
    - task: Non-empty, whitespace-trimmed text
    - completed: Completion flag, False on creation
    - user_id: Owner reference, immutable (``userId`` on the wire)
    - created_at / updated_at: Aware UTC timestamps
    - due_date: Optional aware UTC due timestamp
    - priority: One of low, medium, high
    - tags: Ordered tags without duplicates, never absent

    The same camelCase shape is used for the HTTP body and for the JSON stored
    in the key-value store.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "3f0c8f0e-5d4b-4d59-9a57-0c6f8f3b7a21",
                "task": "Buy milk",
                "completed": False,
                "userId": "u1",
                "createdAt": "2025-01-25T10:15:30.123456Z",
                "updatedAt": "2025-01-25T10:15:30.123456Z",
                "dueDate": "2025-02-01T00:00:00Z",
                "priority": "low",
                "tags": ["groceries"],
            }
        },
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    task: str = Field(..., min_length=1, description="Task text")
    completed: bool = Field(default=False, description="Completion status flag")
    user_id: str = Field(..., min_length=1, description="Owner of the todo item")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    due_date: Optional[datetime] = Field(default=None, description="Optional due date/time")
    priority: Priority = Field(default="medium", description="Priority level")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return as_utc(v)

    @field_validator("due_date")
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return None if v is None else as_utc(v)


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class TodoFilters:
    """
    Optional, conjunctive predicates applied to a user's todos.

    Todos without a due date pass the due_before/due_after clauses.
    """

    completed: Optional[bool] = None
    priority: Optional[Priority] = None
    tags: Tuple[str, ...] = ()
    due_before: Optional[datetime] = None
    due_after: Optional[datetime] = None

    def matches(self, todo: Todo) -> bool:
        if self.completed is not None and todo.completed != self.completed:
            return False
        if self.priority is not None and todo.priority != self.priority:
            return False
        if self.tags and not any(tag in todo.tags for tag in self.tags):
            return False
        if todo.due_date is not None:
            if self.due_before is not None and todo.due_date > as_utc(self.due_before):
                return False
            if self.due_after is not None and todo.due_date < as_utc(self.due_after):
                return False
        return True


class PriorityBreakdown(BaseModel):
    low: int = 0
    medium: int = 0
    high: int = 0


# PUBLIC_INTERFACE
class TodoStats(BaseModel):
    """Aggregate counts over one snapshot of a user's todos."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total: int
    completed: int
    pending: int
    by_priority: PriorityBreakdown
