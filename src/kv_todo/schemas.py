from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import Priority, Todo, TodoStats, as_utc, unique_tags

# Shared type for incoming dueDate which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


# PUBLIC_INTERFACE
def parse_due_date(value: Optional[DueDateInput]) -> Optional[datetime]:
    """
    Normalize due date input into an aware UTC datetime.
    - If value is a string, attempt to parse via datetime.fromisoformat; if time is missing, set to 00:00.
    - If value is a date (not datetime), convert to datetime at 00:00.
    - Naive datetimes are taken to be UTC.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return as_utc(value)

    if isinstance(value, date):
        # Promote a date to a datetime at midnight
        return as_utc(datetime(value.year, value.month, value.day))

    if isinstance(value, str):
        s = value.strip()
        # 'Z' suffix is what JavaScript clients send
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            return as_utc(datetime.fromisoformat(s))
        except ValueError:
            try:
                d = date.fromisoformat(s)
                return as_utc(datetime(d.year, d.month, d.day))
            except ValueError as e:
                raise ValueError(
                    "Invalid date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for date; expected date, datetime, or ISO8601 string.")


def _clean_task(v: str) -> str:
    s = v.strip()
    if not s:
        raise ValueError("Task is required")
    return s


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# PUBLIC_INTERFACE
class TodoCreate(_CamelModel):
    """
    Schema for creating a new Todo item.

    The owner is never part of the body; it comes from the caller's identity.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "task": "Buy milk",
                "dueDate": "2025-02-01",
                "priority": "low",
                "tags": ["groceries"],
            }
        },
    )

    task: str = Field(..., description="Task text; surrounding whitespace is trimmed")
    due_date: Optional[datetime] = Field(
        default=None,
        description="Due date/time. Accepts ISO8601 date or datetime; dates are set to 00:00 UTC",
    )
    priority: Priority = Field(default="medium", description="Priority level")
    tags: List[str] = Field(default_factory=list, description="Free-form tags")

    @field_validator("task")
    @classmethod
    def validate_task(cls, v: str) -> str:
        return _clean_task(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return parse_due_date(v)

    @field_validator("priority", "tags", mode="before")
    @classmethod
    def null_means_default(cls, v, info):
        # null is treated like an absent field
        if v is None:
            return "medium" if info.field_name == "priority" else []
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: List[str]) -> List[str]:
        return unique_tags(v)


# PUBLIC_INTERFACE
class TodoUpdate(_CamelModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided fields will be updated.

    Unknown fields, including ``userId``, are ignored: ownership never changes.
    An explicit ``dueDate: null`` clears the due date.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "task": "Buy oat milk",
                "completed": True,
                "dueDate": "2025-02-02T09:30:00Z",
                "priority": "high",
                "tags": ["groceries", "urgent"],
            }
        },
    )

    task: Optional[str] = Field(default=None, description="Task text")
    completed: Optional[bool] = Field(default=None, description="Completion status flag")
    due_date: Optional[datetime] = Field(default=None, description="Due date/time, or null to clear")
    priority: Optional[Priority] = Field(default=None, description="Priority level")
    tags: Optional[List[str]] = Field(default=None, description="Replacement tag list")

    @field_validator("task")
    @classmethod
    def validate_task(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_task(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def validate_due_date(cls, v: Optional[DueDateInput]) -> Optional[datetime]:
        return parse_due_date(v)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        return None if v is None else unique_tags(v)

    @model_validator(mode="after")
    def reject_explicit_nulls(self) -> "TodoUpdate":
        for name in ("task", "completed", "priority", "tags"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


# PUBLIC_INTERFACE
class TodoEnvelope(BaseModel):
    """Envelope wrapping a single Todo."""

    success: bool = True
    data: Todo


# PUBLIC_INTERFACE
class TodoListEnvelope(BaseModel):
    """Envelope wrapping a list of Todos."""

    success: bool = True
    data: List[Todo]


# PUBLIC_INTERFACE
class StatsEnvelope(BaseModel):
    """Envelope wrapping aggregate statistics."""

    success: bool = True
    data: TodoStats


# PUBLIC_INTERFACE
class MessageEnvelope(BaseModel):
    """Envelope carrying only a human-readable message."""

    success: bool = True
    message: str


# PUBLIC_INTERFACE
class ErrorEnvelope(BaseModel):
    """Envelope returned for every failed request."""

    success: bool = False
    error: str
