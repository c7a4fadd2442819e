from __future__ import annotations


class TodoServiceError(Exception):
    """Base class for errors raised by the todo store service."""


# PUBLIC_INTERFACE
class TodoValidationError(TodoServiceError, ValueError):
    """Input rejected before anything is persisted (empty task, missing user id)."""


# PUBLIC_INTERFACE
class TodoOwnershipError(TodoServiceError):
    """
    The acting user does not own the target todo.

    Distinct from "not found": the record exists, the caller may not touch it.
    """

    def __init__(self, todo_id: str, user_id: str) -> None:
        super().__init__(f"Todo {todo_id} does not belong to user {user_id}")
        self.todo_id = todo_id
        self.user_id = user_id


# PUBLIC_INTERFACE
class DataIntegrityError(TodoServiceError):
    """A stored record or index could not be decoded."""

    def __init__(self, key: str, reason: str) -> None:
        super().__init__(f"Corrupt value stored at {key!r}: {reason}")
        self.key = key
        self.reason = reason
