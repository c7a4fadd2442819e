"""
Todo store service.

Maps per-user todo collections onto a plain key-value store. Two key families
live under one reserved namespace prefix:

- ``<prefix>:<id>``: the JSON-encoded Todo record
- ``<prefix>:user:<user_id>``: the JSON-encoded list of that user's todo ids

The store has no transactions, so every operation that touches both keys
writes them in a fixed order. A reader that finds an id in an index can
always load the record, because records are written before their index entry
is added and are deleted only after their index entry is removed. An
interruption can still leave a record that no index points at; that is the
accepted failure mode.
"""
from __future__ import annotations

import asyncio
import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from pydantic import TypeAdapter, ValidationError

from .errors import DataIntegrityError, TodoOwnershipError, TodoValidationError
from .models import PRIORITIES, PriorityBreakdown, Todo, TodoFilters, TodoStats, unique_tags
from .schemas import TodoCreate, TodoUpdate
from .store import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_INDEX_ADAPTER = TypeAdapter(List[str])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class TodoService:
    """
    Entity-level todo operations on top of a KeyValueStore.

    "Not found" is reported as None (or False for delete), never raised.
    """

    def __init__(self, store: KeyValueStore, prefix: str = "todos", clock: Optional[Clock] = None) -> None:
        # Record and index keys share the prefix; a ":" in it would let them collide
        if not prefix or ":" in prefix:
            raise ValueError(f"Invalid namespace prefix {prefix!r}")
        self._store = store
        self._prefix = prefix
        self._clock: Clock = clock or _utcnow

    @property
    def prefix(self) -> str:
        return self._prefix

    # Keys

    def record_key(self, todo_id: str) -> str:
        return f"{self._prefix}:{todo_id}"

    def index_key(self, user_id: str) -> str:
        return f"{self._prefix}:user:{user_id}"

    # Codec

    def _decode_record(self, key: str, raw: str) -> Todo:
        try:
            return Todo.model_validate_json(raw)
        except ValidationError as e:
            raise DataIntegrityError(key, str(e)) from e

    def _encode_record(self, todo: Todo) -> str:
        return todo.model_dump_json(by_alias=True, exclude_none=True)

    async def _read_index(self, user_id: str) -> List[str]:
        key = self.index_key(user_id)
        raw = await self._store.get(key)
        if raw is None:
            return []
        try:
            return _INDEX_ADAPTER.validate_json(raw)
        except ValidationError as e:
            raise DataIntegrityError(key, str(e)) from e

    async def _write_index(self, user_id: str, ids: List[str]) -> None:
        await self._store.put(self.index_key(user_id), json.dumps(ids))

    async def _write_record(self, todo: Todo) -> None:
        await self._store.put(self.record_key(todo.id), self._encode_record(todo))

    # Operations

    async def create_todo(self, user_id: str, data: TodoCreate) -> Todo:
        """
        Create a todo owned by user_id.

        The record is written before the id is appended to the user's index.
        Two concurrent creates for the same user can both read the index before
        either writes it, in which case one id is lost from the index while its
        record survives.
        """
        if not user_id or not user_id.strip():
            raise TodoValidationError("User ID is required")
        task = data.task.strip()
        if not task:
            raise TodoValidationError("Task is required")

        now = self._clock()
        todo = Todo(
            id=str(uuid.uuid4()),
            task=task,
            completed=False,
            user_id=user_id,
            created_at=now,
            updated_at=now,
            due_date=data.due_date,
            priority=data.priority,
            tags=unique_tags(data.tags),
        )

        await self._write_record(todo)

        ids = await self._read_index(user_id)
        ids.append(todo.id)
        await self._write_index(user_id, ids)

        logger.debug("Created todo %s for user %s", todo.id, user_id)
        return todo

    async def get_todo(self, todo_id: str) -> Optional[Todo]:
        # Minted ids never contain ':'; anything else would address an index key
        if not todo_id or ":" in todo_id:
            return None
        key = self.record_key(todo_id)
        raw = await self._store.get(key)
        if raw is None:
            return None
        return self._decode_record(key, raw)

    async def update_todo(self, todo_id: str, patch: TodoUpdate) -> Optional[Todo]:
        """
        Merge the explicitly set fields of patch over the stored record.

        The owner never changes, so the user index is left alone. Any caller
        may update any todo; there is no ownership check here.
        """
        existing = await self.get_todo(todo_id)
        if existing is None:
            return None

        changes = patch.model_dump(exclude_unset=True)
        if "task" in changes:
            changes["task"] = changes["task"].strip()
            if not changes["task"]:
                raise TodoValidationError("Task is required")
        if "tags" in changes:
            changes["tags"] = unique_tags(changes["tags"])
        changes["updated_at"] = self._clock()

        updated = Todo.model_validate({**existing.model_dump(), **changes})

        await self._write_record(updated)
        logger.debug("Updated todo %s (%s)", todo_id, ", ".join(sorted(changes)))
        return updated

    async def toggle_todo(self, todo_id: str) -> Optional[Todo]:
        existing = await self.get_todo(todo_id)
        if existing is None:
            return None
        return await self.update_todo(todo_id, TodoUpdate(completed=not existing.completed))

    async def delete_todo(self, user_id: str, todo_id: str) -> bool:
        """
        Delete a todo owned by user_id.

        Returns False if the todo does not exist and raises TodoOwnershipError
        if it belongs to someone else. The id is removed from the owner's index
        before the record is deleted.
        """
        existing = await self.get_todo(todo_id)
        if existing is None:
            return False
        if existing.user_id != user_id:
            logger.warning("User %s attempted to delete todo %s owned by %s", user_id, todo_id, existing.user_id)
            raise TodoOwnershipError(todo_id, user_id)

        ids = await self._read_index(existing.user_id)
        await self._write_index(existing.user_id, [i for i in ids if i != todo_id])

        await self._store.delete(self.record_key(todo_id))
        logger.debug("Deleted todo %s for user %s", todo_id, user_id)
        return True

    async def get_user_todos(self, user_id: str, filters: Optional[TodoFilters] = None) -> List[Todo]:
        """
        Load every todo in user_id's index, newest first.

        Records are fetched concurrently; ids whose record is missing are
        skipped. Ordering comes from created_at only, never from fetch order.
        """
        ids = await self._read_index(user_id)
        records = await asyncio.gather(*(self.get_todo(todo_id) for todo_id in ids))

        todos: List[Todo] = []
        for todo_id, todo in zip(ids, records):
            if todo is None:
                logger.warning("Index for user %s references missing todo %s", user_id, todo_id)
                continue
            if filters is None or filters.matches(todo):
                todos.append(todo)

        todos.sort(key=lambda t: t.created_at, reverse=True)
        return todos

    async def search_todos(self, user_id: str, query: str) -> List[Todo]:
        """Case-insensitive substring match against task text and tags."""
        needle = query.casefold()
        return [
            todo
            for todo in await self.get_user_todos(user_id)
            if needle in todo.task.casefold() or any(needle in tag.casefold() for tag in todo.tags)
        ]

    async def get_todos_stats(self, user_id: str) -> TodoStats:
        todos = await self.get_user_todos(user_id)
        completed = sum(1 for t in todos if t.completed)
        by_priority = {p: sum(1 for t in todos if t.priority == p) for p in PRIORITIES}
        return TodoStats(
            total=len(todos),
            completed=completed,
            pending=len(todos) - completed,
            by_priority=PriorityBreakdown(**by_priority),
        )

    async def repair_user_index(self, user_id: str) -> List[str]:
        """
        Drop index entries that point at missing or foreign records and
        collapse duplicates. Idempotent; returns the removed ids.

        Records missing from the index cannot be found without a key scan and
        are left as they are.
        """
        ids = await self._read_index(user_id)
        records = await asyncio.gather(*(self.get_todo(todo_id) for todo_id in ids))

        kept: List[str] = []
        removed: List[str] = []
        for todo_id, todo in zip(ids, records):
            if todo is None or todo.user_id != user_id or todo_id in kept:
                removed.append(todo_id)
            else:
                kept.append(todo_id)

        if removed:
            await self._write_index(user_id, kept)
            logger.warning("Repaired index for user %s, removed %s", user_id, removed)
        return removed


# PUBLIC_INTERFACE
class TodoServiceRegistry:
    """
    One TodoService per namespace, sharing a single store handle.

    Owned by the application's composition root rather than held globally.
    """

    def __init__(self, store: KeyValueStore, clock: Optional[Clock] = None) -> None:
        self._store = store
        self._clock = clock
        self._services: Dict[str, TodoService] = {}

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def get(self, namespace: str = "todos") -> TodoService:
        service = self._services.get(namespace)
        if service is None:
            service = TodoService(self._store, prefix=namespace, clock=self._clock)
            self._services[namespace] = service
        return service

    def clear(self) -> None:
        self._services.clear()
