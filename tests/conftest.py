import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("KV_BACKEND", "memory")

from kv_todo.main import app  # noqa: E402
from kv_todo.routers.todos import get_todo_service
from kv_todo.service import TodoService
from kv_todo.store import InMemoryKeyValueStore


class TickingClock:
    """Deterministic clock advancing by a fixed step on every call."""

    def __init__(self, start=datetime(2025, 1, 1, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        self.now = self.now + self.step
        return self.now


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def store():
    return InMemoryKeyValueStore()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def service(store, clock):
    return TodoService(store, prefix="todos", clock=clock)


@pytest.fixture
def client(service):
    app.dependency_overrides[get_todo_service] = lambda: service
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
