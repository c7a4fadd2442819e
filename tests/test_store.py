import pytest

from kv_todo.db import SQLiteKeyValueStore
from kv_todo.schemas import TodoCreate
from kv_todo.service import TodoService
from kv_todo.settings import Settings, get_settings
from kv_todo.store import InMemoryKeyValueStore, get_kv_store


def make_settings(**overrides):
    values = dict(
        kv_backend="memory",
        sqlite_db_path="./data/kv.db",
        todo_namespace="todos",
        cors_allow_origins=["*"],
        log_level="INFO",
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(params=["memory", "sqlite"])
def kv(request, tmp_path):
    if request.param == "sqlite":
        return SQLiteKeyValueStore(str(tmp_path / "nested" / "kv.db"))
    return InMemoryKeyValueStore()


@pytest.mark.anyio
class TestKeyValueStores:
    async def test_missing_key(self, kv):
        assert await kv.get("absent") is None

    async def test_put_overwrites(self, kv):
        await kv.put("k", "one")
        await kv.put("k", "two")
        assert await kv.get("k") == "two"

    async def test_delete(self, kv):
        await kv.put("k", "v")
        await kv.delete("k")
        assert await kv.get("k") is None
        # Deleting again is not an error
        await kv.delete("k")

    async def test_service_on_sqlite(self, tmp_path, clock):
        path = str(tmp_path / "kv.db")
        service = TodoService(SQLiteKeyValueStore(path), clock=clock)
        todo = await service.create_todo("u1", TodoCreate(task="persisted", tags=["disk"]))

        # A fresh handle on the same file sees the same data
        reopened = TodoService(SQLiteKeyValueStore(path), clock=clock)
        assert await reopened.get_todo(todo.id) == todo
        assert [t.id for t in await reopened.get_user_todos("u1")] == [todo.id]


class TestFactoryAndSettings:
    def test_memory_backend(self):
        assert isinstance(get_kv_store(make_settings()), InMemoryKeyValueStore)

    def test_sqlite_backend(self, tmp_path):
        store = get_kv_store(make_settings(kv_backend="sqlite", sqlite_db_path=str(tmp_path / "kv.db")))
        assert isinstance(store, SQLiteKeyValueStore)

    def test_env_settings(self, monkeypatch):
        monkeypatch.setenv("KV_BACKEND", "SQLite")
        monkeypatch.setenv("TODO_NAMESPACE", "tasks")
        monkeypatch.setenv("CORS_ALLOW_ORIGINS", "http://a.example, http://b.example")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        settings = get_settings()
        assert settings.kv_backend == "sqlite"
        assert settings.todo_namespace == "tasks"
        assert settings.cors_allow_origins == ["http://a.example", "http://b.example"]
        assert settings.log_level == "DEBUG"

    def test_env_fallbacks(self, monkeypatch):
        monkeypatch.setenv("KV_BACKEND", "dynamo")
        monkeypatch.setenv("TODO_NAMESPACE", "bad:prefix")
        monkeypatch.setenv("LOG_LEVEL", "verbose")
        monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
        settings = get_settings()
        assert settings.kv_backend == "memory"
        assert settings.todo_namespace == "todos"
        assert settings.cors_allow_origins == ["*"]
        assert settings.log_level == "INFO"
