from __future__ import annotations

import logging
import logging.config
import os
from contextvars import ContextVar
from dataclasses import dataclass
from typing import List

# Id of the request being served; set by the request-id middleware in kv_todo.main
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - KV_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/kv.db'
    - TODO_NAMESPACE: key prefix reserved for todo records. Default 'todos'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - LOG_LEVEL: root log level for the app loggers. Default 'INFO'
    """

    kv_backend: str
    sqlite_db_path: str
    todo_namespace: str
    cors_allow_origins: List[str]
    log_level: str


_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("KV_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    sqlite_path = _get_env("SQLITE_DB_PATH", "./data/kv.db").strip()

    # The namespace prefix is joined with ':' to build keys, so it may not contain one
    namespace = _get_env("TODO_NAMESPACE", "todos").strip()
    if not namespace or ":" in namespace:
        namespace = "todos"

    origins = _parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*"))
    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in _LOG_LEVELS:
        log_level = "INFO"

    return Settings(
        kv_backend=backend,
        sqlite_db_path=sqlite_path,
        todo_namespace=namespace,
        cors_allow_origins=origins,
        log_level=log_level,
    )


class RequestIdFilter(logging.Filter):
    """Attach the current request id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


# PUBLIC_INTERFACE
def configure_logging(settings: Settings) -> None:
    """
    Configure the 'kv_todo' logger tree.

    Every record carries the current request id (or '-' outside a request).
    """
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "filters": {
                "request_id": {"()": RequestIdFilter},
            },
            "formatters": {
                "verbose": {
                    "format": "{asctime} {levelname} [{request_id}] {name}: {message}",
                    "style": "{",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "verbose",
                    "filters": ["request_id"],
                },
            },
            "loggers": {
                "kv_todo": {
                    "handlers": ["console"],
                    "level": settings.log_level,
                    "propagate": True,
                },
            },
        }
    )
