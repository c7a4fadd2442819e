"""
KV Todo package.

Per-user todo lists stored in a plain key-value store. The FastAPI app lives in
``kv_todo.main``; the storage-access layer in ``kv_todo.service``.
"""

__version__ = "0.1.0"
