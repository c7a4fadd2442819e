from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping


# PUBLIC_INTERFACE
def error_envelope(error: str) -> Dict[str, Any]:
    """
    Build the failure envelope shared by every endpoint.

    Returns:
        Dict with keys: success (always False), error.
    """
    return {"success": False, "error": error}


# PUBLIC_INTERFACE
def describe_validation_errors(errors: Iterable[Mapping[str, Any]]) -> str:
    """
    Flatten pydantic/fastapi error details into one human-readable line,
    e.g. "body.task: Value error, Task is required".
    """
    parts = []
    for err in errors:
        loc = ".".join(str(p) for p in err.get("loc", ()))
        msg = str(err.get("msg", "Invalid value"))
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Request validation failed"
