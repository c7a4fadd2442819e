from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, Query, status


# PUBLIC_INTERFACE
def get_user_id(
    x_user_id: Optional[str] = Header(default=None, alias="X-User-ID", description="Acting user id"),
    user_id: Optional[str] = Query(default=None, alias="userId", description="Acting user id (fallback)"),
) -> str:
    """
    Resolve the acting user's id from the X-User-ID header, falling back to the
    userId query parameter.

    Raises:
        HTTPException(400) if neither carries a non-blank value. Identity is
        never defaulted.
    """
    for candidate in (x_user_id, user_id):
        if candidate is not None and candidate.strip():
            return candidate.strip()
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User ID is required")
