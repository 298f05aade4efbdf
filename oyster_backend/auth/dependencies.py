from __future__ import annotations

from fastapi import Header, HTTPException


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    """Return the acting user's id from the ``X-User-Id`` header, or ``None``."""
    return x_user_id or None


def require_user(x_user_id: str | None = Header(default=None)) -> str:
    """Raise 401 if the request does not name an acting user."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return x_user_id
