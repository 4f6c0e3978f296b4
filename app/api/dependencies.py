"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import Depends, Header, HTTPException, status

from ..auth import require_auth
from ..db import DatabaseClient, get_database_client


def get_authenticated_user(authorization: str = Header(None)) -> Dict[str, Any]:
    """Return authenticated Supabase user details (ID, email, metadata)."""

    if not authorization:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authorization header required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authorization header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_info = require_auth(authorization)
    metadata = user_info.get("metadata") or {}
    if not isinstance(metadata, dict):
        metadata = {}

    return {
        "id": user_info.get("id"),
        "email": user_info.get("email"),
        "metadata": metadata,
    }


def get_current_user_id(user: Dict[str, Any] = Depends(get_authenticated_user)) -> str:
    """Resolve the authenticated Supabase user id from the Authorization header."""

    return user["id"]


def get_database() -> DatabaseClient:
    """Return the shared database client instance."""

    try:
        return get_database_client()
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database client is not configured",
        ) from exc
