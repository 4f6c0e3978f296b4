"""Tests for shared FastAPI dependency helpers."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from app.api import dependencies


def test_get_authenticated_user_requires_header() -> None:
    with pytest.raises(HTTPException) as exc:
        dependencies.get_authenticated_user(authorization=None)

    assert exc.value.status_code == 401


def test_get_authenticated_user_rejects_missing_bearer_prefix() -> None:
    with pytest.raises(HTTPException) as exc:
        dependencies.get_authenticated_user("Token abc")

    assert exc.value.status_code == 401


def test_get_authenticated_user_returns_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_require_auth(header: str):
        assert header == "Bearer abc"
        return {"id": "user-1", "email": "u@example.com", "metadata": None}

    monkeypatch.setattr(dependencies, "require_auth", fake_require_auth)

    result = dependencies.get_authenticated_user("Bearer abc")
    assert result == {"id": "user-1", "email": "u@example.com", "metadata": {}}


def test_get_current_user_id_returns_value() -> None:
    assert dependencies.get_current_user_id({"id": "user-123"}) == "user-123"


def test_get_database_unconfigured_returns_503(monkeypatch: pytest.MonkeyPatch) -> None:
    def broken():
        raise ValueError("Missing Supabase configuration")

    monkeypatch.setattr(dependencies, "get_database_client", broken)

    with pytest.raises(HTTPException) as exc:
        dependencies.get_database()

    assert exc.value.status_code == 503
