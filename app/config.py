"""Environment-driven runtime settings for the CRM automation engine."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Optional, Sequence, Tuple


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_bool(name: str, default: bool, *, alias: Optional[str] = None) -> bool:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float, *, alias: Optional[str] = None) -> float:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""

CONFIG = Settings()


def _compute_values() -> dict[str, object]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"
    is_development = environment != "prod"

    # -----------------------------------------------------------------------
    # SUPABASE
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None)
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None)
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    supabase_jwt_secret = _env_str("SUPABASE_JWT_SECRET", None)
    supabase_configured = bool(supabase_url) and bool(supabase_service_role_key)

    # -----------------------------------------------------------------------
    # OUTBOUND EMAIL (RESEND)
    # -----------------------------------------------------------------------
    resend_api_key = _env_str("RESEND_API_KEY", None)
    resend_from_email = _env_str(
        "RESEND_FROM_EMAIL",
        "DyluxePro <onboarding@resend.dev>",
        empty_to_none=False,
    )
    resend_verified_email = _env_str("RESEND_VERIFIED_EMAIL", None)
    # Rerouting to the verified inbox is only honoured outside production.
    reroute_to_verified = _env_bool("AUTOMATION_REROUTE_TO_VERIFIED", False) and is_development
    brand_name = _env_str("AUTOMATION_BRAND_NAME", "DyluxePro", empty_to_none=False)
    app_base_url = _env_str("APP_BASE_URL", "http://localhost:3000", empty_to_none=False).rstrip("/")

    # -----------------------------------------------------------------------
    # AUTOMATION ENGINE
    # -----------------------------------------------------------------------
    action_timeout_seconds = _env_float("AUTOMATION_ACTION_TIMEOUT_SECONDS", 20.0)
    email_max_attempts = max(1, _env_int("AUTOMATION_EMAIL_MAX_ATTEMPTS", 3))
    retry_base_seconds = _env_float("AUTOMATION_RETRY_BASE_SECONDS", 1.0)
    retry_max_seconds = _env_float("AUTOMATION_RETRY_MAX_SECONDS", 10.0)
    delays_enabled = _env_bool("AUTOMATION_DELAYS_ENABLED", True)
    overdue_scan_hour = min(23, max(0, _env_int("AUTOMATION_OVERDUE_SCAN_HOUR", 8)))
    closed_invoice_statuses = _env_tuple("AUTOMATION_CLOSED_INVOICE_STATUSES", ("Paid", "Cancelled"))

    return {
        "environment": environment,
        "is_development": is_development,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "supabase_jwt_secret": supabase_jwt_secret,
        "supabase_configured": supabase_configured,
        "resend_api_key": resend_api_key,
        "resend_from_email": resend_from_email,
        "resend_verified_email": resend_verified_email,
        "reroute_to_verified": reroute_to_verified,
        "brand_name": brand_name,
        "app_base_url": app_base_url,
        "action_timeout_seconds": action_timeout_seconds,
        "email_max_attempts": email_max_attempts,
        "retry_base_seconds": retry_base_seconds,
        "retry_max_seconds": retry_max_seconds,
        "delays_enabled": delays_enabled,
        "overdue_scan_hour": overdue_scan_hour,
        "closed_invoice_statuses": closed_invoice_statuses,
    }


def reload_config() -> None:
    CONFIG.__dict__.update(_compute_values())


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
