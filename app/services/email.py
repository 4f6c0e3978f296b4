"""Outbound transactional email through Resend."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol

import resend
from resend.exceptions import ResendError

from app.config import CONFIG

logger = logging.getLogger(__name__)


class EmailConfigurationError(RuntimeError):
    """Raised when the email provider credential is missing."""


class EmailSender(Protocol):
    def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        """Send ``{from, to, subject, html}`` and return ``{"data": {"id"}, "error": ...}``."""


class ResendEmailSender:
    """Thin wrapper around the Resend SDK returning ``{data, error}`` results."""

    def __init__(self, api_key: Optional[str], *, default_from: Optional[str] = None):
        if not api_key:
            raise EmailConfigurationError(
                "Email service is not configured. Please set RESEND_API_KEY in your environment variables."
            )
        self._api_key = api_key
        self._default_from = default_from

    def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        recipients: List[str] = [addr for addr in (message.get("to") or []) if addr]
        if not recipients:
            return {"data": None, "error": {"message": "Missing recipients"}}

        params = {
            "from": message.get("from") or self._default_from,
            "to": recipients,
            "subject": message.get("subject") or "",
            "html": message.get("html") or "",
        }
        resend.api_key = self._api_key
        try:
            response = resend.Emails.send(params)
        except ResendError as exc:
            logger.warning("Resend rejected email to %s: %s", recipients, exc)
            return {"data": None, "error": {"message": str(exc)}}

        message_id = response.get("id") if isinstance(response, dict) else getattr(response, "id", None)
        return {"data": {"id": message_id}, "error": None}


def get_email_sender() -> Optional[EmailSender]:
    """Return a configured sender, or ``None`` when ``RESEND_API_KEY`` is absent."""

    if not CONFIG.resend_api_key:
        return None
    return ResendEmailSender(CONFIG.resend_api_key, default_from=CONFIG.resend_from_email)


__all__ = [
    "EmailConfigurationError",
    "EmailSender",
    "ResendEmailSender",
    "get_email_sender",
]
