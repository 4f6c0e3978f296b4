"""Direct (non-automation) emails sent by route handlers."""

from __future__ import annotations

import html
import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, status

from app.automations.templates import render_email_html
from app.config import CONFIG
from app.services.email import EmailSender, get_email_sender

logger = logging.getLogger(__name__)


def client_fields(record: Dict[str, Any]) -> Dict[str, Optional[str]]:
    """Pull ``client_id``/``client_name``/``client_email`` from an embedded ``clients`` join."""

    client = record.get("clients")
    if isinstance(client, list):
        client = client[0] if client else None
    if not isinstance(client, dict):
        client = {}
    return {
        "client_id": client.get("id") or record.get("client_id"),
        "client_name": client.get("name") or record.get("client_name"),
        "client_email": client.get("email") or record.get("client_email"),
    }


def require_sender() -> EmailSender:
    sender = get_email_sender()
    if sender is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Email service is not configured",
        )
    return sender


def send_document_email(sender: EmailSender, to: str, subject: str, body: str) -> Optional[str]:
    """Send a primary document email; a provider error becomes a 502."""

    response = sender.send(
        {
            "from": CONFIG.resend_from_email,
            "to": [to],
            "subject": subject,
            "html": render_email_html(subject, html.escape(body)),
        }
    )
    error = response.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to send email: {message}",
        )
    data = response.get("data") or {}
    return data.get("id")


def send_confirmation_email(to: Optional[str], subject: str, body: str) -> None:
    """Best-effort courtesy email; failures are logged only."""

    if not to:
        return
    sender = get_email_sender()
    if sender is None:
        logger.info("Skipping confirmation email to %s: email service not configured", to)
        return
    try:
        response = sender.send(
            {
                "from": CONFIG.resend_from_email,
                "to": [to],
                "subject": subject,
                "html": render_email_html(subject, html.escape(body)),
            }
        )
    except Exception:
        logger.exception("Confirmation email to %s failed", to)
        return
    if response.get("error"):
        logger.warning("Confirmation email to %s failed: %s", to, response["error"])


__all__ = ["client_fields", "require_sender", "send_confirmation_email", "send_document_email"]
