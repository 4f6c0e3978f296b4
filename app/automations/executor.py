"""Perform the action an automation describes.

``execute_automation`` never raises. It usually runs after the business
write that triggered it has committed, so every failure comes back as an
``ActionResult`` with ``success=False``.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from app.config import CONFIG
from app.db.models import SEND_EMAIL, Automation
from app.services.email import EmailSender, get_email_sender

from .templates import render_email_html, render_template

logger = logging.getLogger(__name__)

RECIPIENT_KEYS = ("client_email", "lead_email", "email")
DEFAULT_SUBJECT = "Automated Email"
MISSING_SENDER_ERROR = "Email service is not configured. Please set RESEND_API_KEY in your environment variables."

_UNSET: Any = object()


class ActionTimeoutError(RuntimeError):
    """Raised when a single action attempt exceeds its time limit."""


@dataclass
class ActionResult:
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.message is not None:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error
        return data


def resolve_recipient(context: Mapping[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """Return ``(recipient, intended_recipient)`` for an event context.

    ``intended_recipient`` is set only when a non-production deployment
    reroutes the message to ``RESEND_VERIFIED_EMAIL``.
    """

    explicit: Optional[str] = None
    for key in RECIPIENT_KEYS:
        value = context.get(key)
        if isinstance(value, str) and value.strip():
            explicit = value.strip()
            break

    verified = CONFIG.resend_verified_email
    if explicit:
        if CONFIG.reroute_to_verified and verified:
            return verified, explicit
        return explicit, None
    if CONFIG.is_development and verified:
        return verified, None
    return None, None


def _send_with_timeout(sender: EmailSender, message: Dict[str, Any], timeout: float) -> Dict[str, Any]:
    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(sender.send, message)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError as exc:
        raise ActionTimeoutError(f"Email send timed out after {timeout:g}s") from exc
    finally:
        pool.shutdown(wait=False)


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or error)
    message = getattr(error, "message", None)
    return str(message or error)


def _deliver(
    sender: EmailSender,
    message: Dict[str, Any],
    recipient: str,
    *,
    automation_id: str,
    sleep: Callable[[float], None],
) -> ActionResult:
    attempts = CONFIG.email_max_attempts
    last_error = "Unknown error"
    for attempt in range(attempts):
        try:
            response = _send_with_timeout(sender, message, CONFIG.action_timeout_seconds)
        except ActionTimeoutError as exc:
            # The provider may still accept the message; sending again could duplicate it.
            logger.error("Email send for automation %s timed out; not retrying: %s", automation_id, exc)
            return ActionResult(False, error=f"Failed to send email: {exc}")
        except Exception as exc:
            last_error = str(exc) or exc.__class__.__name__
        else:
            error = (response or {}).get("error")
            if not error:
                return ActionResult(True, message=f"Email sent successfully to {recipient}")
            last_error = _error_message(error)

        if attempt + 1 < attempts:
            delay = min(CONFIG.retry_max_seconds, CONFIG.retry_base_seconds * (2 ** attempt))
            logger.warning(
                "Email send for automation %s failed (attempt %s/%s), retrying in %ss: %s",
                automation_id,
                attempt + 1,
                attempts,
                delay,
                last_error,
            )
            sleep(delay)

    logger.error("Email send for automation %s failed after %s attempt(s): %s", automation_id, attempts, last_error)
    return ActionResult(False, error=f"Failed to send email: {last_error}")


def _execute_send_email(
    automation: Automation,
    context: Mapping[str, Any],
    sender: Optional[EmailSender],
    sleep: Callable[[float], None],
) -> ActionResult:
    if sender is None:
        return ActionResult(False, error=MISSING_SENDER_ERROR)

    payload = automation.action_payload
    if not isinstance(payload, dict):
        return ActionResult(False, error="Invalid action payload for send_email: expected an object")

    subject = render_template(str(payload.get("subject") or DEFAULT_SUBJECT), context)
    body = render_template(str(payload.get("body") or ""), context, escape=True)

    recipient, intended = resolve_recipient(context)
    if not recipient:
        return ActionResult(False, error="No recipient email address available in the event context")
    if intended:
        logger.info("Rerouting automation %s email from %s to %s", automation.id, intended, recipient)

    message = {
        "from": CONFIG.resend_from_email,
        "to": [recipient],
        "subject": subject,
        "html": render_email_html(subject, body, intended_recipient=intended),
    }
    return _deliver(sender, message, recipient, automation_id=automation.id, sleep=sleep)


def execute_automation(
    automation: Union[Automation, Dict[str, Any]],
    context: Mapping[str, Any],
    *,
    sender: Optional[EmailSender] = _UNSET,
    sleep: Callable[[float], None] = time.sleep,
) -> ActionResult:
    """Run one automation against an event context."""

    try:
        if isinstance(automation, dict):
            automation = Automation.from_record(automation)

        if automation.action_type == SEND_EMAIL:
            if sender is _UNSET:
                sender = get_email_sender()
            return _execute_send_email(automation, context, sender, sleep)

        return ActionResult(False, error=f"Unknown action type: {automation.action_type}")
    except Exception as exc:
        logger.exception("Error executing automation %s", getattr(automation, "id", None))
        return ActionResult(False, error=str(exc) or "Unknown error")


__all__ = [
    "ActionResult",
    "ActionTimeoutError",
    "execute_automation",
    "resolve_recipient",
]
