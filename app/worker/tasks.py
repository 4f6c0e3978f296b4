"""Celery task definitions for deferred automations.

Two kinds of work run here instead of inside an API request:

* rules whose ``send_email`` payload carries ``delay_days``; the orchestrator
  enqueues them with an ETA and the worker executes them when due;
* the periodic overdue-invoice scan, which is the only producer of the
  ``invoice_overdue`` event.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional

from celery.utils.log import get_task_logger

from app.auth.system_actor import SystemActor
from app.automations.events import InvoiceEventContext, TriggerEvent
from app.automations.executor import execute_automation
from app.automations.matcher import RuleMatchError, find_matching_rules
from app.automations.run_log import log_run
from app.config import CONFIG
from app.db.models import Automation

from .celery_app import celery_app


logger = get_task_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _days_overdue_threshold(automation: Automation) -> int:
    payload = automation.action_payload if isinstance(automation.action_payload, dict) else {}
    try:
        value = int(payload.get("days_overdue") or 1)
    except (TypeError, ValueError):
        return 1
    return max(value, 1)


def _client_fields(record: Dict[str, Any]) -> Dict[str, Any]:
    client = record.get("clients")
    if isinstance(client, list):
        client = client[0] if client else None
    if not isinstance(client, dict):
        return {}
    return {
        "client_id": client.get("id"),
        "client_name": client.get("name"),
        "client_email": client.get("email"),
    }


def overdue_invoice_context(user_id: str, invoice: Dict[str, Any], days_overdue: int) -> InvoiceEventContext:
    return InvoiceEventContext(
        event=TriggerEvent.INVOICE_OVERDUE,
        user_id=user_id,
        invoice_id=invoice.get("id"),
        invoice_number=invoice.get("invoice_number"),
        amount=invoice.get("balance_due", invoice.get("total")),
        invoice_total=invoice.get("total"),
        due_date=invoice.get("due_date"),
        days_overdue=days_overdue,
        **_client_fields(invoice),
    )


def schedule_delayed_automation(
    automation: Automation,
    event: str,
    context: Dict[str, Any],
    eta: datetime,
) -> str:
    """Enqueue ``run_delayed_automation`` to run at ``eta``; returns the task id."""

    async_result = run_delayed_automation.apply_async(
        kwargs={
            "automation_id": automation.id,
            "user_id": automation.user_id,
            "event": event,
            "context": context,
        },
        eta=eta,
    )
    logger.info("Scheduled automation %s for %s (task %s)", automation.id, eta.isoformat(), async_result.id)
    return async_result.id


@celery_app.task(name="automations.run_delayed")
def run_delayed_automation(
    automation_id: str,
    user_id: str,
    event: str,
    context: Dict[str, Any],
) -> Dict[str, Any]:
    """Execute a rule that was deferred by its ``delay_days``."""

    actor = SystemActor()
    automation = actor.get_automation(user_id, automation_id)
    if automation is None or not automation.is_active:
        logger.info("Skipping delayed automation %s: deleted or deactivated", automation_id)
        return {"automation_id": automation_id, "status": "skipped"}

    result = execute_automation(automation, context)
    log_run(user_id, automation.id, event, context, result, actor=actor)
    return {"automation_id": automation_id, "status": "executed", "result": result.to_dict()}


@celery_app.task(name="automations.scan_overdue_invoices")
def scan_overdue_invoices(today: Optional[str] = None) -> Dict[str, Any]:
    """Fire ``invoice_overdue`` rules for invoices exactly ``days_overdue`` past due.

    Matching on the exact day keeps a daily scan from emailing the same
    invoice again on later days; invoices the rule already reached
    successfully are skipped, so a second run on the same day is harmless.
    """

    reference = date.fromisoformat(today) if today else _utcnow().date()
    closed = {status.lower() for status in CONFIG.closed_invoice_statuses}
    event = TriggerEvent.INVOICE_OVERDUE.value
    actor = SystemActor()
    executed = 0

    try:
        owners = actor.owners_for_event(event)
    except Exception:
        logger.exception("Overdue invoice scan could not list automation owners")
        return {"date": reference.isoformat(), "executed": 0}

    for user_id in owners:
        try:
            rules = find_matching_rules(event, user_id, actor=actor)
        except RuleMatchError:
            continue

        for automation in rules:
            threshold = _days_overdue_threshold(automation)
            due_date = (reference - timedelta(days=threshold)).isoformat()
            try:
                invoices = actor.invoices_due_on(user_id, due_date)
            except Exception:
                logger.exception("Overdue invoice lookup failed for user %s", user_id)
                continue

            for invoice in invoices:
                if str(invoice.get("status") or "").lower() in closed:
                    continue
                try:
                    notified = actor.invoice_already_notified(user_id, automation.id, str(invoice.get("id")))
                except Exception:
                    logger.exception("Could not check earlier runs for invoice %s; skipping", invoice.get("id"))
                    continue
                if notified:
                    logger.info("Invoice %s already notified by automation %s", invoice.get("id"), automation.id)
                    continue
                context = overdue_invoice_context(user_id, invoice, threshold).to_context()
                result = execute_automation(automation, context)
                log_run(user_id, automation.id, event, context, result, actor=actor)
                executed += 1

    logger.info("Overdue invoice scan for %s executed %s automation(s)", reference.isoformat(), executed)
    return {"date": reference.isoformat(), "executed": executed}


__all__ = [
    "overdue_invoice_context",
    "run_delayed_automation",
    "scan_overdue_invoices",
    "schedule_delayed_automation",
]
