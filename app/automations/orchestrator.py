"""Entry point business handlers call after committing a write.

``check_and_execute_automations`` matches rules, runs each one, and logs
every attempt. It never raises and never returns a value; outcomes are
visible only in ``automation_runs`` and the application logs.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional, Union

from fastapi import BackgroundTasks

from app.auth.system_actor import SystemActor
from app.config import CONFIG
from app.db.models import RUN_SCHEDULED, Automation

from .events import EventContext, TriggerEvent, event_name
from .executor import _UNSET, ActionResult, execute_automation
from .matcher import RuleMatchError, find_matching_rules
from .run_log import log_run

logger = logging.getLogger(__name__)

Scheduler = Callable[[Automation, str, Dict[str, Any], datetime], Any]


def _default_scheduler() -> Scheduler:
    from app.worker.tasks import schedule_delayed_automation

    return schedule_delayed_automation


def _schedule(
    automation: Automation,
    event: str,
    context: Dict[str, Any],
    scheduler: Optional[Scheduler],
) -> Optional[datetime]:
    eta = datetime.now(timezone.utc) + timedelta(days=automation.delay_days)
    try:
        (scheduler or _default_scheduler())(automation, event, context, eta)
    except Exception as exc:
        logger.warning(
            "Could not schedule automation %s for %s (%s); executing immediately",
            automation.id,
            eta.isoformat(),
            exc,
        )
        return None
    return eta


def _run_rule(
    automation: Automation,
    event: str,
    context: Dict[str, Any],
    *,
    actor: SystemActor,
    sender: Any,
    scheduler: Optional[Scheduler],
) -> None:
    logger.info("Executing automation %s (%s)", automation.name, automation.id)

    if automation.delay_days and CONFIG.delays_enabled:
        eta = _schedule(automation, event, context, scheduler)
        if eta is not None:
            scheduled = ActionResult(
                True,
                message=f"Scheduled to run in {automation.delay_days:g} day(s) at {eta.isoformat()}",
            )
            log_run(context["user_id"], automation.id, event, context, scheduled, actor=actor, status=RUN_SCHEDULED)
            return

    if sender is _UNSET:
        result = execute_automation(automation, context)
    else:
        result = execute_automation(automation, context, sender=sender)
    logger.info("Automation %s result: %s", automation.id, result.to_dict())
    log_run(context["user_id"], automation.id, event, context, result, actor=actor)


def check_and_execute_automations(
    trigger_event: Union[str, TriggerEvent],
    context: Union[Mapping[str, Any], EventContext],
    *,
    actor: Optional[SystemActor] = None,
    sender: Any = _UNSET,
    scheduler: Optional[Scheduler] = None,
) -> None:
    """Run every active rule the owner has for ``trigger_event``."""

    name = event_name(trigger_event)
    try:
        if isinstance(context, EventContext):
            context = context.to_context()
        payload: Dict[str, Any] = dict(context or {})
        payload.setdefault("event", name)
        user_id = payload.get("user_id")
        if not isinstance(user_id, str) or not user_id:
            logger.warning("Automation trigger %s skipped: context has no user_id", name)
            return

        actor = actor or SystemActor()
        try:
            rules = find_matching_rules(name, user_id, actor=actor)
        except RuleMatchError:
            return

        for automation in rules:
            try:
                _run_rule(
                    automation,
                    name,
                    dict(payload),
                    actor=actor,
                    sender=sender,
                    scheduler=scheduler,
                )
            except Exception:
                logger.exception("Error executing automation %s", automation.id)
    except Exception:
        logger.exception("Error checking automations for event %s", name)


def fire_and_forget(
    background_tasks: BackgroundTasks,
    trigger_event: Union[str, TriggerEvent],
    context: Union[Mapping[str, Any], EventContext],
) -> None:
    """Queue the automation pipeline to run after the response is sent."""

    if isinstance(context, EventContext):
        context = context.to_context()
    background_tasks.add_task(check_and_execute_automations, event_name(trigger_event), dict(context))


__all__ = ["check_and_execute_automations", "fire_and_forget"]
