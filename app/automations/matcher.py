"""Load the enabled automation rules an event should fire."""

from __future__ import annotations

import logging
from typing import List, Optional, Union

from app.auth.system_actor import SystemActor
from app.db.models import Automation

from .events import TriggerEvent, event_name, is_known_event

logger = logging.getLogger(__name__)


class RuleMatchError(RuntimeError):
    """Raised when the rule query itself fails (not when nothing matches)."""


def find_matching_rules(
    trigger_event: Union[str, TriggerEvent],
    user_id: str,
    *,
    actor: Optional[SystemActor] = None,
) -> List[Automation]:
    """Return active rules owned by ``user_id`` that listen for ``trigger_event``.

    An empty list is the common case and is not an error.
    """

    name = event_name(trigger_event)
    if not is_known_event(name):
        logger.warning("Ignoring unknown trigger event %r for user_id=%s", name, user_id)
        return []

    actor = actor or SystemActor()
    try:
        rules = actor.active_automations(user_id, name)
    except Exception as exc:
        logger.error(
            "Error fetching automations for event=%s user_id=%s: %s",
            name,
            user_id,
            exc,
        )
        logger.error(
            "This is usually a credentials or row-level security problem; "
            "make sure SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY are set."
        )
        raise RuleMatchError(f"Failed to load automations for event {name}") from exc

    if not rules:
        logger.info("No active automations for event=%s user_id=%s", name, user_id)
    else:
        logger.info(
            "Found %s active automation(s) for event=%s user_id=%s: %s",
            len(rules),
            name,
            user_id,
            [rule.id for rule in rules],
        )
    return rules


__all__ = ["RuleMatchError", "find_matching_rules"]
