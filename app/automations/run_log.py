"""Best-effort audit trail of automation executions (``automation_runs``)."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

from app.auth.system_actor import SystemActor
from app.db.models import RUN_ERROR, RUN_SUCCESS, AutomationRun

from .events import TriggerEvent, event_name
from .executor import ActionResult

logger = logging.getLogger(__name__)


def _jsonable(value: Any) -> Any:
    return json.loads(json.dumps(value, default=str))


def log_run(
    user_id: str,
    automation_id: str,
    event: Union[str, TriggerEvent],
    context: Mapping[str, Any],
    result: Union[ActionResult, Dict[str, Any]],
    *,
    actor: Optional[SystemActor] = None,
    status: Optional[str] = None,
) -> None:
    """Persist one run row. Failures are logged and swallowed."""

    try:
        output = result.to_dict() if isinstance(result, ActionResult) else dict(result)
        if status is None:
            status = RUN_SUCCESS if output.get("success") else RUN_ERROR
        run = AutomationRun(
            user_id=user_id,
            automation_id=automation_id,
            event=event_name(event),
            input=_jsonable(dict(context)),
            result=status,
            output=_jsonable(output),
        )
        (actor or SystemActor()).record_run(user_id, run.to_record())
    except Exception:
        logger.exception("Error logging automation run for automation %s", automation_id)


__all__ = ["log_run"]
