"""
Rule-based automations.

Business events raised by the API are matched against each user's active
automation rules; matching rules render their email template against the
event context, send it, and record the attempt in ``automation_runs``.
"""

from .events import (
    LEAD_STAGE_EVENTS,
    ClientEventContext,
    EstimateEventContext,
    EventContext,
    InvoiceEventContext,
    JobEventContext,
    LeadEventContext,
    TriggerEvent,
    build_sample_context,
    is_known_event,
)
from .executor import ActionResult, execute_automation
from .matcher import RuleMatchError, find_matching_rules
from .orchestrator import check_and_execute_automations, fire_and_forget
from .run_log import log_run
from .templates import render_email_html, render_template

__all__ = [
    "LEAD_STAGE_EVENTS",
    "ClientEventContext",
    "EstimateEventContext",
    "EventContext",
    "InvoiceEventContext",
    "JobEventContext",
    "LeadEventContext",
    "TriggerEvent",
    "build_sample_context",
    "is_known_event",
    "ActionResult",
    "execute_automation",
    "RuleMatchError",
    "find_matching_rules",
    "check_and_execute_automations",
    "fire_and_forget",
    "log_run",
    "render_email_html",
    "render_template",
]
