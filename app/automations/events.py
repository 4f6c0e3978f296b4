"""Business events that can trigger automations, and their context payloads."""

from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Union


class TriggerEvent(str, Enum):
    """Fixed vocabulary of trigger events an automation can listen for."""

    CLIENT_CREATED = "client_created"
    ESTIMATE_SENT = "estimate_sent"
    ESTIMATE_APPROVED = "estimate_approved"
    INVOICE_SENT = "invoice_sent"
    INVOICE_OVERDUE = "invoice_overdue"
    JOB_COMPLETED = "job_completed"
    LEAD_CREATED = "lead_created"
    LEAD_ESTIMATE_SENT = "lead_estimate_sent"
    LEAD_APPROVED = "lead_approved"
    LEAD_JOB_SCHEDULED = "lead_job_scheduled"
    LEAD_COMPLETED = "lead_completed"


EVENT_NAMES = frozenset(event.value for event in TriggerEvent)

# Pipeline stage a lead moves into -> event raised for the move.
LEAD_STAGE_EVENTS: Dict[str, TriggerEvent] = {
    "New Leads": TriggerEvent.LEAD_CREATED,
    "Estimate Sent": TriggerEvent.LEAD_ESTIMATE_SENT,
    "Approved": TriggerEvent.LEAD_APPROVED,
    "Job Scheduled": TriggerEvent.LEAD_JOB_SCHEDULED,
    "Completed": TriggerEvent.LEAD_COMPLETED,
}


def is_known_event(name: Any) -> bool:
    if isinstance(name, TriggerEvent):
        return True
    return isinstance(name, str) and name in EVENT_NAMES


def event_name(event: Union[str, TriggerEvent]) -> str:
    return event.value if isinstance(event, TriggerEvent) else str(event)


@dataclass(frozen=True)
class EventContext:
    """Fields every event carries. Subclasses add what their event guarantees."""

    event: Union[str, TriggerEvent]
    user_id: str
    user_email: Optional[str] = None

    def to_context(self) -> Dict[str, Any]:
        """Flatten into the key-value map templates are rendered against."""
        data: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            if isinstance(value, Enum):
                value = value.value
            data[item.name] = value
        return data


@dataclass(frozen=True)
class ClientEventContext(EventContext):
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    client_phone: Optional[str] = None


@dataclass(frozen=True)
class EstimateEventContext(EventContext):
    estimate_id: Optional[str] = None
    estimate_number: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    amount: Optional[Any] = None


@dataclass(frozen=True)
class InvoiceEventContext(EventContext):
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None
    amount: Optional[Any] = None
    invoice_total: Optional[Any] = None
    due_date: Optional[str] = None
    days_overdue: Optional[int] = None


@dataclass(frozen=True)
class JobEventContext(EventContext):
    job_id: Optional[str] = None
    job_title: Optional[str] = None
    client_id: Optional[str] = None
    client_name: Optional[str] = None
    client_email: Optional[str] = None


@dataclass(frozen=True)
class LeadEventContext(EventContext):
    lead_id: Optional[str] = None
    lead_name: Optional[str] = None
    lead_email: Optional[str] = None
    lead_phone: Optional[str] = None
    lead_address: Optional[str] = None
    old_status: Optional[str] = None
    new_status: Optional[str] = None
    # Lead templates written against client fields still render.
    client_name: Optional[str] = None
    client_email: Optional[str] = None


def build_sample_context(
    trigger_event: Union[str, TriggerEvent],
    user_id: str,
    email: Optional[str] = None,
) -> Dict[str, Any]:
    """Context with placeholder values for every variable an event can carry.

    Used to test-fire an automation; recipient fields point at ``email`` so
    the test message reaches the user running it.
    """

    name = event_name(trigger_event)
    address = email or "test@example.com"
    context: Dict[str, Any] = {
        "event": name,
        "user_id": user_id,
        "client_name": "Test Client",
        "client_email": address,
        "lead_email": address,
        "email": address,
    }

    if name in {TriggerEvent.ESTIMATE_SENT.value, TriggerEvent.ESTIMATE_APPROVED.value}:
        context["estimate_id"] = "test-estimate-id"
    elif name in {TriggerEvent.INVOICE_SENT.value, TriggerEvent.INVOICE_OVERDUE.value}:
        context.update(
            invoice_id="test-invoice-id",
            invoice_number="INV-001",
            amount="$1,000.00",
        )
    elif name == TriggerEvent.CLIENT_CREATED.value:
        context["client_id"] = "test-client-id"
    elif name == TriggerEvent.JOB_COMPLETED.value:
        context["job_id"] = "test-job-id"
    elif name.startswith("lead_") and name != TriggerEvent.LEAD_CREATED.value:
        context.update(
            lead_id="test-lead-id",
            lead_name="Test Lead",
            lead_phone="555-0100",
            lead_address="123 Test St",
        )
    return context


__all__ = [
    "TriggerEvent",
    "EVENT_NAMES",
    "LEAD_STAGE_EVENTS",
    "is_known_event",
    "event_name",
    "EventContext",
    "ClientEventContext",
    "EstimateEventContext",
    "InvoiceEventContext",
    "JobEventContext",
    "LeadEventContext",
    "build_sample_context",
]
