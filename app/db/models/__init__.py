"""
Record types for the tables the automation engine reads and writes.

Rows come back from Supabase as plain dictionaries; these dataclasses give the
engine a typed view of the columns it relies on.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

SEND_EMAIL = "send_email"

RUN_SUCCESS = "success"
RUN_ERROR = "error"
RUN_SCHEDULED = "scheduled"


@dataclass
class Automation:
    """User-owned rule mapping a trigger event to an action."""
    id: str
    user_id: str
    trigger_event: str
    action_type: str
    name: str = ""
    description: Optional[str] = None
    is_active: bool = True
    action_payload: Any = field(default_factory=dict)
    trigger_filter: Any = None
    created_at: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Automation":
        payload = record.get("action_payload")
        return cls(
            id=str(record.get("id") or ""),
            user_id=str(record.get("user_id") or ""),
            trigger_event=str(record.get("trigger_event") or ""),
            action_type=str(record.get("action_type") or ""),
            name=record.get("name") or "",
            description=record.get("description"),
            is_active=bool(record.get("is_active", False)),
            action_payload={} if payload is None else payload,
            trigger_filter=record.get("trigger_filter"),
            created_at=record.get("created_at"),
        )

    @property
    def delay_days(self) -> float:
        if not isinstance(self.action_payload, dict):
            return 0
        raw = self.action_payload.get("delay_days")
        try:
            value = float(raw)
        except (TypeError, ValueError):
            return 0
        return value if value > 0 else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "description": self.description,
            "trigger_event": self.trigger_event,
            "trigger_filter": self.trigger_filter,
            "is_active": self.is_active,
            "action_type": self.action_type,
            "action_payload": self.action_payload,
            "created_at": self.created_at,
        }


@dataclass
class AutomationRun:
    """Audit record of one execution attempt of one automation."""
    user_id: str
    automation_id: str
    event: str
    input: Dict[str, Any]
    result: str
    output: Optional[Dict[str, Any]] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "automation_id": self.automation_id,
            "event": self.event,
            "input": self.input,
            "result": self.result,
            "output": self.output,
        }


__all__ = [
    "Automation",
    "AutomationRun",
    "SEND_EMAIL",
    "RUN_SUCCESS",
    "RUN_ERROR",
    "RUN_SCHEDULED",
]
