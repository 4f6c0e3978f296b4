"""
Trusted system identity for the automation engine.

Automations often fire on behalf of a user who is not the one making the
request (a client approving an estimate from an email link has no session).
The engine therefore reads and writes through the service-role database
client, but only ever through this wrapper: every method takes the owning
``user_id`` explicitly and scopes its query with it. Nothing here looks at an
ambient session.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

from app.db.models import Automation


def _require_user_id(user_id: Any) -> str:
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValueError("An explicit user_id is required for system actor access")
    return user_id.strip()


class SystemActor:
    """User-scoped data access for automation rules, runs and overdue scans."""

    def __init__(self, db: Optional[Any] = None, *, db_factory: Optional[Callable[[], Any]] = None):
        self._db = db
        self._db_factory = db_factory

    @property
    def db(self) -> Any:
        if self._db is None:
            if self._db_factory is None:
                from app.db import get_database_client

                self._db_factory = get_database_client
            self._db = self._db_factory()
        return self._db

    def active_automations(self, user_id: str, trigger_event: str) -> List[Automation]:
        owner = _require_user_id(user_id)
        rows = self.db.find_active_automations(owner, trigger_event)
        automations = [Automation.from_record(row) for row in rows]
        # The query already filters; this guards against a misbehaving backend.
        return [
            automation
            for automation in automations
            if automation.user_id == owner
            and automation.trigger_event == trigger_event
            and automation.is_active
        ]

    def get_automation(self, user_id: str, automation_id: str) -> Optional[Automation]:
        owner = _require_user_id(user_id)
        row = self.db.get_automation(automation_id, owner)
        if not row:
            return None
        automation = Automation.from_record(row)
        return automation if automation.user_id == owner else None

    def record_run(self, user_id: str, record: Dict[str, Any]) -> None:
        owner = _require_user_id(user_id)
        if record.get("user_id") != owner:
            raise ValueError("Run record user_id does not match the acting owner")
        self.db.insert_automation_run(record)

    def invoice_already_notified(self, user_id: str, automation_id: str, invoice_id: str) -> bool:
        owner = _require_user_id(user_id)
        return bool(self.db.has_successful_run_for_invoice(owner, automation_id, invoice_id))

    def owners_for_event(self, trigger_event: str) -> List[str]:
        return self.db.list_automation_owners(trigger_event)

    def invoices_due_on(self, user_id: str, due_date: str) -> List[Dict[str, Any]]:
        owner = _require_user_id(user_id)
        return [
            row
            for row in self.db.list_invoices_due_on(owner, due_date)
            if str(row.get("user_id", owner)) == owner
        ]


__all__ = ["SystemActor"]
