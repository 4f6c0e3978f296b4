"""Repository-wide pytest fixtures."""

from __future__ import annotations

import uuid
from collections.abc import Generator
from typing import Any, Dict, List, Optional

import pytest

from app.auth import SystemActor
from app.config import reload_config


@pytest.fixture(autouse=True)
def _set_default_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Pin the settings the automation engine reads so tests never hit real services."""

    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("RESEND_API_KEY", "re_test_key")
    monkeypatch.delenv("RESEND_VERIFIED_EMAIL", raising=False)
    monkeypatch.setenv("AUTOMATION_REROUTE_TO_VERIFIED", "0")
    monkeypatch.setenv("AUTOMATION_RETRY_BASE_SECONDS", "0")
    monkeypatch.setenv("AUTOMATION_RETRY_MAX_SECONDS", "0")
    monkeypatch.setenv("AUTOMATION_DELAYS_ENABLED", "1")
    reload_config()
    yield
    monkeypatch.undo()
    reload_config()


class FakeDatabase:
    """In-memory stand-in for ``SupabaseDatabaseClient`` keyed by table name."""

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {
            "automations": [],
            "automation_runs": [],
            "clients": [],
            "estimates": [],
            "invoices": [],
            "jobs": [],
            "leads": [],
        }
        self.fail_automation_query = False
        self.fail_run_insert = False

    # helpers -----------------------------------------------------------
    def add(self, table: str, **row: Any) -> Dict[str, Any]:
        row.setdefault("id", str(uuid.uuid4()))
        self.tables[table].append(row)
        return row

    def _find(self, table: str, row_id: str, user_id: Optional[str]) -> Optional[Dict[str, Any]]:
        for row in self.tables[table]:
            if row.get("id") == row_id and (user_id is None or row.get("user_id") == user_id):
                return row
        return None

    def _update(self, table: str, row_id: str, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        row = self._find(table, row_id, user_id)
        if row is None:
            return None
        row.update(updates)
        return dict(row)

    @property
    def runs(self) -> List[Dict[str, Any]]:
        return self.tables["automation_runs"]

    # automations -------------------------------------------------------
    def find_active_automations(self, auth_user_id: str, trigger_event: str) -> List[Dict[str, Any]]:
        if self.fail_automation_query:
            raise RuntimeError("permission denied for table automations")
        return [
            dict(row)
            for row in self.tables["automations"]
            if row.get("user_id") == auth_user_id
            and row.get("trigger_event") == trigger_event
            and row.get("is_active") is True
        ]

    def list_automation_owners(self, trigger_event: str) -> List[str]:
        owners: List[str] = []
        for row in self.tables["automations"]:
            if row.get("trigger_event") == trigger_event and row.get("is_active") and row["user_id"] not in owners:
                owners.append(row["user_id"])
        return owners

    def list_automations(self, auth_user_id: str) -> List[Dict[str, Any]]:
        return [dict(row) for row in self.tables["automations"] if row.get("user_id") == auth_user_id]

    def get_automation(self, automation_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        row = self._find("automations", automation_id, auth_user_id)
        return dict(row) if row else None

    def create_automation(self, auth_user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.add("automations", user_id=auth_user_id, **data))

    def update_automation(self, automation_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("automations", automation_id, auth_user_id, updates)

    def delete_automation(self, automation_id: str, auth_user_id: str) -> bool:
        row = self._find("automations", automation_id, auth_user_id)
        if row is None:
            return False
        self.tables["automations"].remove(row)
        return True

    def insert_automation_run(self, record: Dict[str, Any]) -> Dict[str, Any]:
        if self.fail_run_insert:
            raise RuntimeError("insert into automation_runs failed")
        return dict(self.add("automation_runs", **record))

    def list_automation_runs(
        self,
        auth_user_id: str,
        automation_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        rows = [
            dict(row)
            for row in self.runs
            if row.get("user_id") == auth_user_id and (automation_id is None or row.get("automation_id") == automation_id)
        ]
        return rows[:limit]

    def has_successful_run_for_invoice(self, auth_user_id: str, automation_id: str, invoice_id: str) -> bool:
        return any(
            row.get("user_id") == auth_user_id
            and row.get("automation_id") == automation_id
            and row.get("result") == "success"
            and (row.get("input") or {}).get("invoice_id") == invoice_id
            for row in self.runs
        )

    # crm records -------------------------------------------------------
    def create_client(self, auth_user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.add("clients", user_id=auth_user_id, **data))

    def get_estimate(self, estimate_id: str, auth_user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        row = self._find("estimates", estimate_id, auth_user_id)
        return dict(row) if row else None

    def update_estimate(self, estimate_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("estimates", estimate_id, auth_user_id, updates)

    def get_invoice(self, invoice_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        row = self._find("invoices", invoice_id, auth_user_id)
        return dict(row) if row else None

    def update_invoice(self, invoice_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("invoices", invoice_id, auth_user_id, updates)

    def list_invoices_due_on(self, auth_user_id: str, due_date: str) -> List[Dict[str, Any]]:
        return [
            dict(row)
            for row in self.tables["invoices"]
            if row.get("user_id") == auth_user_id and row.get("due_date") == due_date
        ]

    def get_job(self, job_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        row = self._find("jobs", job_id, auth_user_id)
        return dict(row) if row else None

    def update_job(self, job_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("jobs", job_id, auth_user_id, updates)

    def get_lead(self, lead_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        row = self._find("leads", lead_id, auth_user_id)
        return dict(row) if row else None

    def create_lead(self, auth_user_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return dict(self.add("leads", user_id=auth_user_id, **data))

    def update_lead(self, lead_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("leads", lead_id, auth_user_id, updates)


class RecordingSender:
    """Email sender double that records messages and replays scripted responses."""

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.sent: List[Dict[str, Any]] = []
        self._responses = list(responses or [])

    def send(self, message: Dict[str, Any]) -> Dict[str, Any]:
        self.sent.append(message)
        if self._responses:
            response = self._responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {"data": {"id": f"msg-{len(self.sent)}"}, "error": None}


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def actor(fake_db: FakeDatabase) -> SystemActor:
    return SystemActor(fake_db)


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def make_sender():
    """Build a ``RecordingSender`` that replays the given responses in order."""

    return RecordingSender
