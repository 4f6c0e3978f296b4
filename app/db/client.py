"""
Database client for the contractor CRM.
Handles the CRM records the API touches and the automation tables.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from supabase import Client, create_client


logger = logging.getLogger(__name__)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first(result: Any) -> Optional[Dict[str, Any]]:
    data = getattr(result, "data", None)
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


def _rows(result: Any) -> List[Dict[str, Any]]:
    data = getattr(result, "data", None)
    if isinstance(data, list):
        return [row for row in data if isinstance(row, dict)]
    if isinstance(data, dict):
        return [data]
    return []


class SupabaseDatabaseClient:
    """Database client for Supabase operations.

    Runs with the service role key when it is available, which bypasses
    row-level security. Every method therefore filters on ``user_id``
    explicitly; callers must pass the owner they are acting for.
    """

    def __init__(self):
        self.supabase_url = os.getenv('SUPABASE_URL')

        service_key = os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        anon_key = os.getenv('SUPABASE_ANON_KEY')

        if service_key:
            self.supabase_key = service_key
            self.using_service_role = True
        else:
            self.supabase_key = anon_key
            self.using_service_role = False

        if not self.supabase_url or not self.supabase_key:
            raise ValueError("SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) environment variables are required")

        if self.using_service_role:
            logger.info("DatabaseClient: using service role key for privileged access")
        else:
            logger.warning(
                "DatabaseClient: SUPABASE_SERVICE_ROLE_KEY not set; using anon key "
                "(row-level security must allow reads by user_id)"
            )

        self.client: Client = create_client(self.supabase_url, self.supabase_key)

    # ------------------------------------------------------------------
    # Automations
    # ------------------------------------------------------------------
    def find_active_automations(self, auth_user_id: str, trigger_event: str) -> List[Dict[str, Any]]:
        """Return enabled rules for one user and event. Query errors propagate."""

        result = (
            self.client.table("automations")
            .select("*")
            .eq("user_id", auth_user_id)
            .eq("trigger_event", trigger_event)
            .eq("is_active", True)
            .execute()
        )
        if result is None or getattr(result, "data", None) is None:
            raise RuntimeError("Automations query returned no data")
        return _rows(result)

    def list_automation_owners(self, trigger_event: str) -> List[str]:
        """Return the ids of users with at least one enabled rule for ``trigger_event``."""

        result = (
            self.client.table("automations")
            .select("user_id")
            .eq("trigger_event", trigger_event)
            .eq("is_active", True)
            .execute()
        )
        owners: List[str] = []
        for row in _rows(result):
            user_id = row.get("user_id")
            if user_id and user_id not in owners:
                owners.append(str(user_id))
        return owners

    def list_automations(self, auth_user_id: str) -> List[Dict[str, Any]]:
        result = (
            self.client.table("automations")
            .select("*")
            .eq("user_id", auth_user_id)
            .order("created_at", desc=True)
            .execute()
        )
        return _rows(result)

    def get_automation(self, automation_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.client.table("automations")
            .select("*")
            .eq("id", automation_id)
            .eq("user_id", auth_user_id)
            .limit(1)
            .execute()
        )
        return _first(result)

    def create_automation(self, auth_user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(data)
        payload["user_id"] = auth_user_id
        result = self.client.table("automations").insert(payload).execute()
        return _first(result)

    def update_automation(
        self,
        automation_id: str,
        auth_user_id: str,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        payload = {key: value for key, value in updates.items() if key not in {"id", "user_id"}}
        payload["updated_at"] = _utcnow_iso()
        result = (
            self.client.table("automations")
            .update(payload)
            .eq("id", automation_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return _first(result)

    def delete_automation(self, automation_id: str, auth_user_id: str) -> bool:
        result = (
            self.client.table("automations")
            .delete()
            .eq("id", automation_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return bool(_rows(result))

    def insert_automation_run(self, record: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Insert one audit row. Errors propagate to the caller."""

        result = self.client.table("automation_runs").insert(record).execute()
        return _first(result)

    def list_automation_runs(
        self,
        auth_user_id: str,
        automation_id: Optional[str] = None,
        limit: int = 50,
    ) -> List[Dict[str, Any]]:
        query = (
            self.client.table("automation_runs")
            .select("*")
            .eq("user_id", auth_user_id)
        )
        if automation_id:
            query = query.eq("automation_id", automation_id)
        result = query.order("created_at", desc=True).limit(limit).execute()
        return _rows(result)

    def has_successful_run_for_invoice(self, auth_user_id: str, automation_id: str, invoice_id: str) -> bool:
        """True when ``automation_id`` already succeeded for ``invoice_id``."""

        result = (
            self.client.table("automation_runs")
            .select("id")
            .eq("user_id", auth_user_id)
            .eq("automation_id", automation_id)
            .eq("result", "success")
            .eq("input->>invoice_id", invoice_id)
            .limit(1)
            .execute()
        )
        return bool(_rows(result))

    # ------------------------------------------------------------------
    # Clients
    # ------------------------------------------------------------------
    def create_client(self, auth_user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(data)
        payload["user_id"] = auth_user_id
        result = self.client.table("clients").insert(payload).execute()
        return _first(result)

    # ------------------------------------------------------------------
    # Estimates
    # ------------------------------------------------------------------
    def get_estimate(self, estimate_id: str, auth_user_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Fetch an estimate with its client.

        ``auth_user_id`` is omitted only by the public approval link, which
        identifies the owner from the estimate row itself.
        """

        query = (
            self.client.table("estimates")
            .select("*, clients(id, name, email)")
            .eq("id", estimate_id)
        )
        if auth_user_id:
            query = query.eq("user_id", auth_user_id)
        return _first(query.limit(1).execute())

    def update_estimate(
        self,
        estimate_id: str,
        auth_user_id: str,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _utcnow_iso()
        result = (
            self.client.table("estimates")
            .update(payload)
            .eq("id", estimate_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return _first(result)

    # ------------------------------------------------------------------
    # Invoices
    # ------------------------------------------------------------------
    def get_invoice(self, invoice_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.client.table("invoices")
            .select("*, clients(id, name, email)")
            .eq("id", invoice_id)
            .eq("user_id", auth_user_id)
            .limit(1)
            .execute()
        )
        return _first(result)

    def update_invoice(
        self,
        invoice_id: str,
        auth_user_id: str,
        updates: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _utcnow_iso()
        result = (
            self.client.table("invoices")
            .update(payload)
            .eq("id", invoice_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return _first(result)

    def list_invoices_due_on(self, auth_user_id: str, due_date: str) -> List[Dict[str, Any]]:
        """Return a user's invoices whose ``due_date`` equals ``due_date`` (YYYY-MM-DD)."""

        result = (
            self.client.table("invoices")
            .select("*, clients(id, name, email)")
            .eq("user_id", auth_user_id)
            .eq("due_date", due_date)
            .execute()
        )
        return _rows(result)

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------
    def get_job(self, job_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.client.table("jobs")
            .select("*, clients(id, name, email)")
            .eq("id", job_id)
            .eq("user_id", auth_user_id)
            .limit(1)
            .execute()
        )
        return _first(result)

    def update_job(self, job_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _utcnow_iso()
        result = (
            self.client.table("jobs")
            .update(payload)
            .eq("id", job_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return _first(result)

    # ------------------------------------------------------------------
    # Leads
    # ------------------------------------------------------------------
    def get_lead(self, lead_id: str, auth_user_id: str) -> Optional[Dict[str, Any]]:
        result = (
            self.client.table("leads")
            .select("*")
            .eq("id", lead_id)
            .eq("user_id", auth_user_id)
            .limit(1)
            .execute()
        )
        return _first(result)

    def create_lead(self, auth_user_id: str, data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(data)
        payload["user_id"] = auth_user_id
        result = self.client.table("leads").insert(payload).execute()
        return _first(result)

    def update_lead(self, lead_id: str, auth_user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = {key: value for key, value in updates.items() if key not in {"id", "user_id"}}
        result = (
            self.client.table("leads")
            .update(payload)
            .eq("id", lead_id)
            .eq("user_id", auth_user_id)
            .execute()
        )
        return _first(result)


# Global database client instance
_database_client: Optional[object] = None


def get_database_client():
    """Get the global database client instance."""
    global _database_client
    if _database_client is None:
        # Ensure environment is loaded
        from dotenv import load_dotenv

        load_dotenv()

        _database_client = SupabaseDatabaseClient()
    return _database_client


# Simple alias for readability
DatabaseClient = SupabaseDatabaseClient
