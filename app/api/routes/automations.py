"""Automation rule management endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.auth import SystemActor
from app.automations import build_sample_context, execute_automation, log_run
from app.db import Automation, DatabaseClient

from ..dependencies import get_authenticated_user, get_current_user_id, get_database
from ..schemas import (
    AutomationCreate,
    AutomationRecord,
    AutomationRunRecord,
    AutomationTestResponse,
    AutomationUpdate,
)


router = APIRouter()


def _load_owned(db: DatabaseClient, automation_id: str, user_id: str) -> Dict[str, Any]:
    record = db.get_automation(automation_id, user_id)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found")
    return record


@router.get("/automations", response_model=List[AutomationRecord])
def list_automations(
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> List[AutomationRecord]:
    rows = db.list_automations(user_id)
    return [AutomationRecord(**Automation.from_record(row).to_dict()) for row in rows]


@router.post("/automations", response_model=AutomationRecord, status_code=status.HTTP_201_CREATED)
def create_automation(
    request: AutomationCreate,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> AutomationRecord:
    record = db.create_automation(user_id, request.model_dump())
    if not record:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create automation")
    return AutomationRecord(**Automation.from_record(record).to_dict())


@router.get("/automations/{automation_id}", response_model=AutomationRecord)
def get_automation(
    automation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> AutomationRecord:
    record = _load_owned(db, automation_id, user_id)
    return AutomationRecord(**Automation.from_record(record).to_dict())


@router.put("/automations/{automation_id}", response_model=AutomationRecord)
def update_automation(
    automation_id: str,
    request: AutomationUpdate,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> AutomationRecord:
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    record = db.update_automation(automation_id, user_id, updates)
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found")
    return AutomationRecord(**Automation.from_record(record).to_dict())


@router.delete("/automations/{automation_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_automation(
    automation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> None:
    if not db.delete_automation(automation_id, user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Automation not found")


@router.post("/automations/{automation_id}/test", response_model=AutomationTestResponse)
def test_automation(
    automation_id: str,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> AutomationTestResponse:
    """Run an automation once against sample data and record the run.

    Recipient fields in the sample point at the caller's own address.
    """

    user_id = user["id"]
    record = _load_owned(db, automation_id, user_id)
    automation = Automation.from_record(record)

    context = build_sample_context(automation.trigger_event, user_id, user.get("email"))
    result = execute_automation(automation, context)
    log_run(user_id, automation.id, automation.trigger_event, context, result, actor=SystemActor(db))

    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": "Failed to execute automation", "details": result.error},
        )
    return AutomationTestResponse(success=True, message=result.message)


@router.get("/automations/{automation_id}/runs", response_model=List[AutomationRunRecord])
def list_automation_runs(
    automation_id: str,
    limit: Optional[int] = Query(default=50, ge=1, le=200),
    user_id: str = Depends(get_current_user_id),
    db: DatabaseClient = Depends(get_database),
) -> List[AutomationRunRecord]:
    _load_owned(db, automation_id, user_id)
    rows = db.list_automation_runs(user_id, automation_id=automation_id, limit=limit or 50)
    return [AutomationRunRecord(**row) for row in rows]
