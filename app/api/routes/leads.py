"""Lead pipeline endpoints."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.automations import LEAD_STAGE_EVENTS, LeadEventContext, fire_and_forget
from app.db import DatabaseClient

from ..dependencies import get_authenticated_user, get_database
from ..schemas import LeadCreate, LeadUpdate


router = APIRouter()


def _stage_context(
    user: Dict[str, Any],
    lead: Dict[str, Any],
    new_status: str,
    old_status: Optional[str] = None,
) -> LeadEventContext:
    event = LEAD_STAGE_EVENTS[new_status]
    return LeadEventContext(
        event=event,
        user_id=user["id"],
        user_email=user.get("email"),
        lead_id=lead.get("id"),
        lead_name=lead.get("name"),
        lead_email=lead.get("email"),
        lead_phone=lead.get("phone"),
        lead_address=lead.get("address"),
        old_status=old_status,
        new_status=new_status,
        client_name=lead.get("name"),
        client_email=lead.get("email"),
    )


@router.post("/leads", status_code=status.HTTP_201_CREATED)
def create_lead(
    request: LeadCreate,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> Dict[str, Any]:
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    data = request.model_dump()
    data["name"] = name
    lead = db.create_lead(user["id"], data)
    if not lead:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create lead")

    new_status = lead.get("status") or request.status
    if new_status in LEAD_STAGE_EVENTS:
        context = _stage_context(user, lead, new_status)
        fire_and_forget(background_tasks, context.event, context)
    return lead


@router.put("/leads/{lead_id}")
def update_lead(
    lead_id: str,
    request: LeadUpdate,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> Dict[str, Any]:
    """Update a lead; moving it to a new pipeline stage raises that stage's event."""

    user_id = user["id"]
    current = db.get_lead(lead_id, user_id)
    if not current:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")

    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    lead = db.update_lead(lead_id, user_id, updates)
    if not lead:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Lead not found")

    old_status = current.get("status")
    new_status = updates.get("status")
    if new_status and new_status != old_status and new_status in LEAD_STAGE_EVENTS:
        context = _stage_context(user, lead, new_status, old_status)
        fire_and_forget(background_tasks, context.event, context)
    return lead
