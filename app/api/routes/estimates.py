"""Estimate delivery and client approval endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.automations import EstimateEventContext, TriggerEvent, fire_and_forget
from app.config import CONFIG
from app.db import DatabaseClient

from ..dependencies import get_authenticated_user, get_database
from ..notifications import client_fields, require_sender, send_confirmation_email, send_document_email
from ..schemas import EstimateActionRequest, EstimateActionResponse, SendResponse


router = APIRouter()

ACTION_STATUSES = {
    "approve": "Approved",
    "request_changes": "Changes Requested",
}


def _estimate_label(estimate: Dict[str, Any]) -> str:
    return str(estimate.get("estimate_number") or estimate.get("title") or estimate.get("id"))


@router.post("/estimates/{estimate_id}/send", response_model=SendResponse)
def send_estimate(
    estimate_id: str,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> SendResponse:
    """Email the estimate link to its client and mark it ``Sent``."""

    user_id = user["id"]
    estimate = db.get_estimate(estimate_id, user_id)
    if not estimate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Estimate not found")

    client = client_fields(estimate)
    if not client["client_email"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client email is required")

    sender = require_sender()
    label = _estimate_label(estimate)
    link = f"{CONFIG.app_base_url}/estimate-action?id={estimate_id}"
    body = (
        f"Hi {client['client_name'] or 'there'},\n"
        "\n"
        f"Your estimate {label} from {CONFIG.brand_name} is ready.\n"
        f"Review and approve it here: {link}\n"
    )
    message_id = send_document_email(sender, client["client_email"], f"Estimate {label}", body)

    db.update_estimate(estimate_id, user_id, {"status": "Sent"})

    fire_and_forget(
        background_tasks,
        TriggerEvent.ESTIMATE_SENT,
        EstimateEventContext(
            event=TriggerEvent.ESTIMATE_SENT,
            user_id=user_id,
            user_email=user.get("email"),
            estimate_id=estimate_id,
            estimate_number=estimate.get("estimate_number"),
            amount=estimate.get("total"),
            **client,
        ),
    )
    return SendResponse(message_id=message_id, status="Sent")


@router.post("/estimates/{estimate_id}/action", response_model=EstimateActionResponse)
def estimate_action(
    estimate_id: str,
    request: EstimateActionRequest,
    background_tasks: BackgroundTasks,
    db: DatabaseClient = Depends(get_database),
) -> EstimateActionResponse:
    """Record a client's response from the emailed estimate link.

    There is no session here; the estimate row names its owner and the
    approval automations run on that owner's behalf.
    """

    estimate = db.get_estimate(estimate_id)
    if not estimate:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Estimate not found")

    owner_id = estimate.get("user_id")
    if not owner_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Estimate not found")

    new_status = ACTION_STATUSES[request.action]
    if estimate.get("status") == new_status:
        return EstimateActionResponse(status=new_status, message="Estimate updated successfully")

    updated = db.update_estimate(estimate_id, owner_id, {"status": new_status})
    if not updated:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update estimate")

    client = client_fields(estimate)
    label = _estimate_label(estimate)
    if request.action == "approve":
        send_confirmation_email(
            client["client_email"],
            f"Estimate {label} approved",
            f"Hi {client['client_name'] or 'there'},\n\nThank you for approving estimate {label}. "
            "We will be in touch shortly to schedule the work.",
        )
        fire_and_forget(
            background_tasks,
            TriggerEvent.ESTIMATE_APPROVED,
            EstimateEventContext(
                event=TriggerEvent.ESTIMATE_APPROVED,
                user_id=owner_id,
                estimate_id=estimate_id,
                estimate_number=estimate.get("estimate_number"),
                amount=estimate.get("total"),
                **client,
            ),
        )
    else:
        send_confirmation_email(
            client["client_email"],
            f"Changes requested for estimate {label}",
            f"Hi {client['client_name'] or 'there'},\n\nWe received your request for changes to estimate {label} "
            "and will follow up with a revised estimate.",
        )

    return EstimateActionResponse(status=new_status, message="Estimate updated successfully")
