"""Job endpoints."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.automations import JobEventContext, TriggerEvent, fire_and_forget
from app.db import DatabaseClient

from ..dependencies import get_authenticated_user, get_database
from ..notifications import client_fields
from ..schemas import JobUpdate


router = APIRouter()

COMPLETED_STATUS = "Completed"


@router.put("/jobs/{job_id}")
def update_job(
    job_id: str,
    request: JobUpdate,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> Dict[str, Any]:
    """Update a job; moving it to ``Completed`` raises ``job_completed``."""

    user_id = user["id"]
    current = db.get_job(job_id, user_id)
    if not current:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    updates = {key: value for key, value in request.model_dump(exclude_unset=True).items() if key not in {"id", "user_id"}}
    if not updates:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")

    job = db.update_job(job_id, user_id, updates)
    if not job:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Job not found")

    if updates.get("status") == COMPLETED_STATUS and current.get("status") != COMPLETED_STATUS:
        client = client_fields(current)
        fire_and_forget(
            background_tasks,
            TriggerEvent.JOB_COMPLETED,
            JobEventContext(
                event=TriggerEvent.JOB_COMPLETED,
                user_id=user_id,
                user_email=user.get("email"),
                job_id=job_id,
                job_title=job.get("title") or current.get("title"),
                client_id=client["client_id"],
                client_name=client["client_name"] or "Client",
                client_email=client["client_email"],
            ),
        )
    return job
