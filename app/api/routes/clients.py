"""Client endpoints."""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.automations import ClientEventContext, TriggerEvent, fire_and_forget
from app.db import DatabaseClient

from ..dependencies import get_authenticated_user, get_database
from ..schemas import ClientCreate

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/clients", status_code=status.HTTP_201_CREATED)
def create_client(
    request: ClientCreate,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> Dict[str, Any]:
    """Create a client and seed a matching lead in the ``New Leads`` column."""

    user_id = user["id"]
    name = request.name.strip()
    if not name:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Name is required")

    data = request.model_dump()
    data["name"] = name
    client = db.create_client(user_id, data)
    if not client:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create client")

    try:
        db.create_lead(
            user_id,
            {
                "name": name,
                "email": request.email,
                "phone": request.phone,
                "address": request.address,
                "status": "New Leads",
                "value": 0,
            },
        )
    except Exception as exc:
        logger.warning("Client %s created but its lead could not be added: %s", client.get("id"), exc)

    fire_and_forget(
        background_tasks,
        TriggerEvent.CLIENT_CREATED,
        ClientEventContext(
            event=TriggerEvent.CLIENT_CREATED,
            user_id=user_id,
            user_email=user.get("email"),
            client_id=client.get("id"),
            client_name=client.get("name") or name,
            client_email=client.get("email") or request.email,
            client_phone=client.get("phone") or request.phone,
        ),
    )
    return client
