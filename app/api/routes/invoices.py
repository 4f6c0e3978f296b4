"""Invoice delivery endpoint."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status

from app.automations import InvoiceEventContext, TriggerEvent, fire_and_forget
from app.config import CONFIG
from app.db import DatabaseClient

from ..dependencies import get_authenticated_user, get_database
from ..notifications import client_fields, require_sender, send_document_email
from ..schemas import SendResponse


router = APIRouter()


@router.post("/invoices/{invoice_id}/send", response_model=SendResponse)
def send_invoice(
    invoice_id: str,
    background_tasks: BackgroundTasks,
    user: Dict[str, Any] = Depends(get_authenticated_user),
    db: DatabaseClient = Depends(get_database),
) -> SendResponse:
    user_id = user["id"]
    invoice = db.get_invoice(invoice_id, user_id)
    if not invoice:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invoice not found")

    client = client_fields(invoice)
    if not client["client_email"]:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Client email is required")

    sender = require_sender()
    number = invoice.get("invoice_number") or invoice_id
    body = (
        f"Hi {client['client_name'] or 'there'},\n"
        "\n"
        f"Invoice {number} from {CONFIG.brand_name} for {invoice.get('total')} is attached to your account.\n"
        f"Due date: {invoice.get('due_date') or 'on receipt'}\n"
    )
    message_id = send_document_email(sender, client["client_email"], f"Invoice {number}", body)

    db.update_invoice(invoice_id, user_id, {"status": "Sent"})

    fire_and_forget(
        background_tasks,
        TriggerEvent.INVOICE_SENT,
        InvoiceEventContext(
            event=TriggerEvent.INVOICE_SENT,
            user_id=user_id,
            user_email=user.get("email"),
            invoice_id=invoice_id,
            invoice_number=invoice.get("invoice_number"),
            amount=invoice.get("total"),
            invoice_total=invoice.get("total"),
            due_date=invoice.get("due_date"),
            **client,
        ),
    )
    return SendResponse(message_id=message_id, status="Sent")
