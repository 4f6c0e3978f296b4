"""End-to-end: a client approves an estimate and the owner's automation emails them."""

from __future__ import annotations

import pytest
from fastapi import BackgroundTasks

from app.api import notifications
from app.api.routes import estimates
from app.api.schemas import EstimateActionRequest
from app.automations import executor, orchestrator


@pytest.fixture
def wired(monkeypatch: pytest.MonkeyPatch, actor, sender):
    monkeypatch.setattr(orchestrator, "SystemActor", lambda: actor)
    monkeypatch.setattr(executor, "get_email_sender", lambda: sender)
    monkeypatch.setattr(notifications, "get_email_sender", lambda: None)
    return sender


def _run_background(background_tasks: BackgroundTasks) -> None:
    for task in background_tasks.tasks:
        task.func(*task.args, **task.kwargs)


def test_approval_sends_automation_email_and_records_run(wired, fake_db) -> None:
    rule = fake_db.add(
        "automations",
        user_id="U1",
        name="Approval thank-you",
        trigger_event="estimate_approved",
        is_active=True,
        action_type="send_email",
        action_payload={
            "subject": "Approved: {{client_name}}",
            "body": "Hi {{client_name}}, your estimate is approved.",
        },
    )
    estimate = fake_db.add(
        "estimates",
        user_id="U1",
        status="Sent",
        clients={"id": "client-1", "name": "Acme", "email": "acme@example.com"},
    )
    background_tasks = BackgroundTasks()

    response = estimates.estimate_action(estimate["id"], EstimateActionRequest(action="approve"), background_tasks, db=fake_db)
    _run_background(background_tasks)

    assert response.status == "Approved"
    assert len(wired.sent) == 1
    assert wired.sent[0]["to"] == ["acme@example.com"]
    assert wired.sent[0]["subject"] == "Approved: Acme"
    assert "Hi Acme, your estimate is approved." in wired.sent[0]["html"]
    assert len(fake_db.runs) == 1
    assert fake_db.runs[0]["automation_id"] == rule["id"]
    assert fake_db.runs[0]["user_id"] == "U1"
    assert fake_db.runs[0]["result"] == "success"


def test_approval_without_rules_leaves_no_trace(wired, fake_db) -> None:
    estimate = fake_db.add("estimates", user_id="U1", status="Sent", clients={"name": "Acme", "email": "acme@example.com"})
    background_tasks = BackgroundTasks()

    response = estimates.estimate_action(estimate["id"], EstimateActionRequest(action="approve"), background_tasks, db=fake_db)
    _run_background(background_tasks)

    assert response.status == "Approved"
    assert wired.sent == []
    assert fake_db.runs == []
