"""Tests for executing automation actions."""

from __future__ import annotations

import threading

import pytest

from app.automations import executor
from app.config import reload_config
from app.db.models import Automation


def _automation(**overrides) -> Automation:
    values = dict(
        id="auto-1",
        user_id="user-1",
        trigger_event="estimate_approved",
        action_type="send_email",
        name="Approval thank-you",
        action_payload={"subject": "Approved: {{client_name}}", "body": "Hi {{client_name}}, your estimate is approved."},
    )
    values.update(overrides)
    return Automation(**values)


def test_execute_automation_sends_rendered_email(sender) -> None:
    context = {"user_id": "user-1", "client_name": "Acme", "client_email": "acme@example.com"}

    result = executor.execute_automation(_automation(), context, sender=sender)

    assert result.success is True
    assert result.message == "Email sent successfully to acme@example.com"
    assert len(sender.sent) == 1
    message = sender.sent[0]
    assert message["to"] == ["acme@example.com"]
    assert message["subject"] == "Approved: Acme"
    assert "Hi Acme, your estimate is approved." in message["html"]
    assert message["from"] == "DyluxePro <onboarding@resend.dev>"


def test_email_body_keeps_markup_and_escapes_values(sender) -> None:
    automation = _automation(action_payload={"subject": "Hi {{client_name}}", "body": "<b>Thanks</b>, {{client_name}}!"})
    context = {"client_name": "<i>Acme</i>", "client_email": "acme@example.com"}

    executor.execute_automation(automation, context, sender=sender)

    message = sender.sent[0]
    assert "<p><b>Thanks</b>, &lt;i&gt;Acme&lt;/i&gt;!</p>" in message["html"]
    assert message["subject"] == "Hi <i>Acme</i>"


def test_execute_automation_accepts_raw_records(sender) -> None:
    record = _automation().to_dict()

    result = executor.execute_automation(record, {"client_email": "a@example.com"}, sender=sender)

    assert result.success is True


def test_execute_automation_defaults_subject(sender) -> None:
    automation = _automation(action_payload={"body": "Hello"})

    executor.execute_automation(automation, {"client_email": "a@example.com"}, sender=sender)

    assert sender.sent[0]["subject"] == "Automated Email"


def test_unknown_action_type_is_reported(sender) -> None:
    result = executor.execute_automation(_automation(action_type="send_sms"), {}, sender=sender)

    assert result.success is False
    assert result.error == "Unknown action type: send_sms"
    assert sender.sent == []


def test_missing_sender_reports_configuration_error() -> None:
    result = executor.execute_automation(_automation(), {"client_email": "a@example.com"}, sender=None)

    assert result.success is False
    assert result.error == executor.MISSING_SENDER_ERROR


def test_missing_api_key_resolves_to_configuration_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    reload_config()

    result = executor.execute_automation(_automation(), {"client_email": "a@example.com"})

    assert result.success is False
    assert "RESEND_API_KEY" in result.error


def test_invalid_payload_is_reported(sender) -> None:
    result = executor.execute_automation(_automation(action_payload="not-a-dict"), {}, sender=sender)

    assert result.success is False
    assert "expected an object" in result.error


def test_missing_recipient_is_reported(sender) -> None:
    result = executor.execute_automation(_automation(), {"client_name": "Acme"}, sender=sender)

    assert result.success is False
    assert "No recipient" in result.error
    assert sender.sent == []


def test_recipient_precedence() -> None:
    context = {"email": "c@example.com", "lead_email": "b@example.com", "client_email": "a@example.com"}

    assert executor.resolve_recipient(context) == ("a@example.com", None)
    assert executor.resolve_recipient({"lead_email": "b@example.com", "email": "c@example.com"}) == ("b@example.com", None)
    assert executor.resolve_recipient({}) == (None, None)


def test_recipient_falls_back_to_verified_address_outside_production(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RESEND_VERIFIED_EMAIL", "owner@example.com")
    reload_config()

    assert executor.resolve_recipient({}) == ("owner@example.com", None)

    monkeypatch.setenv("ENV", "prod")
    reload_config()

    assert executor.resolve_recipient({}) == (None, None)


def test_reroute_marks_intended_recipient(monkeypatch: pytest.MonkeyPatch, sender) -> None:
    monkeypatch.setenv("RESEND_VERIFIED_EMAIL", "owner@example.com")
    monkeypatch.setenv("AUTOMATION_REROUTE_TO_VERIFIED", "1")
    reload_config()

    result = executor.execute_automation(_automation(), {"client_name": "Acme", "client_email": "acme@example.com"}, sender=sender)

    assert result.success is True
    assert sender.sent[0]["to"] == ["owner@example.com"]
    assert "PROTOTYPE DEMO" in sender.sent[0]["html"]
    assert "acme@example.com" in sender.sent[0]["html"]


def test_reroute_is_ignored_in_production(monkeypatch: pytest.MonkeyPatch, sender) -> None:
    monkeypatch.setenv("ENV", "prod")
    monkeypatch.setenv("RESEND_VERIFIED_EMAIL", "owner@example.com")
    monkeypatch.setenv("AUTOMATION_REROUTE_TO_VERIFIED", "1")
    reload_config()

    executor.execute_automation(_automation(), {"client_email": "acme@example.com"}, sender=sender)

    assert sender.sent[0]["to"] == ["acme@example.com"]


def test_provider_error_is_retried_then_reported(make_sender) -> None:
    failing = make_sender([{"data": None, "error": {"message": "rate limited"}}] * 3)
    sleeps = []

    result = executor.execute_automation(_automation(), {"client_email": "a@example.com"}, sender=failing, sleep=sleeps.append)

    assert result.success is False
    assert result.error == "Failed to send email: rate limited"
    assert len(failing.sent) == 3
    assert len(sleeps) == 2


def test_transient_failure_recovers(make_sender) -> None:
    flaky = make_sender([RuntimeError("connection reset")])

    result = executor.execute_automation(_automation(), {"client_email": "a@example.com"}, sender=flaky, sleep=lambda _: None)

    assert result.success is True
    assert len(flaky.sent) == 2


def test_slow_send_times_out(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTOMATION_ACTION_TIMEOUT_SECONDS", "0.05")
    monkeypatch.setenv("AUTOMATION_EMAIL_MAX_ATTEMPTS", "1")
    reload_config()
    release = threading.Event()

    class SlowSender:
        def send(self, message):
            release.wait(2)
            return {"data": {"id": "late"}, "error": None}

    try:
        result = executor.execute_automation(_automation(), {"client_email": "a@example.com"}, sender=SlowSender())
    finally:
        release.set()

    assert result.success is False
    assert "timed out" in result.error


def test_timed_out_send_is_not_retried(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUTOMATION_ACTION_TIMEOUT_SECONDS", "0.05")
    monkeypatch.setenv("AUTOMATION_EMAIL_MAX_ATTEMPTS", "3")
    reload_config()

    class LateButSuccessfulSender:
        def __init__(self) -> None:
            self.calls = 0

        def send(self, message):
            self.calls += 1
            threading.Event().wait(0.2)
            return {"data": {"id": "late"}, "error": None}

    slow = LateButSuccessfulSender()
    sleeps = []

    result = executor.execute_automation(
        _automation(), {"client_email": "a@example.com"}, sender=slow, sleep=sleeps.append
    )

    assert result.success is False
    assert "timed out" in result.error
    assert slow.calls == 1
    assert sleeps == []


def test_action_result_to_dict_omits_empty_fields() -> None:
    assert executor.ActionResult(True, message="ok").to_dict() == {"success": True, "message": "ok"}
    assert executor.ActionResult(False, error="bad").to_dict() == {"success": False, "error": "bad"}
