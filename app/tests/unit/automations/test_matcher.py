"""Tests for loading the rules an event should fire."""

from __future__ import annotations

import logging

import pytest

from app.automations.matcher import RuleMatchError, find_matching_rules


def _rule(fake_db, **overrides):
    values = dict(
        user_id="user-1",
        trigger_event="job_completed",
        is_active=True,
        action_type="send_email",
        action_payload={"subject": "Done"},
    )
    values.update(overrides)
    return fake_db.add("automations", **values)


def test_returns_only_active_rules_for_owner_and_event(fake_db, actor) -> None:
    wanted = _rule(fake_db)
    _rule(fake_db, is_active=False)
    _rule(fake_db, user_id="user-2")
    _rule(fake_db, trigger_event="lead_created")

    rules = find_matching_rules("job_completed", "user-1", actor=actor)

    assert [rule.id for rule in rules] == [wanted["id"]]


def test_no_match_is_not_an_error(fake_db, actor, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="app.automations.matcher"):
        rules = find_matching_rules("job_completed", "user-1", actor=actor)

    assert rules == []
    assert "No active automations" in caplog.text


def test_unknown_event_short_circuits(fake_db, actor) -> None:
    fake_db.fail_automation_query = True

    assert find_matching_rules("job_exploded", "user-1", actor=actor) == []


def test_query_failure_raises_rule_match_error(fake_db, actor, caplog: pytest.LogCaptureFixture) -> None:
    fake_db.fail_automation_query = True

    with caplog.at_level(logging.ERROR, logger="app.automations.matcher"):
        with pytest.raises(RuleMatchError):
            find_matching_rules("job_completed", "user-1", actor=actor)

    assert "SUPABASE_SERVICE_ROLE_KEY" in caplog.text
