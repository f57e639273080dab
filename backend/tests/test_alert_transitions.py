"""
Alert status state machine: open -> reviewing -> resolved, resolved -> open.

Every other (status, action) pair is rejected, and resolution fields are
set exactly when the alert is resolved.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from participation.alerts import (
    STATUSES,
    TRANSITIONS,
    InvalidTransition,
    allowed_actions,
    normalize_priority,
    resolution_rate,
    status_counts,
    transition,
)
from participation.models import Alert

AT = datetime(2024, 3, 4, 9, 30, tzinfo=timezone.utc)


def test_review_moves_open_to_reviewing_without_resolution():
    result = transition("open", "review", "staff-1", at=AT)
    assert result.status == "reviewing"
    assert result.resolved_at is None
    assert result.resolved_by is None


def test_resolve_records_actor_and_time():
    result = transition("reviewing", "resolve", "staff-1", at=AT)
    assert result.status == "resolved"
    assert result.resolved_at == AT
    assert result.resolved_by == "staff-1"
    assert result.as_update() == {"status": "resolved", "resolved_at": AT.isoformat(), "resolved_by": "staff-1"}


def test_resolve_defaults_to_current_utc_time():
    result = transition("reviewing", "resolve", "staff-1")
    assert result.resolved_at is not None
    assert result.resolved_at.tzinfo is not None


def test_reopen_clears_resolution_fields():
    result = transition("resolved", "reopen", "admin-1", at=AT)
    assert result.status == "open"
    assert result.as_update() == {"status": "open", "resolved_at": None, "resolved_by": None}


def test_resolve_requires_an_actor():
    with pytest.raises(InvalidTransition):
        transition("reviewing", "resolve", None, at=AT)
    with pytest.raises(InvalidTransition):
        transition("reviewing", "resolve", "", at=AT)


def test_only_table_edges_are_accepted():
    actions = list(TRANSITIONS) + ["close", ""]
    for status in STATUSES:
        for action in actions:
            edge = TRANSITIONS.get(action)
            if edge is not None and edge[0] == status:
                assert transition(status, action, "staff-1", at=AT).status == edge[1]
            else:
                with pytest.raises(InvalidTransition) as exc:
                    transition(status, action, "staff-1", at=AT)
                assert exc.value.code == "invalid_transition"
                assert exc.value.current == status


def test_open_cannot_jump_to_resolved():
    with pytest.raises(InvalidTransition):
        transition("open", "resolve", "staff-1", at=AT)


def test_allowed_actions_per_status():
    assert allowed_actions("open") == ["review"]
    assert allowed_actions("reviewing") == ["resolve"]
    assert allowed_actions("resolved") == ["reopen"]
    assert allowed_actions("archived") == []


def test_normalize_priority():
    assert normalize_priority(None) == "medium"
    assert normalize_priority("") == "medium"
    assert normalize_priority(" URGENT ") == "urgent"
    with pytest.raises(ValueError):
        normalize_priority("critical")
    with pytest.raises(ValueError):
        normalize_priority(3)


def _alert(status: str) -> Alert:
    return Alert(student_id="s1", teacher_id="t1", comment="c", priority="low", status=status)


def test_status_counts_and_resolution_rate():
    alerts = [_alert("open"), _alert("open"), _alert("reviewing"), _alert("resolved")]
    assert status_counts(alerts) == {"open": 2, "reviewing": 1, "resolved": 1}
    assert resolution_rate(alerts) == pytest.approx(25.0)
    assert resolution_rate([]) == 0.0
