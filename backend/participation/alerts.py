"""
Alert status state machine and alert summaries.

States: open -> reviewing -> resolved, and resolved -> open (manual reopen).
Every status change goes through `transition`, which keeps the invariant
"resolved_at and resolved_by are set if and only if status is resolved".
Transitions outside the table raise `InvalidTransition`; callers decide how to
surface it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from .models import Alert

STATUSES = ("open", "reviewing", "resolved")
PRIORITIES = ("low", "medium", "high", "urgent")
DEFAULT_PRIORITY = "medium"

# action -> (from_status, to_status)
TRANSITIONS: Mapping[str, Tuple[str, str]] = MappingProxyType({
    "review": ("open", "reviewing"),
    "resolve": ("reviewing", "resolved"),
    "reopen": ("resolved", "open"),
})


class InvalidTransition(Exception):
    """Raised when `action` is not permitted from the current status."""

    def __init__(self, current: str, action: str):
        super().__init__(f"{action} not allowed from {current}")
        self.current = current
        self.action = action
        self.code = "invalid_transition"


@dataclass(frozen=True)
class TransitionResult:
    status: str
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None

    def as_update(self) -> Dict[str, object]:
        """Row fields to write back; resolution fields are always included so they get cleared."""
        return {
            "status": self.status,
            "resolved_at": self.resolved_at.isoformat() if self.resolved_at else None,
            "resolved_by": self.resolved_by,
        }


def transition(current: str, action: str, actor: Optional[str], *, at: Optional[datetime] = None) -> TransitionResult:
    """Apply `action` to an alert in status `current`.

    `actor` is the principal performing the change; it is recorded as resolver
    when the alert becomes resolved. `at` defaults to the current UTC time.
    """
    edge = TRANSITIONS.get(action)
    if edge is None or edge[0] != current:
        raise InvalidTransition(current, action)
    new_status = edge[1]
    if new_status == "resolved":
        if not actor:
            raise InvalidTransition(current, action)
        return TransitionResult(status=new_status, resolved_at=at or datetime.now(timezone.utc), resolved_by=actor)
    return TransitionResult(status=new_status)


def allowed_actions(current: str) -> list[str]:
    return [action for action, (src, _dst) in TRANSITIONS.items() if src == current]


def normalize_priority(value: object) -> str:
    if value is None or value == "":
        return DEFAULT_PRIORITY
    if not isinstance(value, str) or value.strip().lower() not in PRIORITIES:
        raise ValueError("invalid_priority")
    return value.strip().lower()


def status_counts(alerts: Iterable[Alert]) -> Dict[str, int]:
    counts = {status: 0 for status in STATUSES}
    for alert in alerts:
        if alert.status in counts:
            counts[alert.status] += 1
    return counts


def resolution_rate(alerts: Iterable[Alert]) -> float:
    """Percentage of alerts that are resolved; 0.0 when there are none."""
    counts = status_counts(alerts)
    total = sum(counts.values())
    if not total:
        return 0.0
    return counts["resolved"] / total * 100


__all__ = [
    "DEFAULT_PRIORITY",
    "InvalidTransition",
    "PRIORITIES",
    "STATUSES",
    "TRANSITIONS",
    "TransitionResult",
    "allowed_actions",
    "normalize_priority",
    "resolution_rate",
    "status_counts",
    "transition",
]
