# school_facilities/domain/workflow.py
from __future__ import annotations

from typing import Iterable

from ..errors import InvalidState, ValidationError
from ..models import MaintenanceStatus

# -----------------------------------------------------------------------------
# Maintenance request lifecycle
# -----------------------------------------------------------------------------
#   Open ──(first history entry)──> In Progress ──(close)──> Completed
#     │                                 │
#     └──────────(cancel)───────────────┴──────────────────> Cancelled
#
# Completed and Cancelled are terminal. Going backwards is never a transition:
# re-opening creates a new request that points at the old one.
# -----------------------------------------------------------------------------

TRANSITIONS: dict[MaintenanceStatus, frozenset[MaintenanceStatus]] = {
    MaintenanceStatus.OPEN: frozenset({MaintenanceStatus.IN_PROGRESS, MaintenanceStatus.CANCELLED}),
    MaintenanceStatus.IN_PROGRESS: frozenset({MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELLED}),
    MaintenanceStatus.COMPLETED: frozenset(),
    MaintenanceStatus.CANCELLED: frozenset(),
}

# Statuses that still accept logged work.
WORKABLE = frozenset({MaintenanceStatus.OPEN, MaintenanceStatus.IN_PROGRESS})


def coerce_status(value: str | MaintenanceStatus) -> MaintenanceStatus:
    if isinstance(value, MaintenanceStatus):
        return value
    try:
        return MaintenanceStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in MaintenanceStatus)
        raise ValidationError(f"unknown status {value!r}; expected one of: {allowed}")


def is_terminal(status: str | MaintenanceStatus) -> bool:
    return not TRANSITIONS[coerce_status(status)]


def can_transition(current: str | MaintenanceStatus, target: str | MaintenanceStatus) -> bool:
    return coerce_status(target) in TRANSITIONS[coerce_status(current)]


def require_transition(current: str | MaintenanceStatus, target: str | MaintenanceStatus) -> MaintenanceStatus:
    """Returns the target status, or raises InvalidState for an edge not in the graph."""
    cur = coerce_status(current)
    tgt = coerce_status(target)
    if tgt not in TRANSITIONS[cur]:
        raise InvalidState(
            f"illegal transition {cur.value!r} -> {tgt.value!r}",
            details={"from": cur.value, "to": tgt.value},
        )
    return tgt


def require_workable(status: str | MaintenanceStatus) -> MaintenanceStatus:
    cur = coerce_status(status)
    if cur not in WORKABLE:
        raise InvalidState(
            f"cannot record work against a {cur.value!r} request",
            details={"status": cur.value},
        )
    return cur


def reachable_from(status: str | MaintenanceStatus) -> list[MaintenanceStatus]:
    """Every status reachable in one or more steps, in declaration order."""
    seen: set[MaintenanceStatus] = set()
    frontier: Iterable[MaintenanceStatus] = TRANSITIONS[coerce_status(status)]
    while frontier:
        nxt: set[MaintenanceStatus] = set()
        for s in frontier:
            if s not in seen:
                seen.add(s)
                nxt |= TRANSITIONS[s]
        frontier = nxt - seen
    return [s for s in MaintenanceStatus if s in seen]
