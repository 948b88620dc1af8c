# tests/test_workflow_transitions.py
from __future__ import annotations

import pytest

from school_facilities.domain.workflow import (
    can_transition,
    is_terminal,
    reachable_from,
    require_transition,
    require_workable,
)
from school_facilities.errors import InvalidState, ValidationError
from school_facilities.models import MaintenanceStatus as S


def test_forward_edges_are_allowed():
    assert can_transition(S.OPEN, S.IN_PROGRESS)
    assert can_transition(S.OPEN, S.CANCELLED)
    assert can_transition(S.IN_PROGRESS, S.COMPLETED)
    assert can_transition(S.IN_PROGRESS, S.CANCELLED)


@pytest.mark.parametrize(
    "current,target",
    [
        (S.OPEN, S.COMPLETED),
        (S.IN_PROGRESS, S.OPEN),
        (S.COMPLETED, S.OPEN),
        (S.COMPLETED, S.IN_PROGRESS),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.OPEN),
        (S.CANCELLED, S.COMPLETED),
        (S.OPEN, S.OPEN),
    ],
)
def test_backward_and_skipping_edges_raise_invalid_state(current, target):
    assert not can_transition(current, target)
    with pytest.raises(InvalidState):
        require_transition(current, target)


def test_terminal_states():
    assert is_terminal("Completed")
    assert is_terminal("Cancelled")
    assert not is_terminal("Open")
    assert not is_terminal("In Progress")


def test_reachability_is_forward_only():
    assert reachable_from(S.OPEN) == [S.IN_PROGRESS, S.COMPLETED, S.CANCELLED]
    assert reachable_from(S.COMPLETED) == []


def test_work_only_on_open_or_in_progress():
    assert require_workable("Open") == S.OPEN
    assert require_workable("In Progress") == S.IN_PROGRESS
    with pytest.raises(InvalidState):
        require_workable("Completed")
    with pytest.raises(InvalidState):
        require_workable("Cancelled")


def test_unknown_status_is_a_validation_error():
    with pytest.raises(ValidationError):
        can_transition("Paused", "Open")
