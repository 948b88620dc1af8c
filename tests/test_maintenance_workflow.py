# tests/test_maintenance_workflow.py
from __future__ import annotations

from datetime import date

import pytest
from sqlalchemy import select

from school_facilities.config import settings
from school_facilities.errors import InvalidState, NotFound, PermissionDenied, ValidationError
from school_facilities.models import AuditEvent, MaintenanceHistoryEntry, MaintenanceRequest
from school_facilities.services import directory, maintenance
from school_facilities.services.lookups import commit_or_conflict

from conftest import mk_request


def _work(technician, text="worked on it", **kw):
    data = {"technician_id": technician.id, "description": text}
    data.update(kw)
    return data


def test_new_request_starts_open(db, building, component):
    r = mk_request(db, building.id, component.id, priority=1)
    assert r.status == "Open"
    assert r.priority == 1


def test_request_requires_existing_building_and_component(db, building, component):
    with pytest.raises(NotFound):
        mk_request(db, "missing", component.id)
    with pytest.raises(NotFound):
        mk_request(db, building.id, "missing")


@pytest.mark.parametrize("priority", [0, 4])
def test_priority_range_enforced(db, building, component, priority):
    with pytest.raises(ValidationError):
        mk_request(db, building.id, component.id, priority=priority)


def test_priority_range_enforced_by_schema_too(db, building, component):
    db.add(
        MaintenanceRequest(
            building_id=building.id,
            component_id=component.id,
            request_date=date(2026, 1, 1),
            description="direct insert",
            priority=7,
            status="Open",
        )
    )
    with pytest.raises(ValidationError):
        commit_or_conflict(db, entity_type="MaintenanceRequest")


def test_first_history_entry_starts_work_exactly_once(db, building, component, technician):
    r = mk_request(db, building.id, component.id)

    maintenance.record_work(db, r.id, _work(technician, "diagnosed"))
    assert maintenance.get_request(db, r.id).status == "In Progress"

    maintenance.record_work(db, r.id, _work(technician, "ordered part"))
    assert maintenance.get_request(db, r.id).status == "In Progress"

    started = db.scalars(
        select(AuditEvent).where(
            AuditEvent.entity_id == r.id, AuditEvent.action == "maintenance_request.started"
        )
    ).all()
    assert len(started) == 1
    assert len(maintenance.list_history(db, r.id)) == 2


def test_only_technicians_log_work(db, building, component, inspector):
    r = mk_request(db, building.id, component.id)
    with pytest.raises(PermissionDenied):
        maintenance.record_work(db, r.id, _work(inspector))
    assert maintenance.get_request(db, r.id).status == "Open"
    assert db.scalars(select(MaintenanceHistoryEntry)).all() == []


def test_complete_open_request_is_invalid(db, building, component):
    r = mk_request(db, building.id, component.id)
    with pytest.raises(InvalidState):
        maintenance.complete_request(db, r.id)
    assert maintenance.get_request(db, r.id).status == "Open"


def test_complete_without_history_is_invalid(db, building, component):
    r = mk_request(db, building.id, component.id)
    # Simulate a row that reached In Progress without any logged work.
    row = db.get(MaintenanceRequest, r.id)
    row.status = "In Progress"
    db.commit()

    with pytest.raises(InvalidState):
        maintenance.complete_request(db, r.id)
    assert maintenance.get_request(db, r.id).status == "In Progress"


def test_complete_then_terminal(db, building, component, technician):
    r = mk_request(db, building.id, component.id)
    maintenance.record_work(db, r.id, _work(technician))
    done = maintenance.complete_request(db, r.id)
    assert done.status == "Completed"
    assert done.completed_at is not None

    with pytest.raises(InvalidState):
        maintenance.record_work(db, r.id, _work(technician, "late entry"))
    with pytest.raises(InvalidState):
        maintenance.cancel_request(db, r.id)
    with pytest.raises(InvalidState):
        maintenance.complete_request(db, r.id)

    assert maintenance.get_request(db, r.id).status == "Completed"
    assert len(maintenance.list_history(db, r.id)) == 1


@pytest.mark.parametrize("start_work", [False, True])
def test_cancel_from_open_or_in_progress(db, building, component, technician, start_work):
    r = mk_request(db, building.id, component.id)
    if start_work:
        maintenance.record_work(db, r.id, _work(technician))

    c = maintenance.cancel_request(db, r.id, reason="duplicate")
    assert c.status == "Cancelled"
    assert c.cancelled_at is not None

    with pytest.raises(InvalidState):
        maintenance.record_work(db, r.id, _work(technician))
    assert maintenance.get_request(db, r.id).status == "Cancelled"


def test_reopen_creates_new_request_and_preserves_old(db, building, component, technician, admin):
    r = mk_request(db, building.id, component.id, priority=3)
    maintenance.record_work(db, r.id, _work(technician))
    maintenance.complete_request(db, r.id)

    new = maintenance.reopen_request(db, r.id, actor_user_id=admin.id, priority=1)
    assert new.id != r.id
    assert new.status == "Open"
    assert new.priority == 1
    assert new.reopened_from_id == r.id
    assert new.component_id == component.id

    old = maintenance.get_request(db, r.id)
    assert old.status == "Completed"
    assert len(maintenance.list_history(db, r.id)) == 1
    assert maintenance.list_history(db, new.id) == []


def test_reopen_requires_admin_and_terminal_source(db, building, component, technician, admin):
    r = mk_request(db, building.id, component.id)
    with pytest.raises(InvalidState):
        maintenance.reopen_request(db, r.id, actor_user_id=admin.id)

    maintenance.cancel_request(db, r.id)
    with pytest.raises(PermissionDenied):
        maintenance.reopen_request(db, r.id, actor_user_id=technician.id)


def test_reprioritize_disabled_by_default(db, building, component):
    r = mk_request(db, building.id, component.id, priority=3)
    with pytest.raises(InvalidState):
        maintenance.reprioritize(db, r.id, 1)
    assert maintenance.get_request(db, r.id).priority == 3


def test_reprioritize_when_enabled(db, building, component, monkeypatch):
    monkeypatch.setattr(settings, "allow_reprioritization", True)
    r = mk_request(db, building.id, component.id, priority=3)

    assert maintenance.reprioritize(db, r.id, 1).priority == 1
    with pytest.raises(ValidationError):
        maintenance.reprioritize(db, r.id, 9)

    maintenance.cancel_request(db, r.id)
    with pytest.raises(InvalidState):
        maintenance.reprioritize(db, r.id, 2)


def test_archived_building_rejects_new_requests(db, building, component):
    directory.archive_building(db, building.id)
    with pytest.raises(InvalidState):
        mk_request(db, building.id, component.id)


def test_list_requests_for_building_filters_status(db, building, component, technician):
    a = mk_request(db, building.id, component.id, request_date=date(2026, 1, 1))
    b = mk_request(db, building.id, component.id, request_date=date(2026, 2, 1))
    maintenance.record_work(db, a.id, _work(technician))

    assert [r.id for r in maintenance.list_requests_for_building(db, building.id)] == [a.id, b.id]
    assert [r.id for r in maintenance.list_requests_for_building(db, building.id, status="Open")] == [b.id]


def test_rejected_transition_leaves_session_reusable(db, building, component, technician, admin):
    r = mk_request(db, building.id, component.id)

    with pytest.raises(InvalidState):
        maintenance.complete_request(db, r.id)
    assert not db.in_transaction()

    with pytest.raises(PermissionDenied):
        maintenance.record_work(db, r.id, _work(admin))
    assert not db.in_transaction()

    maintenance.record_work(db, r.id, _work(technician))
    assert maintenance.complete_request(db, r.id).status == "Completed"


@pytest.mark.parametrize(
    "override",
    [{"priority": "urgent"}, {"priority": 2.7}, {"priority": 4}, {"request_date": "someday"}],
)
def test_reopen_rejects_bad_overrides(db, building, component, admin, override):
    r = mk_request(db, building.id, component.id)
    maintenance.cancel_request(db, r.id)

    with pytest.raises(ValidationError):
        maintenance.reopen_request(db, r.id, actor_user_id=admin.id, **override)
    assert [x.id for x in maintenance.list_requests_for_building(db, building.id)] == [r.id]


def test_reopen_accepts_date_override(db, building, component, admin):
    r = mk_request(db, building.id, component.id)
    maintenance.cancel_request(db, r.id)

    new = maintenance.reopen_request(db, r.id, actor_user_id=admin.id, request_date=date(2026, 4, 2))
    assert new.request_date == date(2026, 4, 2)
    assert new.priority == r.priority


def test_request_listing_is_capped_by_page_limit(db, building, component, monkeypatch):
    monkeypatch.setattr(settings, "default_page_limit", 2)
    ids = [mk_request(db, building.id, component.id, request_date=date(2026, 1, d)).id for d in (1, 2, 3)]

    assert [r.id for r in maintenance.list_requests_for_building(db, building.id)] == ids[:2]
    assert [r.id for r in maintenance.list_requests_for_building(db, building.id, limit=3)] == ids
