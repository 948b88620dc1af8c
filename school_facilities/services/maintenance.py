# school_facilities/services/maintenance.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any, Iterator, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..domain.workflow import coerce_status, is_terminal, require_transition, require_workable
from ..errors import FacilityError, InvalidState, NotFound, ValidationError
from ..models import MaintenanceHistoryEntry, MaintenanceRequest, MaintenanceStatus, UserRole
from ..schemas import HistoryEntryCreate, MaintenanceRequestCreate, parse_payload
from .lookups import (
    commit_or_conflict,
    must_get_building,
    must_get_component,
    must_get_request,
    must_get_user_with_role,
)

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


def _snapshot(req: MaintenanceRequest) -> dict[str, Any]:
    return {"status": req.status, "priority": req.priority}


@contextmanager
def _released_on_reject(db: Session) -> Iterator[None]:
    """A rejected transition must not leave a row lock or open transaction behind."""
    try:
        yield
    except FacilityError:
        db.rollback()
        raise


def _load_for_update(db: Session, request_id: str) -> MaintenanceRequest:
    """
    Reads the request with a row lock where the backend supports one
    (SELECT ... FOR UPDATE on Postgres; a no-op on SQLite, where the
    guarded UPDATE in _guarded_update is what serializes writers).
    """
    req = db.scalar(
        select(MaintenanceRequest)
        .where(MaintenanceRequest.id == request_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    if req is None:
        raise NotFound("MaintenanceRequest", request_id)
    return req


def _guarded_update(db: Session, req: MaintenanceRequest, expected: MaintenanceStatus, **values: Any) -> bool:
    """
    UPDATE ... WHERE status = :expected. Returns False when another writer
    moved the request first (zero rows matched).
    """
    res = db.execute(
        update(MaintenanceRequest)
        .where(MaintenanceRequest.id == req.id, MaintenanceRequest.status == expected.value)
        .values(updated_at=_now(), **values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        return False
    db.refresh(req)
    return True


def _swap_status(
    db: Session,
    req: MaintenanceRequest,
    expected: MaintenanceStatus,
    target: MaintenanceStatus,
    **values: Any,
) -> bool:
    return _guarded_update(db, req, expected, status=target.value, **values)


def _history_count(db: Session, request_id: str) -> int:
    n = db.scalar(
        select(func.count(MaintenanceHistoryEntry.id)).where(
            MaintenanceHistoryEntry.maintenance_request_id == request_id
        )
    )
    return int(n or 0)


def _raced(db: Session, req: MaintenanceRequest, action: str) -> InvalidState:
    request_id = req.id
    db.rollback()
    log.warning("concurrent transition lost", extra={"request_id": request_id, "action": action})
    return InvalidState(
        f"request {request_id} changed state while {action} was in flight",
        details={"request_id": request_id, "action": action},
    )


# -----------------------------
# Create / read
# -----------------------------
def open_request(
    db: Session,
    payload: MaintenanceRequestCreate | dict[str, Any],
    *,
    actor_user_id: Optional[str] = None,
) -> MaintenanceRequest:
    data = parse_payload(MaintenanceRequestCreate, payload)
    building = must_get_building(db, data.building_id, active=True)
    component = must_get_component(db, data.component_id)

    req = MaintenanceRequest(
        building_id=building.id,
        component_id=component.id,
        request_date=data.request_date or date.today(),
        description=data.description,
        priority=data.priority,
        status=MaintenanceStatus.OPEN.value,
    )
    db.add(req)
    db.flush()
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="maintenance_request.opened",
        entity_type="maintenance_request",
        entity_id=req.id,
        after=_snapshot(req),
    )
    commit_or_conflict(db, entity_type="MaintenanceRequest")
    log.info(
        "maintenance request opened",
        extra={"request_id": req.id, "building_id": building.id, "component_id": component.id},
    )
    return req


def get_request(db: Session, request_id: str) -> MaintenanceRequest:
    return must_get_request(db, request_id)


def list_requests_for_building(
    db: Session,
    building_id: str,
    *,
    status: Optional[str | MaintenanceStatus] = None,
    limit: Optional[int] = None,
) -> list[MaintenanceRequest]:
    must_get_building(db, building_id)
    stmt = select(MaintenanceRequest).where(MaintenanceRequest.building_id == building_id)
    if status is not None:
        stmt = stmt.where(MaintenanceRequest.status == coerce_status(status).value)
    stmt = stmt.order_by(MaintenanceRequest.request_date, MaintenanceRequest.created_at)
    stmt = stmt.limit(int(limit or settings.default_page_limit))
    return list(db.scalars(stmt))


def list_history(db: Session, request_id: str) -> list[MaintenanceHistoryEntry]:
    must_get_request(db, request_id)
    stmt = (
        select(MaintenanceHistoryEntry)
        .where(MaintenanceHistoryEntry.maintenance_request_id == request_id)
        .order_by(MaintenanceHistoryEntry.work_date, MaintenanceHistoryEntry.created_at)
    )
    return list(db.scalars(stmt))


# -----------------------------
# Transitions
# -----------------------------
def record_work(
    db: Session,
    request_id: str,
    payload: HistoryEntryCreate | dict[str, Any],
) -> MaintenanceHistoryEntry:
    """
    Appends a history entry. The first entry on an Open request moves it to
    In Progress; later entries leave the status alone.

    Either way the request row is written with a status guard before the
    entry goes in, so a cancel or completion that commits after our read
    makes this call fail instead of attaching work to a closed request.
    """
    data = parse_payload(HistoryEntryCreate, payload)

    with _released_on_reject(db):
        req = _load_for_update(db, request_id)
        technician = must_get_user_with_role(db, data.technician_id, UserRole.TECHNICIAN)

        try:
            current = require_workable(req.status)
        except InvalidState:
            log.warning(
                "work rejected on closed request", extra={"request_id": req.id, "technician_id": technician.id}
            )
            raise

        started = False
        if current == MaintenanceStatus.OPEN:
            require_transition(current, MaintenanceStatus.IN_PROGRESS)
            started = _swap_status(db, req, MaintenanceStatus.OPEN, MaintenanceStatus.IN_PROGRESS)

        # Not started by us: fine only if the request is (still) In Progress.
        if not started and not _guarded_update(db, req, MaintenanceStatus.IN_PROGRESS):
            raise _raced(db, req, "record_work")

        if started:
            audit_write(
                db,
                actor_user_id=technician.id,
                action="maintenance_request.started",
                entity_type="maintenance_request",
                entity_id=req.id,
                before={"status": MaintenanceStatus.OPEN.value},
                after={"status": MaintenanceStatus.IN_PROGRESS.value},
            )

        entry = MaintenanceHistoryEntry(
            maintenance_request_id=req.id,
            technician_id=technician.id,
            work_date=data.work_date or date.today(),
            description=data.description,
        )
        db.add(entry)
        commit_or_conflict(db, entity_type="MaintenanceHistoryEntry")

    log.info(
        "work recorded",
        extra={"request_id": req.id, "technician_id": technician.id},
    )
    return entry


def complete_request(
    db: Session,
    request_id: str,
    *,
    actor_user_id: Optional[str] = None,
) -> MaintenanceRequest:
    with _released_on_reject(db):
        req = _load_for_update(db, request_id)
        current = coerce_status(req.status)
        before = _snapshot(req)

        try:
            require_transition(current, MaintenanceStatus.COMPLETED)
        except InvalidState:
            log.warning("completion rejected", extra={"request_id": req.id, "status": current.value})
            raise

        if _history_count(db, req.id) == 0:
            raise InvalidState(
                "cannot complete a request with no logged work",
                details={"request_id": req.id},
            )

        if not _swap_status(db, req, current, MaintenanceStatus.COMPLETED, completed_at=_now()):
            raise _raced(db, req, "complete")

        audit_write(
            db,
            actor_user_id=actor_user_id,
            action="maintenance_request.completed",
            entity_type="maintenance_request",
            entity_id=req.id,
            before=before,
            after=_snapshot(req),
        )
        db.commit()

    log.info("maintenance request completed", extra={"request_id": req.id})
    return req


def cancel_request(
    db: Session,
    request_id: str,
    *,
    actor_user_id: Optional[str] = None,
    reason: Optional[str] = None,
) -> MaintenanceRequest:
    with _released_on_reject(db):
        req = _load_for_update(db, request_id)
        current = coerce_status(req.status)
        before = _snapshot(req)

        try:
            require_transition(current, MaintenanceStatus.CANCELLED)
        except InvalidState:
            log.warning("cancellation rejected", extra={"request_id": req.id, "status": current.value})
            raise

        if not _swap_status(db, req, current, MaintenanceStatus.CANCELLED, cancelled_at=_now()):
            raise _raced(db, req, "cancel")

        after = _snapshot(req)
        if reason:
            after["reason"] = reason
        audit_write(
            db,
            actor_user_id=actor_user_id,
            action="maintenance_request.cancelled",
            entity_type="maintenance_request",
            entity_id=req.id,
            before=before,
            after=after,
        )
        db.commit()

    log.info("maintenance request cancelled", extra={"request_id": req.id})
    return req


def reopen_request(
    db: Session,
    request_id: str,
    *,
    actor_user_id: str,
    description: Optional[str] = None,
    priority: Optional[int] = None,
    request_date: Optional[date] = None,
) -> MaintenanceRequest:
    """
    Admin-only. Creates a NEW Open request linked to a Completed/Cancelled one.
    The original request and its history are left exactly as they were.
    """
    with _released_on_reject(db):
        admin = must_get_user_with_role(db, actor_user_id, UserRole.ADMIN)
        source = must_get_request(db, request_id)

        if not is_terminal(source.status):
            raise InvalidState(
                f"only Completed or Cancelled requests can be re-opened (status={source.status!r})",
                details={"request_id": source.id, "status": source.status},
            )

        must_get_building(db, source.building_id, active=True)

        data = parse_payload(
            MaintenanceRequestCreate,
            {
                "building_id": source.building_id,
                "component_id": source.component_id,
                "description": description or source.description,
                "priority": source.priority if priority is None else priority,
                "request_date": request_date,
            },
        )

        req = MaintenanceRequest(
            building_id=data.building_id,
            component_id=data.component_id,
            request_date=data.request_date or date.today(),
            description=data.description,
            priority=data.priority,
            status=MaintenanceStatus.OPEN.value,
            reopened_from_id=source.id,
        )
        db.add(req)
        db.flush()
        audit_write(
            db,
            actor_user_id=admin.id,
            action="maintenance_request.reopened",
            entity_type="maintenance_request",
            entity_id=req.id,
            before={"reopened_from_id": source.id, "status": source.status},
            after=_snapshot(req),
        )
        commit_or_conflict(db, entity_type="MaintenanceRequest")

    log.info("maintenance request reopened", extra={"request_id": req.id, "user_id": admin.id})
    return req


def reprioritize(
    db: Session,
    request_id: str,
    priority: int,
    *,
    actor_user_id: Optional[str] = None,
) -> MaintenanceRequest:
    """Changes urgency in place. Disabled unless settings.allow_reprioritization is on."""
    if not settings.allow_reprioritization:
        raise InvalidState("re-prioritization is disabled; open a new request instead")

    if isinstance(priority, bool) or not isinstance(priority, int) or not 1 <= priority <= 3:
        raise ValidationError("priority must be between 1 and 3", details={"priority": priority})

    with _released_on_reject(db):
        req = _load_for_update(db, request_id)
        current = coerce_status(req.status)
        if is_terminal(current):
            raise InvalidState(
                f"cannot re-prioritize a {current.value!r} request",
                details={"request_id": req.id, "status": current.value},
            )

        before = _snapshot(req)
        if not _guarded_update(db, req, current, priority=priority):
            raise _raced(db, req, "reprioritize")

        audit_write(
            db,
            actor_user_id=actor_user_id,
            action="maintenance_request.reprioritized",
            entity_type="maintenance_request",
            entity_id=req.id,
            before=before,
            after=_snapshot(req),
        )
        db.commit()

    log.info("maintenance request reprioritized", extra={"request_id": req.id})
    return req
