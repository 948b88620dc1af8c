# school_facilities/services/lookups.py
from __future__ import annotations

import logging
from typing import Any, Type, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db import Base
from ..errors import Conflict, InvalidState, NotFound, PermissionDenied, ValidationError
from ..models import Building, InfrastructureComponent, MaintenanceRequest, School, Sensor, User, UserRole

log = logging.getLogger(__name__)

T = TypeVar("T", bound=Base)

_UNIQUE_MARKERS = ("unique", "duplicate")


def must_get(db: Session, model: Type[T], entity_id: Any, *, label: str | None = None) -> T:
    row = db.get(model, entity_id) if entity_id is not None else None
    if row is None:
        raise NotFound(label or model.__name__, entity_id)
    return row


def must_get_school(db: Session, school_id: str) -> School:
    return must_get(db, School, school_id)


def must_get_building(db: Session, building_id: str, *, active: bool = False) -> Building:
    """`active=True` also rejects archived buildings (no new reports/requests)."""
    row = must_get(db, Building, building_id)
    if active and row.archived_at is not None:
        raise InvalidState(f"building {building_id} is archived", details={"building_id": building_id})
    return row


def must_get_component(db: Session, component_id: str) -> InfrastructureComponent:
    return must_get(db, InfrastructureComponent, component_id, label="InfrastructureComponent")


def must_get_sensor(db: Session, sensor_id: str) -> Sensor:
    return must_get(db, Sensor, sensor_id)


def must_get_request(db: Session, request_id: str) -> MaintenanceRequest:
    return must_get(db, MaintenanceRequest, request_id)


def must_get_user_with_role(db: Session, user_id: str, role: UserRole) -> User:
    """
    Resolves a user acting in `role`.

    Missing -> NotFound. Wrong role or archived -> PermissionDenied.
    """
    user = must_get(db, User, user_id)
    if user.role != role.value:
        log.warning(
            "role mismatch",
            extra={"user_id": user_id, "expected_role": role.value, "actual_role": user.role},
        )
        raise PermissionDenied(
            f"user {user.username!r} is a {user.role}, not a {role.value}",
            details={"user_id": user_id, "required_role": role.value, "role": user.role},
        )
    if user.archived_at is not None:
        raise PermissionDenied(f"user {user.username!r} is archived", details={"user_id": user_id})
    return user


def commit_or_conflict(db: Session, *, entity_type: str) -> None:
    """
    Commits the pending unit of work.

    The unique constraint is the guard against two concurrent creates both
    passing a check: the loser's commit fails here and becomes Conflict.
    Any other integrity failure (check/FK) becomes ValidationError.
    """
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        msg = str(e.orig) if e.orig is not None else str(e)
        if any(m in msg.lower() for m in _UNIQUE_MARKERS):
            log.warning("unique constraint rejected write", extra={"entity_type": entity_type})
            raise Conflict(f"{entity_type} already exists", details={"entity_type": entity_type}) from e
        raise ValidationError(
            f"{entity_type} violates a schema constraint", details={"entity_type": entity_type, "error": msg}
        ) from e
