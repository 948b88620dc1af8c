# school_facilities/services/directory.py
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..config import settings
from ..domain.audit import audit_write
from ..errors import NotFound
from ..models import Building, School, User
from ..schemas import (
    BuildingCreate,
    SchoolCreate,
    UserContactUpdate,
    UserCreate,
    parse_payload,
)
from .lookups import commit_or_conflict, must_get, must_get_building, must_get_school

log = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.utcnow()


# -----------------------------
# Credentials
# -----------------------------
def hash_password(password: str) -> str:
    salt = secrets.token_bytes(16)
    iters = int(settings.pbkdf2_iterations)
    dk = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return f"pbkdf2_sha256${iters}${base64.b64encode(salt).decode()}${base64.b64encode(dk).decode()}"


def verify_password(password: str, stored: str) -> bool:
    # binascii.Error is a ValueError, so one except covers malformed hashes.
    try:
        algo, iters_s, salt_b64, dk_b64 = stored.split("$", 3)
        iters = int(iters_s)
        salt = base64.b64decode(salt_b64.encode())
        dk = base64.b64decode(dk_b64.encode())
    except ValueError:
        return False
    if algo != "pbkdf2_sha256":
        return False
    test = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iters)
    return hmac.compare_digest(test, dk)


# -----------------------------
# Users
# -----------------------------
def create_user(db: Session, payload: UserCreate | dict[str, Any]) -> User:
    """
    Creates a user. Username/email uniqueness is decided by the unique
    indexes at commit time, never by a prior SELECT.
    """
    data = parse_payload(UserCreate, payload)
    user = User(
        username=data.username,
        password_hash=hash_password(data.password),
        role=data.role.value,
        email=data.email,
        phone_number=data.phone_number,
    )
    db.add(user)
    commit_or_conflict(db, entity_type="User")
    log.info("user created", extra={"user_id": user.id})
    return user


def get_user(db: Session, user_id: str) -> User:
    return must_get(db, User, user_id)


def get_user_by_username(db: Session, username: str) -> User:
    row = db.scalar(select(User).where(User.username == username))
    if row is None:
        raise NotFound("User", username)
    return row


def get_user_by_email(db: Session, email: str) -> User:
    row = db.scalar(select(User).where(User.email == email.strip().lower()))
    if row is None:
        raise NotFound("User", email)
    return row


def verify_user_password(db: Session, username: str, password: str) -> bool:
    row = db.scalar(select(User).where(User.username == username))
    if row is None or row.archived_at is not None:
        return False
    return verify_password(password, row.password_hash)


def update_user_contact(db: Session, user_id: str, payload: UserContactUpdate | dict[str, Any]) -> User:
    """Only fields explicitly present in the payload are changed; identity fields never are."""
    data = parse_payload(UserContactUpdate, payload)
    user = must_get(db, User, user_id)
    before = {"email": user.email, "phone_number": user.phone_number}

    for field in ("email", "phone_number"):
        if field in data.model_fields_set:
            setattr(user, field, getattr(data, field))

    audit_write(
        db,
        actor_user_id=None,
        action="user.contact_updated",
        entity_type="user",
        entity_id=user.id,
        before=before,
        after={"email": user.email, "phone_number": user.phone_number},
    )
    commit_or_conflict(db, entity_type="User")
    return user


def archive_user(db: Session, user_id: str, *, actor_user_id: Optional[str] = None) -> User:
    user = must_get(db, User, user_id)
    if user.archived_at is not None:
        return user
    user.archived_at = _now()
    audit_write(db, actor_user_id=actor_user_id, action="user.archived", entity_type="user", entity_id=user.id)
    db.commit()
    log.info("user archived", extra={"user_id": user.id})
    return user


# -----------------------------
# Schools
# -----------------------------
def create_school(db: Session, payload: SchoolCreate | dict[str, Any]) -> School:
    data = parse_payload(SchoolCreate, payload)
    school = School(**data.model_dump())
    db.add(school)
    commit_or_conflict(db, entity_type="School")
    log.info("school created", extra={"school_id": school.id})
    return school


def get_school(db: Session, school_id: str) -> School:
    return must_get_school(db, school_id)


def get_school_by_name(db: Session, name: str) -> School:
    row = db.scalar(select(School).where(School.name == name))
    if row is None:
        raise NotFound("School", name)
    return row


def list_buildings_for_school(db: Session, school_id: str) -> list[Building]:
    must_get_school(db, school_id)
    return list(
        db.scalars(select(Building).where(Building.school_id == school_id).order_by(Building.name, Building.id))
    )


# -----------------------------
# Buildings
# -----------------------------
def create_building(db: Session, payload: BuildingCreate | dict[str, Any]) -> Building:
    data = parse_payload(BuildingCreate, payload)
    if data.school_id is not None:
        must_get_school(db, data.school_id)

    building = Building(
        school_id=data.school_id,
        name=data.name,
        type=data.type.value,
        square_footage=data.square_footage,
    )
    db.add(building)
    commit_or_conflict(db, entity_type="Building")
    log.info("building created", extra={"building_id": building.id, "school_id": building.school_id})
    return building


def get_building(db: Session, building_id: str) -> Building:
    return must_get_building(db, building_id)


def assign_building(
    db: Session,
    building_id: str,
    school_id: Optional[str],
    *,
    actor_user_id: Optional[str] = None,
) -> Building:
    """Moves a building to `school_id`, or unassigns it when `school_id` is None."""
    building = must_get_building(db, building_id)
    if school_id is not None:
        must_get_school(db, school_id)

    before = building.school_id
    building.school_id = school_id
    audit_write(
        db,
        actor_user_id=actor_user_id,
        action="building.assigned",
        entity_type="building",
        entity_id=building.id,
        before={"school_id": before},
        after={"school_id": school_id},
    )
    commit_or_conflict(db, entity_type="Building")
    log.info("building assigned", extra={"building_id": building.id, "school_id": school_id})
    return building


def archive_building(db: Session, building_id: str, *, actor_user_id: Optional[str] = None) -> Building:
    building = must_get_building(db, building_id)
    if building.archived_at is not None:
        return building
    building.archived_at = _now()
    audit_write(
        db, actor_user_id=actor_user_id, action="building.archived", entity_type="building", entity_id=building.id
    )
    db.commit()
    log.info("building archived", extra={"building_id": building.id})
    return building
