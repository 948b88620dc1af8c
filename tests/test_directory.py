# tests/test_directory.py
from __future__ import annotations

import pytest
from sqlalchemy import select

from school_facilities.errors import Conflict, NotFound, ValidationError
from school_facilities.models import AuditEvent, UserRole
from school_facilities.services import directory

from conftest import mk_building, mk_school, mk_user


def test_duplicate_username_is_conflict(db):
    mk_user(db, "alice", UserRole.INSPECTOR)
    with pytest.raises(Conflict):
        mk_user(db, "alice", UserRole.TECHNICIAN)

    # session is still usable after the rejected write
    assert directory.get_user_by_username(db, "alice").role == "Inspector"


def test_duplicate_email_is_conflict_case_insensitive(db):
    mk_user(db, "a1", UserRole.ADMIN, email="Ops@Schools.local")
    with pytest.raises(Conflict):
        mk_user(db, "a2", UserRole.ADMIN, email="ops@schools.local")


def test_unknown_role_is_rejected(db):
    with pytest.raises(ValidationError):
        directory.create_user(db, {"username": "x", "password": "long-enough", "role": "Janitor"})


def test_point_lookups(db):
    u = mk_user(db, "bob", UserRole.TECHNICIAN, email="bob@schools.local")
    assert directory.get_user(db, u.id).username == "bob"
    assert directory.get_user_by_email(db, "BOB@schools.local").id == u.id
    with pytest.raises(NotFound):
        directory.get_user_by_username(db, "nobody")


def test_password_is_hashed_and_verifiable(db):
    u = mk_user(db, "carol", UserRole.ADMIN)
    assert u.password_hash.startswith("pbkdf2_sha256$")
    assert "correct-horse" not in u.password_hash
    assert directory.verify_user_password(db, "carol", "correct-horse") is True
    assert directory.verify_user_password(db, "carol", "wrong") is False


def test_contact_update_changes_only_given_fields(db):
    u = mk_user(db, "dave", UserRole.TECHNICIAN, email="dave@schools.local")
    directory.update_user_contact(db, u.id, {"phone_number": "555-0199"})
    u = directory.get_user(db, u.id)
    assert u.phone_number == "555-0199"
    assert u.email == "dave@schools.local"
    assert u.username == "dave"


def test_school_name_unique(db):
    mk_school(db, "Lincoln HS")
    with pytest.raises(Conflict):
        mk_school(db, "Lincoln HS")
    assert directory.get_school_by_name(db, "Lincoln HS").city == "Lincoln"


def test_unassigned_building_round_trip_then_assign(db):
    b = mk_building(db, school_id=None)
    got = directory.get_building(db, b.id)
    assert got.school_id is None
    assert got.name == "Main Hall"
    assert got.type == "Classroom"
    assert got.square_footage == 5000

    s = mk_school(db)
    directory.assign_building(db, b.id, s.id)
    assert directory.get_building(db, b.id).school_id == s.id
    assert [x.id for x in directory.list_buildings_for_school(db, s.id)] == [b.id]

    directory.assign_building(db, b.id, None)
    assert directory.get_building(db, b.id).school_id is None

    ev = db.scalars(select(AuditEvent).where(AuditEvent.action == "building.assigned")).all()
    assert len(ev) == 2


def test_building_with_missing_school_is_not_found(db):
    with pytest.raises(NotFound):
        mk_building(db, school_id="00000000-0000-0000-0000-000000000000")


@pytest.mark.parametrize("sqft", [0, -10])
def test_building_square_footage_must_be_positive(db, sqft):
    with pytest.raises(ValidationError):
        mk_building(db, square_footage=sqft)


def test_building_type_is_closed(db):
    with pytest.raises(ValidationError):
        directory.create_building(db, {"name": "Shed", "type": "Barn", "square_footage": 100})


def test_archive_is_idempotent(db):
    u = mk_user(db, "erin", UserRole.INSPECTOR)
    first = directory.archive_user(db, u.id).archived_at
    assert first is not None
    assert directory.archive_user(db, u.id).archived_at == first


def test_contact_update_email_collision_is_conflict(db):
    mk_user(db, "erin", UserRole.INSPECTOR, email="erin@schools.local")
    frank = mk_user(db, "frank", UserRole.TECHNICIAN, email="frank@schools.local")

    with pytest.raises(Conflict):
        directory.update_user_contact(db, frank.id, {"email": "ERIN@schools.local"})

    assert directory.get_user(db, frank.id).email == "frank@schools.local"
    assert db.scalars(select(AuditEvent).where(AuditEvent.action == "user.contact_updated")).all() == []
