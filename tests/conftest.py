# tests/conftest.py
from __future__ import annotations

from datetime import date
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from school_facilities.config import settings
from school_facilities.db import init_db, make_engine
from school_facilities.models import BuildingType, UserRole
from school_facilities.services import catalog, directory, maintenance


@pytest.fixture(autouse=True)
def _fast_password_hashing(monkeypatch):
    monkeypatch.setattr(settings, "pbkdf2_iterations", 1_000)


@pytest.fixture
def engine():
    eng = make_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def mk_user(db, username: str, role: UserRole, email: Optional[str] = None):
    return directory.create_user(
        db,
        {"username": username, "password": "correct-horse", "role": role, "email": email},
    )


def mk_school(db, name: str = "Lincoln HS"):
    return directory.create_school(
        db,
        {
            "name": name,
            "address": "1 School Rd",
            "city": "Lincoln",
            "state": "NE",
            "zip": "68508",
            "phone_number": "555-0100",
        },
    )


def mk_building(db, school_id: Optional[str] = None, name: str = "Main Hall", square_footage: int = 5000):
    return directory.create_building(
        db,
        {"school_id": school_id, "name": name, "type": BuildingType.CLASSROOM, "square_footage": square_footage},
    )


def mk_request(db, building_id: str, component_id: str, priority: int = 2, request_date: Optional[date] = None):
    return maintenance.open_request(
        db,
        {
            "building_id": building_id,
            "component_id": component_id,
            "description": "Fix it",
            "priority": priority,
            "request_date": request_date or date(2026, 3, 1),
        },
    )


@pytest.fixture
def inspector(db):
    return mk_user(db, "insp", UserRole.INSPECTOR, email="insp@schools.local")


@pytest.fixture
def technician(db):
    return mk_user(db, "tchen", UserRole.TECHNICIAN)


@pytest.fixture
def admin(db):
    return mk_user(db, "root", UserRole.ADMIN)


@pytest.fixture
def school(db):
    return mk_school(db)


@pytest.fixture
def building(db, school):
    return mk_building(db, school_id=school.id)


@pytest.fixture
def component(db, building):
    c = catalog.register_component(db, {"name": "HVAC Unit 3", "description": "Rooftop unit"})
    catalog.associate_component(db, building.id, c.id)
    return c
