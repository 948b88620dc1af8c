# school_facilities/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from school_facilities.db import SessionLocal, init_db
from school_facilities.errors import NotFound
from school_facilities.models import (
    Building,
    BuildingType,
    InfrastructureComponent,
    MaintenanceRequest,
    MaintenanceStatus,
    School,
    User,
    UserRole,
)
from school_facilities.services import catalog, directory, inspections, maintenance


@dataclass(frozen=True)
class SeedResult:
    school_id: str
    building_id: str
    component_id: str
    technician_username: str
    request_id: Optional[str]
    request_status: Optional[str]


def _get_or_create_school(db: Session, name: str) -> School:
    try:
        return directory.get_school_by_name(db, name)
    except NotFound:
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


def _get_or_create_user(db: Session, username: str, role: UserRole) -> User:
    try:
        return directory.get_user_by_username(db, username)
    except NotFound:
        return directory.create_user(
            db,
            {"username": username, "password": f"{username}-demo-pass", "role": role},
        )


def _get_or_create_building(db: Session, school: School, name: str) -> Building:
    row = db.scalar(select(Building).where(Building.school_id == school.id, Building.name == name))
    if row:
        return row
    return directory.create_building(
        db,
        {"school_id": school.id, "name": name, "type": BuildingType.CLASSROOM, "square_footage": 5000},
    )


def _get_or_create_component(db: Session, name: str) -> InfrastructureComponent:
    row = db.scalar(select(InfrastructureComponent).where(InfrastructureComponent.name == name))
    if row:
        return row
    return catalog.register_component(db, {"name": name, "description": "Rooftop HVAC"})


def seed_demo(
    *,
    school_name: str = "Lincoln HS",
    building_name: str = "Main Hall",
    component_name: str = "HVAC Unit 3",
    technician_username: str = "tchen",
    inspector_username: str = "inspector1",
    create_sample_request: bool = True,
) -> SeedResult:
    """
    Idempotent demo data: one school, one building, one component, an inspector,
    a technician, and (optionally) a priority-1 request that has work logged.
    """
    init_db()
    db = SessionLocal()
    try:
        school = _get_or_create_school(db, school_name)
        building = _get_or_create_building(db, school, building_name)
        component = _get_or_create_component(db, component_name)
        catalog.associate_component(db, building.id, component.id)

        inspector = _get_or_create_user(db, inspector_username, UserRole.INSPECTOR)
        technician = _get_or_create_user(db, technician_username, UserRole.TECHNICIAN)

        request_id: Optional[str] = None
        request_status: Optional[str] = None
        if create_sample_request:
            req = db.scalar(
                select(MaintenanceRequest).where(
                    MaintenanceRequest.building_id == building.id,
                    MaintenanceRequest.component_id == component.id,
                )
            )
            if req is None:
                inspections.file_report(
                    db,
                    {
                        "building_id": building.id,
                        "inspector_id": inspector.id,
                        "component_id": component.id,
                        "condition": 2,
                        "notes": "Compressor short-cycling",
                        "report_date": date.today(),
                    },
                )
                req = maintenance.open_request(
                    db,
                    {
                        "building_id": building.id,
                        "component_id": component.id,
                        "description": "Replace compressor relay",
                        "priority": 1,
                    },
                )
            if req.status == MaintenanceStatus.OPEN.value:
                maintenance.record_work(
                    db,
                    req.id,
                    {"technician_id": technician.id, "description": "Diagnosed relay failure"},
                )
            request_id = req.id
            request_status = maintenance.get_request(db, req.id).status

        return SeedResult(
            school_id=school.id,
            building_id=building.id,
            component_id=component.id,
            technician_username=technician.username,
            request_id=request_id,
            request_status=request_status,
        )
    finally:
        db.close()
