# school_facilities/models.py
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _uuid() -> str:
    return str(uuid.uuid4())


def _in_check(column: str, enum_cls: type[enum.Enum], name: str) -> CheckConstraint:
    values = ", ".join(f"'{m.value}'" for m in enum_cls)
    return CheckConstraint(f"{column} IN ({values})", name=name)


# -----------------------------
# Closed enumerations
# -----------------------------
class UserRole(str, enum.Enum):
    INSPECTOR = "Inspector"
    TECHNICIAN = "Technician"
    ADMIN = "Admin"


class BuildingType(str, enum.Enum):
    ADMINISTRATION = "Administration"
    CLASSROOM = "Classroom"
    GYMNASIUM = "Gymnasium"
    LABORATORY = "Laboratory"
    LIBRARY = "Library"
    OTHER = "Other"


class SensorType(str, enum.Enum):
    TEMPERATURE = "Temperature"
    HUMIDITY = "Humidity"
    AIR_QUALITY = "AirQuality"
    STRUCTURAL = "Structural"
    VISION = "Vision"


class MaintenanceStatus(str, enum.Enum):
    OPEN = "Open"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# -----------------------------
# Identity & Directory
# -----------------------------
class User(Base):
    __tablename__ = "users"
    __table_args__ = (_in_check("role", UserRole, "ck_users_role"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, unique=True, index=True)
    phone_number: Mapped[Optional[str]] = mapped_column(String(15), nullable=True)

    # Users are never hard-deleted; history rows must keep resolving.
    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    inspection_reports: Mapped[List["InspectionReport"]] = relationship(back_populates="inspector")
    history_entries: Mapped[List["MaintenanceHistoryEntry"]] = relationship(back_populates="technician")


class School(Base):
    __tablename__ = "schools"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str] = mapped_column(String(100), nullable=False)
    zip: Mapped[str] = mapped_column(String(20), nullable=False)
    phone_number: Mapped[str] = mapped_column(String(15), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, unique=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    buildings: Mapped[List["Building"]] = relationship(back_populates="school")


class Building(Base):
    __tablename__ = "buildings"
    __table_args__ = (
        _in_check("type", BuildingType, "ck_buildings_type"),
        CheckConstraint("square_footage > 0", name="ck_buildings_square_footage"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    school_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("schools.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    square_footage: Mapped[int] = mapped_column(Integer, nullable=False)

    archived_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    school: Mapped[Optional["School"]] = relationship(back_populates="buildings")
    inspection_reports: Mapped[List["InspectionReport"]] = relationship(back_populates="building")
    maintenance_requests: Mapped[List["MaintenanceRequest"]] = relationship(back_populates="building")


# -----------------------------
# Asset Catalog
# -----------------------------
class InfrastructureComponent(Base):
    __tablename__ = "infrastructure_components"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class BuildingComponent(Base):
    __tablename__ = "buildings_infrastructure"

    building_id: Mapped[str] = mapped_column(String(36), ForeignKey("buildings.id"), primary_key=True)
    component_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("infrastructure_components.id"), primary_key=True, index=True
    )


class Sensor(Base):
    __tablename__ = "sensors"
    __table_args__ = (_in_check("type", SensorType, "ck_sensors_type"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    type: Mapped[str] = mapped_column(String(50), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )


class BuildingSensor(Base):
    __tablename__ = "buildings_sensors"

    building_id: Mapped[str] = mapped_column(String(36), ForeignKey("buildings.id"), primary_key=True)
    sensor_id: Mapped[str] = mapped_column(String(36), ForeignKey("sensors.id"), primary_key=True, index=True)


# -----------------------------
# Inspections
# -----------------------------
class InspectionReport(Base):
    __tablename__ = "inspection_reports"
    __table_args__ = (
        CheckConstraint("condition BETWEEN 1 AND 5", name="ck_inspection_reports_condition"),
        Index("ix_inspection_reports_component_id", "component_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    building_id: Mapped[str] = mapped_column(String(36), ForeignKey("buildings.id"), nullable=False, index=True)
    inspector_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)

    # Null means a whole-building report.
    component_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("infrastructure_components.id"), nullable=True
    )

    report_date: Mapped[date] = mapped_column(Date, nullable=False)
    condition: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    building: Mapped["Building"] = relationship(back_populates="inspection_reports")
    inspector: Mapped["User"] = relationship(back_populates="inspection_reports")
    component: Mapped[Optional["InfrastructureComponent"]] = relationship()


# -----------------------------
# Maintenance workflow
# -----------------------------
class MaintenanceRequest(Base):
    __tablename__ = "maintenance_requests"
    __table_args__ = (
        CheckConstraint("priority BETWEEN 1 AND 3", name="ck_maintenance_requests_priority"),
        _in_check("status", MaintenanceStatus, "ck_maintenance_requests_status"),
        Index("ix_maintenance_requests_status_priority", "status", "priority", "request_date"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    building_id: Mapped[str] = mapped_column(String(36), ForeignKey("buildings.id"), nullable=False, index=True)
    component_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("infrastructure_components.id"), nullable=False
    )

    request_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(50), nullable=False, default=MaintenanceStatus.OPEN.value)

    # Set when this request re-opens a terminal one; the old row stays untouched.
    reopened_from_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("maintenance_requests.id"), nullable=True
    )

    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    building: Mapped["Building"] = relationship(back_populates="maintenance_requests")
    component: Mapped["InfrastructureComponent"] = relationship()
    history: Mapped[List["MaintenanceHistoryEntry"]] = relationship(
        back_populates="maintenance_request",
        order_by="MaintenanceHistoryEntry.work_date",
    )


class MaintenanceHistoryEntry(Base):
    __tablename__ = "maintenance_history"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    maintenance_request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("maintenance_requests.id"), nullable=False, index=True
    )
    technician_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    maintenance_request: Mapped["MaintenanceRequest"] = relationship(back_populates="history")
    technician: Mapped["User"] = relationship(back_populates="history_entries")


# -----------------------------
# Audit trail
# -----------------------------
class AuditEvent(Base):
    __tablename__ = "audit_events"
    __table_args__ = (Index("ix_audit_events_entity", "entity_type", "entity_id"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    actor_user_id: Mapped[Optional[str]] = mapped_column(String(36), ForeignKey("users.id"), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
