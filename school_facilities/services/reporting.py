# school_facilities/services/reporting.py
from __future__ import annotations

from dataclasses import dataclass, asdict
from datetime import date
from typing import Any, Optional

from sqlalchemy import desc, distinct, func, select
from sqlalchemy.orm import Session

from ..models import (
    Building,
    InfrastructureComponent,
    InspectionReport,
    MaintenanceHistoryEntry,
    MaintenanceRequest,
    MaintenanceStatus,
    User,
    UserRole,
)
from .lookups import must_get_building

# -----------------------------------------------------------------------------
# Read-only derived views. Nothing here writes, flushes or commits; callers may
# run these on a read-only / snapshot session.
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class UrgentRepair:
    request_id: str
    building_name: str
    component_name: str
    priority: int
    status: str
    request_date: date

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ConditionTrendPoint:
    report_date: date
    avg_condition: float
    report_count: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TechnicianWorkload:
    technician_id: str
    username: str
    requests_handled: int
    repairs_done: int

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CurrentCondition:
    report_id: str
    building_id: str
    building_name: str
    component_id: Optional[str]
    component_name: Optional[str]
    condition: int
    notes: Optional[str]
    report_date: date

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def urgent_repairs(db: Session) -> list[UrgentRepair]:
    """
    Open requests, most urgent first.
    Order: priority asc, request_date asc, then filing order so the queue is stable.
    """
    stmt = (
        select(
            MaintenanceRequest.id,
            Building.name,
            InfrastructureComponent.name,
            MaintenanceRequest.priority,
            MaintenanceRequest.status,
            MaintenanceRequest.request_date,
        )
        .join(Building, MaintenanceRequest.building_id == Building.id)
        .join(InfrastructureComponent, MaintenanceRequest.component_id == InfrastructureComponent.id)
        .where(MaintenanceRequest.status == MaintenanceStatus.OPEN.value)
        .order_by(
            MaintenanceRequest.priority.asc(),
            MaintenanceRequest.request_date.asc(),
            MaintenanceRequest.created_at.asc(),
            MaintenanceRequest.id.asc(),
        )
    )
    return [
        UrgentRepair(
            request_id=rid,
            building_name=bname,
            component_name=cname,
            priority=int(prio),
            status=status,
            request_date=rdate,
        )
        for rid, bname, cname, prio, status, rdate in db.execute(stmt)
    ]


def condition_trend(
    db: Session,
    *,
    building_id: Optional[str] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> list[ConditionTrendPoint]:
    """
    Mean condition per report_date, ascending. Dates without reports are
    absent; no interpolation. `start`/`end` are inclusive.
    """
    stmt = select(
        InspectionReport.report_date,
        func.avg(InspectionReport.condition),
        func.count(InspectionReport.id),
    )
    if building_id is not None:
        must_get_building(db, building_id)
        stmt = stmt.where(InspectionReport.building_id == building_id)
    if start is not None:
        stmt = stmt.where(InspectionReport.report_date >= start)
    if end is not None:
        stmt = stmt.where(InspectionReport.report_date <= end)

    stmt = stmt.group_by(InspectionReport.report_date).order_by(InspectionReport.report_date.asc())

    # Postgres AVG returns Decimal; normalize.
    return [
        ConditionTrendPoint(report_date=d, avg_condition=float(avg), report_count=int(n))
        for d, avg, n in db.execute(stmt)
    ]


def technician_workload(db: Session) -> list[TechnicianWorkload]:
    """
    One row per technician, including those with no logged work.

    requests_handled counts DISTINCT requests (several entries on one request
    count once); repairs_done counts entries.
    """
    stmt = (
        select(
            User.id,
            User.username,
            func.count(distinct(MaintenanceHistoryEntry.maintenance_request_id)),
            func.count(MaintenanceHistoryEntry.id),
        )
        .select_from(User)
        .outerjoin(MaintenanceHistoryEntry, MaintenanceHistoryEntry.technician_id == User.id)
        .where(User.role == UserRole.TECHNICIAN.value)
        .group_by(User.id, User.username)
        .order_by(User.username)
    )
    return [
        TechnicianWorkload(
            technician_id=uid,
            username=username,
            requests_handled=int(handled or 0),
            repairs_done=int(done or 0),
        )
        for uid, username, handled, done in db.execute(stmt)
    ]


def current_conditions(db: Session, building_id: Optional[str] = None) -> list[CurrentCondition]:
    """
    Latest report per (building, component), keyed on the report's own
    component_id. Whole-building reports come back with component None.
    """
    rn = (
        func.row_number()
        .over(
            partition_by=(InspectionReport.building_id, InspectionReport.component_id),
            order_by=(
                desc(InspectionReport.report_date),
                desc(InspectionReport.created_at),
                desc(InspectionReport.id),
            ),
        )
        .label("rn")
    )
    ranked = select(
        InspectionReport.id.label("report_id"),
        InspectionReport.building_id,
        InspectionReport.component_id,
        InspectionReport.condition,
        InspectionReport.notes,
        InspectionReport.report_date,
        rn,
    )
    if building_id is not None:
        must_get_building(db, building_id)
        ranked = ranked.where(InspectionReport.building_id == building_id)
    latest = ranked.subquery("latest")

    stmt = (
        select(
            latest.c.report_id,
            latest.c.building_id,
            Building.name,
            latest.c.component_id,
            InfrastructureComponent.name,
            latest.c.condition,
            latest.c.notes,
            latest.c.report_date,
        )
        .join(Building, Building.id == latest.c.building_id)
        .outerjoin(InfrastructureComponent, InfrastructureComponent.id == latest.c.component_id)
        .where(latest.c.rn == 1)
        .order_by(Building.name, Building.id, func.coalesce(InfrastructureComponent.name, ""))
    )
    return [
        CurrentCondition(
            report_id=report_id,
            building_id=bid,
            building_name=bname,
            component_id=cid,
            component_name=cname,
            condition=int(cond),
            notes=notes,
            report_date=rdate,
        )
        for report_id, bid, bname, cid, cname, cond, notes, rdate in db.execute(stmt)
    ]
