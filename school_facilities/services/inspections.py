# school_facilities/services/inspections.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ValidationError
from ..models import InspectionReport, UserRole
from ..schemas import InspectionReportCreate, parse_payload
from .catalog import is_component_installed
from .lookups import commit_or_conflict, must_get_building, must_get_component, must_get_user_with_role

log = logging.getLogger(__name__)


def file_report(db: Session, payload: InspectionReportCreate | dict[str, Any]) -> InspectionReport:
    """
    Files an inspection report. Reports are append-only: a correction is a new
    report, which supersedes the old one in every "latest" view.

    When `component_id` is given the component must be installed in the
    building, so per-component condition joins stay meaningful.
    """
    data = parse_payload(InspectionReportCreate, payload)

    building = must_get_building(db, data.building_id, active=True)
    inspector = must_get_user_with_role(db, data.inspector_id, UserRole.INSPECTOR)

    if data.component_id is not None:
        must_get_component(db, data.component_id)
        if not is_component_installed(db, building.id, data.component_id):
            raise ValidationError(
                "component is not associated with this building",
                details={"building_id": building.id, "component_id": data.component_id},
            )

    report = InspectionReport(
        building_id=building.id,
        inspector_id=inspector.id,
        component_id=data.component_id,
        report_date=data.report_date or date.today(),
        condition=data.condition,
        notes=data.notes,
    )
    db.add(report)
    commit_or_conflict(db, entity_type="InspectionReport")
    log.info(
        "inspection report filed",
        extra={"report_id": report.id, "building_id": building.id, "user_id": inspector.id},
    )
    return report


def list_reports_for_building(
    db: Session, building_id: str, *, limit: Optional[int] = None
) -> list[InspectionReport]:
    must_get_building(db, building_id)
    stmt = (
        select(InspectionReport)
        .where(InspectionReport.building_id == building_id)
        .order_by(desc(InspectionReport.report_date), desc(InspectionReport.created_at))
        .limit(int(limit or settings.default_page_limit))
    )
    return list(db.scalars(stmt))


def latest_report(db: Session, building_id: str, component_id: Optional[str] = None) -> Optional[InspectionReport]:
    """
    Latest report by report_date (ties: most recently filed).

    `component_id=None` looks at every report for the building.
    """
    must_get_building(db, building_id)
    stmt = select(InspectionReport).where(InspectionReport.building_id == building_id)
    if component_id is not None:
        stmt = stmt.where(InspectionReport.component_id == component_id)
    stmt = stmt.order_by(desc(InspectionReport.report_date), desc(InspectionReport.created_at)).limit(1)
    return db.scalar(stmt)
