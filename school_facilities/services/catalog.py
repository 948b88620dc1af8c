# school_facilities/services/catalog.py
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import NotFound
from ..models import BuildingComponent, BuildingSensor, InfrastructureComponent, Sensor
from ..schemas import ComponentCreate, SensorCreate, parse_payload
from .lookups import commit_or_conflict, must_get_building, must_get_component, must_get_sensor

log = logging.getLogger(__name__)


def register_component(db: Session, payload: ComponentCreate | dict[str, Any]) -> InfrastructureComponent:
    data = parse_payload(ComponentCreate, payload)
    row = InfrastructureComponent(name=data.name, description=data.description)
    db.add(row)
    commit_or_conflict(db, entity_type="InfrastructureComponent")
    log.info("component registered", extra={"component_id": row.id})
    return row


def register_sensor(db: Session, payload: SensorCreate | dict[str, Any]) -> Sensor:
    data = parse_payload(SensorCreate, payload)
    row = Sensor(name=data.name, type=data.type.value)
    db.add(row)
    commit_or_conflict(db, entity_type="Sensor")
    log.info("sensor registered", extra={"sensor_id": row.id})
    return row


def get_component(db: Session, component_id: str) -> InfrastructureComponent:
    return must_get_component(db, component_id)


def get_sensor(db: Session, sensor_id: str) -> Sensor:
    return must_get_sensor(db, sensor_id)


def _associate(db: Session, model, key: dict[str, str]):
    """
    Idempotent join-row insert.

    An existing pair is returned as-is. If a concurrent writer inserts the same
    pair between our lookup and commit, the composite primary key rejects ours
    and the pair they wrote is returned instead.
    """
    existing = db.get(model, key)
    if existing is not None:
        return existing

    db.add(model(**key))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = db.get(model, key)
        if existing is None:
            raise
        return existing
    return db.get(model, key)


def associate_component(db: Session, building_id: str, component_id: str) -> BuildingComponent:
    must_get_building(db, building_id)
    must_get_component(db, component_id)
    row = _associate(db, BuildingComponent, {"building_id": building_id, "component_id": component_id})
    log.info("component associated", extra={"building_id": building_id, "component_id": component_id})
    return row


def associate_sensor(db: Session, building_id: str, sensor_id: str) -> BuildingSensor:
    must_get_building(db, building_id)
    must_get_sensor(db, sensor_id)
    row = _associate(db, BuildingSensor, {"building_id": building_id, "sensor_id": sensor_id})
    log.info("sensor associated", extra={"building_id": building_id, "sensor_id": sensor_id})
    return row


def _dissociate(db: Session, model, key: dict[str, str], label: str) -> None:
    row = db.get(model, key)
    if row is None:
        raise NotFound(label, "/".join(key.values()))
    db.delete(row)
    db.commit()


def dissociate_component(db: Session, building_id: str, component_id: str) -> None:
    _dissociate(
        db,
        BuildingComponent,
        {"building_id": building_id, "component_id": component_id},
        "BuildingComponent",
    )
    log.info("component dissociated", extra={"building_id": building_id, "component_id": component_id})


def dissociate_sensor(db: Session, building_id: str, sensor_id: str) -> None:
    _dissociate(db, BuildingSensor, {"building_id": building_id, "sensor_id": sensor_id}, "BuildingSensor")
    log.info("sensor dissociated", extra={"building_id": building_id, "sensor_id": sensor_id})


def is_component_installed(db: Session, building_id: str, component_id: str) -> bool:
    return db.get(BuildingComponent, {"building_id": building_id, "component_id": component_id}) is not None


def list_components_for_building(db: Session, building_id: str) -> list[InfrastructureComponent]:
    must_get_building(db, building_id)
    stmt = (
        select(InfrastructureComponent)
        .join(BuildingComponent, BuildingComponent.component_id == InfrastructureComponent.id)
        .where(BuildingComponent.building_id == building_id)
        .order_by(InfrastructureComponent.name, InfrastructureComponent.id)
    )
    return list(db.scalars(stmt))


def list_sensors_for_building(db: Session, building_id: str) -> list[Sensor]:
    must_get_building(db, building_id)
    stmt = (
        select(Sensor)
        .join(BuildingSensor, BuildingSensor.sensor_id == Sensor.id)
        .where(BuildingSensor.building_id == building_id)
        .order_by(Sensor.name)
    )
    return list(db.scalars(stmt))
