# tests/test_catalog.py
from __future__ import annotations

import logging

import pytest
from sqlalchemy import func, select

from school_facilities.errors import Conflict, NotFound, ValidationError
from school_facilities.models import BuildingComponent
from school_facilities.services import catalog

from conftest import mk_building


def test_reassociating_a_pair_is_a_noop(db, building):
    c = catalog.register_component(db, {"name": "Boiler"})
    catalog.associate_component(db, building.id, c.id)
    catalog.associate_component(db, building.id, c.id)

    n = db.scalar(select(func.count()).select_from(BuildingComponent))
    assert n == 1


def test_dissociate_removes_exactly_one_row(db, building):
    other = mk_building(db, name="Gym")
    c = catalog.register_component(db, {"name": "Boiler"})
    catalog.associate_component(db, building.id, c.id)
    catalog.associate_component(db, other.id, c.id)

    catalog.dissociate_component(db, building.id, c.id)

    assert catalog.list_components_for_building(db, building.id) == []
    assert [x.id for x in catalog.list_components_for_building(db, other.id)] == [c.id]

    with pytest.raises(NotFound):
        catalog.dissociate_component(db, building.id, c.id)


def test_listing_components_for_building(db, building):
    names = ["Roof", "Boiler", "Elevator"]
    for n in names:
        c = catalog.register_component(db, {"name": n})
        catalog.associate_component(db, building.id, c.id)
    catalog.register_component(db, {"name": "Unattached"})

    listed = [c.name for c in catalog.list_components_for_building(db, building.id)]
    assert listed == sorted(names)


def test_associate_requires_existing_rows(db, building):
    with pytest.raises(NotFound):
        catalog.associate_component(db, building.id, "missing")
    with pytest.raises(NotFound):
        catalog.associate_sensor(db, "missing", "missing")


def test_sensor_name_unique_and_type_closed(db, building):
    s = catalog.register_sensor(db, {"name": "T-101", "type": "Temperature"})
    with pytest.raises(Conflict):
        catalog.register_sensor(db, {"name": "T-101", "type": "Humidity"})
    with pytest.raises(ValidationError):
        catalog.register_sensor(db, {"name": "X-1", "type": "Radar"})

    catalog.associate_sensor(db, building.id, s.id)
    catalog.associate_sensor(db, building.id, s.id)
    assert [x.name for x in catalog.list_sensors_for_building(db, building.id)] == ["T-101"]

    catalog.dissociate_sensor(db, building.id, s.id)
    assert catalog.list_sensors_for_building(db, building.id) == []


def test_lookups_and_installed_check(db, building, component):
    assert catalog.get_component(db, component.id).name == "HVAC Unit 3"
    assert catalog.is_component_installed(db, building.id, component.id)

    s = catalog.register_sensor(db, {"name": "H-7", "type": "Humidity"})
    assert catalog.get_sensor(db, s.id).type == "Humidity"

    catalog.dissociate_component(db, building.id, component.id)
    assert not catalog.is_component_installed(db, building.id, component.id)

    with pytest.raises(NotFound):
        catalog.get_component(db, "missing")
    with pytest.raises(NotFound):
        catalog.get_sensor(db, "missing")


def test_sensor_lines_carry_sensor_id(db, building, caplog):
    with caplog.at_level(logging.INFO, logger="school_facilities.services.catalog"):
        s = catalog.register_sensor(db, {"name": "AQ-2", "type": "AirQuality"})
        catalog.associate_sensor(db, building.id, s.id)

    lines = [r for r in caplog.records if r.getMessage().startswith("sensor ")]
    assert [r.getMessage() for r in lines] == ["sensor registered", "sensor associated"]
    assert all(r.sensor_id == s.id for r in lines)
