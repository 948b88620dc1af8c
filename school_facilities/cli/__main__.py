# school_facilities/cli/__main__.py
from __future__ import annotations

import argparse

from school_facilities.cli.seed_demo import seed_demo
from school_facilities.context import operation_scope
from school_facilities.logging_config import configure_logging


def main() -> None:
    p = argparse.ArgumentParser(prog="school_facilities.cli")
    p.add_argument("--school-name", default="Lincoln HS")
    p.add_argument("--building-name", default="Main Hall")
    p.add_argument("--component-name", default="HVAC Unit 3")
    p.add_argument("--technician", default="tchen")
    p.add_argument("--inspector", default="inspector1")
    p.add_argument("--no-sample-request", action="store_true")
    args = p.parse_args()

    configure_logging()
    with operation_scope():
        out = seed_demo(
            school_name=args.school_name,
            building_name=args.building_name,
            component_name=args.component_name,
            technician_username=args.technician,
            inspector_username=args.inspector,
            create_sample_request=(not args.no_sample_request),
        )
    print(
        {
            "ok": True,
            "school_id": out.school_id,
            "building_id": out.building_id,
            "component_id": out.component_id,
            "technician": out.technician_username,
            "sample_request_id": out.request_id,
            "sample_request_status": out.request_status,
        }
    )


if __name__ == "__main__":
    main()
