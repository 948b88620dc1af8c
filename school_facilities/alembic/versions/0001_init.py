"""init schema

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _ts_cols():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        sa.Column("phone_number", sa.String(length=15), nullable=True),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        *_ts_cols(),
        sa.CheckConstraint("role IN ('Inspector', 'Technician', 'Admin')", name="ck_users_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "schools",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("zip", sa.String(length=20), nullable=False),
        sa.Column("phone_number", sa.String(length=15), nullable=False),
        sa.Column("email", sa.String(length=100), nullable=True),
        *_ts_cols(),
        sa.UniqueConstraint("email", name="uq_schools_email"),
    )
    op.create_index("ix_schools_name", "schools", ["name"], unique=True)

    op.create_table(
        "buildings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("school_id", sa.String(length=36), sa.ForeignKey("schools.id"), nullable=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("square_footage", sa.Integer(), nullable=False),
        sa.Column("archived_at", sa.DateTime(), nullable=True),
        *_ts_cols(),
        sa.CheckConstraint(
            "type IN ('Administration', 'Classroom', 'Gymnasium', 'Laboratory', 'Library', 'Other')",
            name="ck_buildings_type",
        ),
        sa.CheckConstraint("square_footage > 0", name="ck_buildings_square_footage"),
    )
    op.create_index("ix_buildings_school_id", "buildings", ["school_id"])

    op.create_table(
        "infrastructure_components",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        *_ts_cols(),
    )
    op.create_index("ix_infrastructure_components_name", "infrastructure_components", ["name"])

    op.create_table(
        "buildings_infrastructure",
        sa.Column("building_id", sa.String(length=36), sa.ForeignKey("buildings.id"), primary_key=True),
        sa.Column(
            "component_id", sa.String(length=36), sa.ForeignKey("infrastructure_components.id"), primary_key=True
        ),
    )
    op.create_index("ix_buildings_infrastructure_component_id", "buildings_infrastructure", ["component_id"])

    op.create_table(
        "sensors",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        *_ts_cols(),
        sa.CheckConstraint(
            "type IN ('Temperature', 'Humidity', 'AirQuality', 'Structural', 'Vision')",
            name="ck_sensors_type",
        ),
    )
    op.create_index("ix_sensors_name", "sensors", ["name"], unique=True)

    op.create_table(
        "buildings_sensors",
        sa.Column("building_id", sa.String(length=36), sa.ForeignKey("buildings.id"), primary_key=True),
        sa.Column("sensor_id", sa.String(length=36), sa.ForeignKey("sensors.id"), primary_key=True),
    )
    op.create_index("ix_buildings_sensors_sensor_id", "buildings_sensors", ["sensor_id"])

    op.create_table(
        "inspection_reports",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("building_id", sa.String(length=36), sa.ForeignKey("buildings.id"), nullable=False),
        sa.Column("inspector_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column(
            "component_id", sa.String(length=36), sa.ForeignKey("infrastructure_components.id"), nullable=True
        ),
        sa.Column("report_date", sa.Date(), nullable=False),
        sa.Column("condition", sa.Integer(), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        *_ts_cols(),
        sa.CheckConstraint("condition BETWEEN 1 AND 5", name="ck_inspection_reports_condition"),
    )
    op.create_index("ix_inspection_reports_building_id", "inspection_reports", ["building_id"])
    op.create_index("ix_inspection_reports_component_id", "inspection_reports", ["component_id"])

    op.create_table(
        "maintenance_requests",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("building_id", sa.String(length=36), sa.ForeignKey("buildings.id"), nullable=False),
        sa.Column(
            "component_id", sa.String(length=36), sa.ForeignKey("infrastructure_components.id"), nullable=False
        ),
        sa.Column("request_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False, server_default="Open"),
        sa.Column(
            "reopened_from_id", sa.String(length=36), sa.ForeignKey("maintenance_requests.id"), nullable=True
        ),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(), nullable=True),
        *_ts_cols(),
        sa.CheckConstraint("priority BETWEEN 1 AND 3", name="ck_maintenance_requests_priority"),
        sa.CheckConstraint(
            "status IN ('Open', 'In Progress', 'Completed', 'Cancelled')",
            name="ck_maintenance_requests_status",
        ),
    )
    op.create_index("ix_maintenance_requests_building_id", "maintenance_requests", ["building_id"])
    op.create_index(
        "ix_maintenance_requests_status_priority",
        "maintenance_requests",
        ["status", "priority", "request_date"],
    )

    op.create_table(
        "maintenance_history",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column(
            "maintenance_request_id",
            sa.String(length=36),
            sa.ForeignKey("maintenance_requests.id"),
            nullable=False,
        ),
        sa.Column("technician_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("work_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        *_ts_cols(),
    )
    op.create_index(
        "ix_maintenance_history_maintenance_request_id", "maintenance_history", ["maintenance_request_id"]
    )

    op.create_table(
        "audit_events",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=36), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=80), nullable=False),
        sa.Column("entity_id", sa.String(length=80), nullable=False),
        sa.Column("before_json", sa.Text(), nullable=True),
        sa.Column("after_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_audit_events_entity", "audit_events", ["entity_type", "entity_id"])


def downgrade():
    op.drop_table("audit_events")
    op.drop_table("maintenance_history")
    op.drop_table("maintenance_requests")
    op.drop_table("inspection_reports")
    op.drop_table("buildings_sensors")
    op.drop_table("sensors")
    op.drop_table("buildings_infrastructure")
    op.drop_table("infrastructure_components")
    op.drop_table("buildings")
    op.drop_table("schools")
    op.drop_table("users")
