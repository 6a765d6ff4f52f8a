"""initial_schema

Revision ID: 3c1e9a7f2b10
Revises:
Create Date: 2026-10-16 00:00:00.000000

Creates the crops, devices, sensor_readings and alerts tables and seeds the
default crop profiles (Lettuce active) and the standard actuator set.
Requires the uuid-ossp extension for server-side UUID defaults.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "3c1e9a7f2b10"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_BOUND_COLUMNS = (
    "min_air_temp",
    "max_air_temp",
    "min_water_temp",
    "max_water_temp",
    "min_humidity",
    "max_humidity",
    "min_ph",
    "max_ph",
    "min_tds",
    "max_tds",
)

# name, bounds in _BOUND_COLUMNS order, is_active
DEFAULT_CROPS = (
    ("Lettuce", (15, 24, 18, 23, 50, 70, 5.5, 6.5, 560, 840), True),
    ("Basil", (18, 30, 20, 25, 60, 80, 5.5, 6.5, 700, 1120), False),
    ("Strawberry", (18, 26, 18, 22, 65, 75, 5.5, 6.2, 840, 1260), False),
    ("Tomato", (20, 30, 20, 26, 60, 80, 5.8, 6.3, 1120, 1540), False),
)

# name, device_type, is_on; circulation runs continuously outside the pump rule
DEFAULT_DEVICES = (
    ("Nutrient Pump", "pump", False),
    ("Water Circulation", "other", True),
    ("Ventilation Fan", "fan", False),
    ("Water Heater", "heater", False),
    ("Humidifier", "humidifier", False),
    ("Grow Light", "light", True),
    ("pH Doser", "ph_adjuster", False),
)


def _uuid_pk() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("uuid_generate_v4()"),
        nullable=False,
    )


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')

    # ── crops ───────────────────────────────────────────────────────────────
    crops = op.create_table(
        "crops",
        _uuid_pk(),
        sa.Column("name", sa.String(length=100), nullable=False),
        *[sa.Column(column, sa.Float(), nullable=False) for column in _BOUND_COLUMNS],
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )

    # ── devices ─────────────────────────────────────────────────────────────
    devices = op.create_table(
        "devices",
        _uuid_pk(),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("device_type", sa.String(length=32), nullable=False),
        sa.Column("is_on", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    # ── sensor_readings ─────────────────────────────────────────────────────
    op.create_table(
        "sensor_readings",
        _uuid_pk(),
        sa.Column("air_temp", sa.Float(), nullable=False),
        sa.Column("water_temp", sa.Float(), nullable=False),
        sa.Column("humidity", sa.Float(), nullable=False),
        sa.Column("ph", sa.Float(), nullable=False),
        sa.Column("tds", sa.Float(), nullable=False),
        sa.Column("status", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("crop_id", postgresql.UUID(as_uuid=True), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(["crop_id"], ["crops.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sensor_readings_created_at", "sensor_readings", ["created_at"])

    # ── alerts ──────────────────────────────────────────────────────────────
    op.create_table(
        "alerts",
        _uuid_pk(),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("sensor_type", sa.String(length=32), nullable=False),
        sa.Column("severity", sa.String(length=16), nullable=False),
        sa.Column("is_read", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_alerts_is_read_sensor_type", "alerts", ["is_read", "sensor_type"])

    # ── seed data ───────────────────────────────────────────────────────────
    op.bulk_insert(
        crops,
        [
            {"name": name, **dict(zip(_BOUND_COLUMNS, bounds, strict=True)), "is_active": active}
            for name, bounds, active in DEFAULT_CROPS
        ],
    )
    op.bulk_insert(
        devices,
        [
            {"name": name, "device_type": device_type, "is_on": is_on}
            for name, device_type, is_on in DEFAULT_DEVICES
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_alerts_is_read_sensor_type", table_name="alerts")
    op.drop_table("alerts")
    op.drop_index("ix_sensor_readings_created_at", table_name="sensor_readings")
    op.drop_table("sensor_readings")
    op.drop_table("devices")
    op.drop_table("crops")
