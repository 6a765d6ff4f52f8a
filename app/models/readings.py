"""Sensor reading and alert ORM models.

Readings are append-only: each row stores the five raw values together with
the status vector computed at ingestion and the crop it was evaluated
against.  Alerts are only ever updated to flip ``is_read``.
"""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, Text, false
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class SensorReading(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """One ingested sample with its StatusVector (JSONB, camelCase keys)."""

    __tablename__ = "sensor_readings"
    __table_args__ = (
        Index("ix_sensor_readings_created_at", "created_at"),
    )

    air_temp: Mapped[float] = mapped_column(Float, nullable=False)
    water_temp: Mapped[float] = mapped_column(Float, nullable=False)
    humidity: Mapped[float] = mapped_column(Float, nullable=False)
    ph: Mapped[float] = mapped_column(Float, nullable=False)
    tds: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[dict] = mapped_column(JSONB, nullable=False)
    crop_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("crops.id", ondelete="SET NULL"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<SensorReading id={self.id} crop={self.crop_id} "
            f"ts={self.created_at}>"
        )


class Alert(Base, UUIDPrimaryKeyMixin, CreatedAtMixin):
    """Human-readable notice for a metric outside its crop bounds."""

    __tablename__ = "alerts"
    __table_args__ = (
        Index("ix_alerts_is_read_sensor_type", "is_read", "sensor_type"),
    )

    message: Mapped[str] = mapped_column(Text, nullable=False)
    sensor_type: Mapped[str] = mapped_column(String(32), nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    is_read: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def __repr__(self) -> str:
        return (
            f"<Alert id={self.id} sensor={self.sensor_type!r} "
            f"severity={self.severity!r} read={self.is_read}>"
        )
