"""CropProfile ORM model: per-crop acceptable bounds for each metric.

Bounds are read as a whole by the decision engine through
``ThresholdProfile.from_row``.  ``min <= max`` is not enforced; inverted
bounds still classify deterministically.  At most one row is expected to
carry ``is_active``; when none does, the earliest-created crop is the
default profile.
"""

from __future__ import annotations

from sqlalchemy import Boolean, Float, String, false
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class CropProfile(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Named crop with min/max bounds for the five monitored metrics."""

    __tablename__ = "crops"

    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    min_air_temp: Mapped[float] = mapped_column(Float, nullable=False)
    max_air_temp: Mapped[float] = mapped_column(Float, nullable=False)
    min_water_temp: Mapped[float] = mapped_column(Float, nullable=False)
    max_water_temp: Mapped[float] = mapped_column(Float, nullable=False)
    min_humidity: Mapped[float] = mapped_column(Float, nullable=False)
    max_humidity: Mapped[float] = mapped_column(Float, nullable=False)
    min_ph: Mapped[float] = mapped_column(Float, nullable=False)
    max_ph: Mapped[float] = mapped_column(Float, nullable=False)
    min_tds: Mapped[float] = mapped_column(Float, nullable=False)
    max_tds: Mapped[float] = mapped_column(Float, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )

    def __repr__(self) -> str:
        return (
            f"<CropProfile id={self.id} name={self.name!r} "
            f"active={self.is_active}>"
        )
