"""Device ORM model: switchable actuators (pumps, fans, heaters, ...)."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, false, func
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, UUIDPrimaryKeyMixin


class Device(Base, UUIDPrimaryKeyMixin):
    """Actuator with a boolean on/off state.

    ``device_type`` is a free-form tag; see ``DeviceTypeEnum`` for the values
    auto-control acts on.  ``last_updated`` doubles as the version stamp for
    compare-and-swap state writes.
    """

    __tablename__ = "devices"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    device_type: Mapped[str] = mapped_column(String(32), nullable=False)
    is_on: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<Device id={self.id} type={self.device_type!r} "
            f"on={self.is_on}>"
        )
