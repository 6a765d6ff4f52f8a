"""ORM model registry: importing this module registers every table on Base.metadata.

Alembic ``env.py`` imports ``Base`` from here (not from ``base.py``) so that
autogenerate sees all tables.  Application code can also do::

    from app.models import CropProfile, Device, SensorReading, Alert
"""

# ── Base & Mixins ───────────────────────────────────────────────────────────
from app.models.base import (
    Base,
    CreatedAtMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)

# ── Crop profiles ───────────────────────────────────────────────────────────
from app.models.crops import CropProfile

# ── Actuators ───────────────────────────────────────────────────────────────
from app.models.devices import Device

# ── Enums ───────────────────────────────────────────────────────────────────
from app.models.enums import DeviceTypeEnum, MetricEnum, SeverityEnum

# ── Readings & alerts ───────────────────────────────────────────────────────
from app.models.readings import Alert, SensorReading

__all__ = [
    "Alert",
    # Base & mixins
    "Base",
    "CreatedAtMixin",
    # Crop profiles
    "CropProfile",
    # Actuators
    "Device",
    # Enums
    "DeviceTypeEnum",
    "MetricEnum",
    # Readings
    "SensorReading",
    "SeverityEnum",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
]
