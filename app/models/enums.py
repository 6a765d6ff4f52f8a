"""Shared enum types for ORM columns, schemas and the decision engine.

Severity and metric tags are stored as plain strings (JSONB status vectors
and alert rows), so these are StrEnums rather than PostgreSQL ENUM types.
Device types are also free-form strings in the database: rows with a type
outside ``DeviceTypeEnum`` are kept and simply ignored by auto-control.
"""

from enum import StrEnum


class MetricEnum(StrEnum):
    """The five monitored metrics (value doubles as alert ``sensor_type``)."""

    air_temp = "airTemp"
    water_temp = "waterTemp"
    humidity = "humidity"
    ph = "ph"
    tds = "tds"


class SeverityEnum(StrEnum):
    """Classification of one metric value against a crop profile."""

    normal = "normal"
    warning = "warning"
    critical = "critical"


class DeviceTypeEnum(StrEnum):
    """Actuator categories known to the auto-control rules."""

    pump = "pump"
    fan = "fan"
    heater = "heater"
    humidifier = "humidifier"
    light = "light"
    ph_adjuster = "ph_adjuster"
    other = "other"
