"""Auto-control resolver: desired actuator state from a reading and profile.

Each rule is one-sided and evaluated independently; there is no extra
hysteresis band.  The diff against the current device snapshot is the only
damping: a device already in its desired state gets no command.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime

from app.engine.thresholds import SensorValues, ThresholdProfile
from app.models.enums import DeviceTypeEnum

LIGHT_ON_HOUR = 6
LIGHT_OFF_HOUR = 20


@dataclass(frozen=True, slots=True)
class DeviceState:
	id: uuid.UUID
	device_type: str
	is_on: bool
	name: str = ""
	last_updated: datetime | None = None

	@classmethod
	def from_row(cls, row: object) -> DeviceState:
		return cls(
			id=row.id,  # type: ignore[attr-defined]
			device_type=str(row.device_type),  # type: ignore[attr-defined]
			is_on=bool(row.is_on),  # type: ignore[attr-defined]
			name=getattr(row, "name", ""),
			last_updated=getattr(row, "last_updated", None),
		)


@dataclass(frozen=True, slots=True)
class DeviceCommand:
	device_id: uuid.UUID
	desired_on: bool
	device_type: DeviceTypeEnum
	seen_last_updated: datetime | None = None


@dataclass(frozen=True, slots=True)
class LightSchedule:
	"""Daily on-window ``[on_hour, off_hour)`` in local wall-clock hours."""

	on_hour: int = LIGHT_ON_HOUR
	off_hour: int = LIGHT_OFF_HOUR

	def is_on(self, now: datetime) -> bool:
		return self.on_hour <= now.hour < self.off_hour


Rule = Callable[[SensorValues, ThresholdProfile, datetime, LightSchedule], bool]

_RULES: dict[DeviceTypeEnum, Rule] = {
	DeviceTypeEnum.heater: lambda v, p, _now, _s: v.water_temp < p.min_water_temp,
	DeviceTypeEnum.humidifier: lambda v, p, _now, _s: v.humidity < p.min_humidity,
	DeviceTypeEnum.fan: lambda v, p, _now, _s: v.air_temp > p.max_air_temp,
	DeviceTypeEnum.pump: lambda v, p, _now, _s: v.tds < p.min_tds,
	DeviceTypeEnum.ph_adjuster: lambda v, p, _now, _s: v.ph < p.min_ph or v.ph > p.max_ph,
	DeviceTypeEnum.light: lambda _v, _p, now, schedule: schedule.is_on(now),
}


def controllable_type(device_type: str) -> DeviceTypeEnum | None:
	"""Known, rule-backed device type, or None for ``other``/unknown tags."""
	try:
		resolved = DeviceTypeEnum(device_type.strip().lower())
	except ValueError:
		return None
	return resolved if resolved in _RULES else None


def desired_device_states(
	values: SensorValues,
	profile: ThresholdProfile,
	devices: Iterable[DeviceState],
	now: datetime,
	schedule: LightSchedule | None = None,
) -> dict[uuid.UUID, bool]:
	schedule = schedule or LightSchedule()
	desired: dict[uuid.UUID, bool] = {}
	for device in devices:
		device_type = controllable_type(device.device_type)
		if device_type is None:
			continue
		desired[device.id] = bool(_RULES[device_type](values, profile, now, schedule))
	return desired


def resolve_device_targets(
	values: SensorValues,
	profile: ThresholdProfile,
	devices: Iterable[DeviceState],
	now: datetime,
	schedule: LightSchedule | None = None,
) -> list[DeviceCommand]:
	"""Commands only for devices whose desired state differs from current."""
	snapshot = list(devices)
	desired = desired_device_states(values, profile, snapshot, now, schedule)
	commands: list[DeviceCommand] = []
	for device in snapshot:
		if device.id not in desired or desired[device.id] == device.is_on:
			continue
		commands.append(
			DeviceCommand(
				device_id=device.id,
				desired_on=desired[device.id],
				device_type=controllable_type(device.device_type),  # type: ignore[arg-type]
				seen_last_updated=device.last_updated,
			)
		)
	return commands
