"""Threshold classification and per-reading evaluation.

A metric is ``critical`` when it falls more than 10% beyond a bound, where
the margin is taken from the bound itself (``min - 0.1 * min`` and
``max + 0.1 * max``), not from the band width.  Bounds at or below zero
therefore produce asymmetric critical bands; that is kept as-is.

Two evaluation policies exist on purpose:

* ``evaluate_for_display`` is tolerant: a missing profile yields an
  all-normal status vector so the dashboard stays usable.
* ``evaluate_for_ingestion`` is strict: a missing profile rejects the
  reading with ``ConfigurationError``.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from app.errors import ConfigurationError
from app.models.enums import MetricEnum, SeverityEnum

CRITICAL_MARGIN = 0.1

METRICS: tuple[MetricEnum, ...] = (
	MetricEnum.air_temp,
	MetricEnum.water_temp,
	MetricEnum.humidity,
	MetricEnum.ph,
	MetricEnum.tds,
)

# metric -> (reading attribute, profile min attribute, profile max attribute)
_METRIC_FIELDS: dict[MetricEnum, tuple[str, str, str]] = {
	MetricEnum.air_temp: ("air_temp", "min_air_temp", "max_air_temp"),
	MetricEnum.water_temp: ("water_temp", "min_water_temp", "max_water_temp"),
	MetricEnum.humidity: ("humidity", "min_humidity", "max_humidity"),
	MetricEnum.ph: ("ph", "min_ph", "max_ph"),
	MetricEnum.tds: ("tds", "min_tds", "max_tds"),
}


@dataclass(frozen=True, slots=True)
class SensorValues:
	air_temp: float
	water_temp: float
	humidity: float
	ph: float
	tds: float

	def value_of(self, metric: MetricEnum) -> float:
		return float(getattr(self, _METRIC_FIELDS[metric][0]))

	def as_columns(self) -> dict[str, float]:
		return {
			"air_temp": self.air_temp,
			"water_temp": self.water_temp,
			"humidity": self.humidity,
			"ph": self.ph,
			"tds": self.tds,
		}

	@classmethod
	def from_row(cls, row: Any) -> SensorValues:
		"""Build from any object exposing the five reading attributes."""
		return cls(
			air_temp=float(row.air_temp),
			water_temp=float(row.water_temp),
			humidity=float(row.humidity),
			ph=float(row.ph),
			tds=float(row.tds),
		)


@dataclass(frozen=True, slots=True)
class ThresholdProfile:
	"""Immutable snapshot of a crop profile's bounds."""

	name: str
	min_air_temp: float
	max_air_temp: float
	min_water_temp: float
	max_water_temp: float
	min_humidity: float
	max_humidity: float
	min_ph: float
	max_ph: float
	min_tds: float
	max_tds: float
	id: uuid.UUID | None = None

	def bounds(self, metric: MetricEnum) -> tuple[float, float]:
		_, min_attr, max_attr = _METRIC_FIELDS[metric]
		return float(getattr(self, min_attr)), float(getattr(self, max_attr))

	@classmethod
	def from_row(cls, row: Any) -> ThresholdProfile:
		"""Snapshot an ORM crop (or any object with the same attributes)."""
		return cls(
			id=getattr(row, "id", None),
			name=str(row.name),
			min_air_temp=float(row.min_air_temp),
			max_air_temp=float(row.max_air_temp),
			min_water_temp=float(row.min_water_temp),
			max_water_temp=float(row.max_water_temp),
			min_humidity=float(row.min_humidity),
			max_humidity=float(row.max_humidity),
			min_ph=float(row.min_ph),
			max_ph=float(row.max_ph),
			min_tds=float(row.min_tds),
			max_tds=float(row.max_tds),
		)


class StatusVector(Mapping[MetricEnum, SeverityEnum]):
	"""Read-only mapping of every metric to its severity for one reading."""

	__slots__ = ("_severities",)

	def __init__(self, severities: Mapping[MetricEnum, SeverityEnum]):
		missing = [metric for metric in METRICS if metric not in severities]
		if missing:
			raise ValueError(f"status vector missing metrics: {missing}")
		self._severities = {metric: SeverityEnum(severities[metric]) for metric in METRICS}

	@classmethod
	def all_normal(cls) -> StatusVector:
		return cls({metric: SeverityEnum.normal for metric in METRICS})

	@classmethod
	def from_dict(cls, payload: Mapping[str, str]) -> StatusVector:
		return cls({MetricEnum(key): SeverityEnum(value) for key, value in payload.items()})

	def __getitem__(self, metric: MetricEnum) -> SeverityEnum:
		return self._severities[MetricEnum(metric)]

	def __iter__(self) -> Iterator[MetricEnum]:
		return iter(self._severities)

	def __len__(self) -> int:
		return len(self._severities)

	def __eq__(self, other: object) -> bool:
		if isinstance(other, StatusVector):
			return self._severities == other._severities
		return NotImplemented

	def __hash__(self) -> int:
		return hash(tuple(self._severities.items()))

	def __repr__(self) -> str:
		return f"StatusVector({self.to_dict()!r})"

	@property
	def is_nominal(self) -> bool:
		return all(severity == SeverityEnum.normal for severity in self._severities.values())

	def to_dict(self) -> dict[str, str]:
		return {metric.value: severity.value for metric, severity in self._severities.items()}


def classify(value: float, minimum: float, maximum: float) -> SeverityEnum:
	low_critical = minimum - CRITICAL_MARGIN * minimum
	high_critical = maximum + CRITICAL_MARGIN * maximum
	if value < low_critical or value > high_critical:
		return SeverityEnum.critical
	if value < minimum or value > maximum:
		return SeverityEnum.warning
	return SeverityEnum.normal


def evaluate(values: SensorValues, profile: ThresholdProfile | None) -> StatusVector:
	if profile is None:
		return StatusVector.all_normal()
	return StatusVector(
		{metric: classify(values.value_of(metric), *profile.bounds(metric)) for metric in METRICS}
	)


def evaluate_for_display(values: SensorValues, profile: ThresholdProfile | None) -> StatusVector:
	return evaluate(values, profile)


def evaluate_for_ingestion(values: SensorValues, profile: ThresholdProfile | None) -> StatusVector:
	if profile is None:
		raise ConfigurationError("no crop profile available to evaluate reading")
	return evaluate(values, profile)
