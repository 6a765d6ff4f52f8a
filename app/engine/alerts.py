"""Alert drafting for out-of-band metrics."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass

from app.engine.thresholds import METRICS, SensorValues, StatusVector, ThresholdProfile
from app.models.enums import MetricEnum, SeverityEnum

METRIC_LABELS: dict[MetricEnum, tuple[str, str]] = {
	MetricEnum.air_temp: ("Air temperature", "°C"),
	MetricEnum.water_temp: ("Water temperature", "°C"),
	MetricEnum.humidity: ("Humidity", "%"),
	MetricEnum.ph: ("pH level", ""),
	MetricEnum.tds: ("Nutrient level", "ppm"),
}

_PHRASES: dict[SeverityEnum, str] = {
	SeverityEnum.warning: "approaching",
	SeverityEnum.critical: "exceeds",
}


@dataclass(frozen=True, slots=True)
class AlertDraft:
	message: str
	sensor_type: MetricEnum
	severity: SeverityEnum


def format_value(value: float) -> str:
	"""Render 21.0 as ``21`` and 6.1 as ``6.1``."""
	number = float(value)
	if number.is_integer():
		return str(int(number))
	return repr(number)


def alert_message(metric: MetricEnum, value: float, severity: SeverityEnum, profile_name: str) -> str:
	label, unit = METRIC_LABELS[metric]
	return f"{label} ({format_value(value)}{unit}) {_PHRASES[severity]} limits for {profile_name}"


def generate_alerts(
	values: SensorValues,
	status: StatusVector,
	profile: ThresholdProfile,
	suppress: Collection[str] = (),
) -> list[AlertDraft]:
	"""One draft per non-normal metric, skipping sensor types in ``suppress``.

	An empty ``suppress`` re-emits alerts on every out-of-band evaluation.
	"""
	drafts: list[AlertDraft] = []
	for metric in METRICS:
		severity = status[metric]
		if severity == SeverityEnum.normal:
			continue
		if metric.value in suppress:
			continue
		drafts.append(
			AlertDraft(
				message=alert_message(metric, values.value_of(metric), severity, profile.name),
				sensor_type=metric,
				severity=severity,
			)
		)
	return drafts
