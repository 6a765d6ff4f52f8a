"""Sample reading generator used for demos and to exercise all severity bands."""

from __future__ import annotations

import random

from app.engine.thresholds import METRICS, SensorValues, ThresholdProfile
from app.models.enums import MetricEnum

DEFAULT_VARIANCE = 0.2

# Humidity and TDS are reported as whole numbers, everything else to 0.1.
DECIMALS: dict[MetricEnum, int] = {
	MetricEnum.air_temp: 1,
	MetricEnum.water_temp: 1,
	MetricEnum.humidity: 0,
	MetricEnum.ph: 1,
	MetricEnum.tds: 0,
}


def round_metric(metric: MetricEnum, value: float) -> float:
	return float(round(value, DECIMALS[metric]))


def sample_value(minimum: float, maximum: float, rng: random.Random, variance: float = DEFAULT_VARIANCE) -> float:
	"""Uniform draw from the band widened by ``variance`` of its width on each side."""
	spread = (maximum - minimum) * variance
	return rng.uniform(minimum - spread, maximum + spread)


def generate_sample_values(
	profile: ThresholdProfile,
	rng: random.Random | None = None,
	variance: float = DEFAULT_VARIANCE,
) -> SensorValues:
	rng = rng or random.Random()
	drawn = {
		metric: round_metric(metric, sample_value(*profile.bounds(metric), rng, variance))
		for metric in METRICS
	}
	return SensorValues(
		air_temp=drawn[MetricEnum.air_temp],
		water_temp=drawn[MetricEnum.water_temp],
		humidity=drawn[MetricEnum.humidity],
		ph=drawn[MetricEnum.ph],
		tds=drawn[MetricEnum.tds],
	)
