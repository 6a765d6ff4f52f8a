"""Sensor simulation driven by an explicit scheduler.

``SensorSimulator`` owns all simulated state and only changes it inside
``tick``; readers pull an immutable ``SimulationSnapshot``.  The
``SimulationScheduler`` is the sole owner of the periodic task that calls
``tick``.  Status, alerts and sample values all go through the same engine
functions as ingestion.
"""

from __future__ import annotations

import asyncio
import contextlib
import math
import random
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import structlog

from app.engine.alerts import generate_alerts
from app.engine.sampling import round_metric
from app.engine.thresholds import (
	METRICS,
	SensorValues,
	StatusVector,
	ThresholdProfile,
	evaluate_for_display,
)
from app.models.enums import MetricEnum, SeverityEnum

logger = structlog.get_logger("hydrosense.simulation")

MAX_ALERTS = 21
MAX_HISTORY = 25
DISCONNECT_PROBABILITY = 0.05


@dataclass(frozen=True, slots=True)
class RandomWalk:
	"""Uniform step in ``[-step, +step]`` clamped to ``[low, high]``."""

	step: float
	low: float
	high: float

	def advance(self, value: float, rng: random.Random) -> float:
		moved = value + (rng.random() - 0.5) * 2.0 * self.step
		return max(self.low, min(self.high, moved))


WALKS: dict[MetricEnum, RandomWalk] = {
	MetricEnum.air_temp: RandomWalk(step=0.15, low=15.0, high=35.0),
	MetricEnum.water_temp: RandomWalk(step=0.1, low=15.0, high=30.0),
	MetricEnum.humidity: RandomWalk(step=1.0, low=40.0, high=90.0),
	MetricEnum.ph: RandomWalk(step=0.05, low=4.5, high=7.5),
	MetricEnum.tds: RandomWalk(step=10.0, low=500.0, high=1800.0),
}

INITIAL_VALUES = SensorValues(air_temp=23.5, water_temp=21.2, humidity=65.0, ph=6.1, tds=750.0)


@dataclass(frozen=True, slots=True)
class SimulatedAlert:
	id: str
	message: str
	sensor_type: MetricEnum
	severity: SeverityEnum
	timestamp: datetime
	is_read: bool = False


@dataclass(frozen=True, slots=True)
class HistoryPoint:
	timestamp: datetime
	values: SensorValues


@dataclass(frozen=True, slots=True)
class SimulationSnapshot:
	values: SensorValues
	status: StatusVector
	profile_name: str | None
	connected: bool
	last_updated: datetime | None
	tick_count: int
	alerts: tuple[SimulatedAlert, ...] = field(default_factory=tuple)
	history: tuple[HistoryPoint, ...] = field(default_factory=tuple)


def _round_values(raw: dict[MetricEnum, float]) -> SensorValues:
	return SensorValues(
		air_temp=round_metric(MetricEnum.air_temp, raw[MetricEnum.air_temp]),
		water_temp=round_metric(MetricEnum.water_temp, raw[MetricEnum.water_temp]),
		humidity=round_metric(MetricEnum.humidity, raw[MetricEnum.humidity]),
		ph=round_metric(MetricEnum.ph, raw[MetricEnum.ph]),
		tds=round_metric(MetricEnum.tds, raw[MetricEnum.tds]),
	)


def seed_history(now: datetime, hours: int = MAX_HISTORY - 1) -> list[HistoryPoint]:
	"""Hourly sinusoidal backfill ending at ``now`` (oldest first)."""
	points: list[HistoryPoint] = []
	for offset in range(hours, -1, -1):
		raw = {
			MetricEnum.air_temp: 22 + math.sin(offset / 4) * 3,
			MetricEnum.water_temp: 20 + math.sin(offset / 8) * 2,
			MetricEnum.humidity: 65 + math.sin(offset / 6) * 8,
			MetricEnum.ph: 6.0 + math.sin(offset / 12) * 0.4,
			MetricEnum.tds: 800 + math.sin(offset / 6) * 150,
		}
		points.append(HistoryPoint(timestamp=now - timedelta(hours=offset), values=_round_values(raw)))
	return points


class SensorSimulator:
	"""Random-walk sensor state plus alert and connectivity simulation."""

	def __init__(
		self,
		profile: ThresholdProfile | None = None,
		*,
		rng: random.Random | None = None,
		alert_every_ticks: int = 30,
		connection_check_every_ticks: int = 15,
		initial_values: SensorValues = INITIAL_VALUES,
		started_at: datetime | None = None,
	):
		self._rng = rng or random.Random()
		self._profile = profile
		self._alert_every_ticks = alert_every_ticks
		self._connection_check_every_ticks = connection_check_every_ticks
		self._values = initial_values
		self._tick_count = 0
		self._connected = True
		self._offline_ticks_left = 0
		self._last_updated: datetime | None = None
		self._alerts: deque[SimulatedAlert] = deque(maxlen=MAX_ALERTS)
		self._history: deque[HistoryPoint] = deque(
			seed_history(started_at or datetime.now(UTC)),
			maxlen=MAX_HISTORY,
		)

	@property
	def profile(self) -> ThresholdProfile | None:
		return self._profile

	def set_profile(self, profile: ThresholdProfile | None) -> None:
		self._profile = profile

	def status(self) -> StatusVector:
		return evaluate_for_display(self._values, self._profile)

	def snapshot(self) -> SimulationSnapshot:
		return SimulationSnapshot(
			values=self._values,
			status=self.status(),
			profile_name=self._profile.name if self._profile else None,
			connected=self._connected,
			last_updated=self._last_updated,
			tick_count=self._tick_count,
			alerts=tuple(self._alerts),
			history=tuple(self._history),
		)

	def tick(self, now: datetime) -> SimulationSnapshot:
		previous = self._last_updated
		self._tick_count += 1
		self._values = _round_values(
			{metric: WALKS[metric].advance(self._values.value_of(metric), self._rng) for metric in METRICS}
		)
		self._last_updated = now

		if previous is not None and _hour_floor(now) != _hour_floor(previous):
			self._history.append(HistoryPoint(timestamp=now, values=self._values))

		self._update_connection()
		if self._tick_count % self._alert_every_ticks == 0:
			self._emit_alerts(now)
		return self.snapshot()

	def dismiss_alert(self, alert_id: str) -> bool:
		for index, alert in enumerate(self._alerts):
			if alert.id == alert_id:
				self._alerts[index] = _mark_read(alert)
				return True
		return False

	def mark_all_alerts_read(self) -> int:
		count = 0
		for index, alert in enumerate(self._alerts):
			if not alert.is_read:
				self._alerts[index] = _mark_read(alert)
				count += 1
		return count

	def _update_connection(self) -> None:
		if self._offline_ticks_left > 0:
			self._offline_ticks_left -= 1
			if self._offline_ticks_left == 0:
				self._connected = True
			return
		if self._tick_count % self._connection_check_every_ticks != 0:
			return
		if self._rng.random() < DISCONNECT_PROBABILITY:
			self._connected = False
			self._offline_ticks_left = self._rng.randint(2, 6)

	def _emit_alerts(self, now: datetime) -> None:
		if self._profile is None:
			return
		drafts = generate_alerts(self._values, self.status(), self._profile)
		# newest first; deque(maxlen) drops from the right when prepending
		for draft in reversed(drafts):
			self._alerts.appendleft(
				SimulatedAlert(
					id=f"{draft.sensor_type.value}-{self._tick_count}",
					message=draft.message,
					sensor_type=draft.sensor_type,
					severity=draft.severity,
					timestamp=now,
				)
			)


def _hour_floor(moment: datetime) -> datetime:
	return moment.replace(minute=0, second=0, microsecond=0)


def _mark_read(alert: SimulatedAlert) -> SimulatedAlert:
	return SimulatedAlert(
		id=alert.id,
		message=alert.message,
		sensor_type=alert.sensor_type,
		severity=alert.severity,
		timestamp=alert.timestamp,
		is_read=True,
	)


class SimulationScheduler:
	"""Owns the periodic task that advances a ``SensorSimulator``."""

	def __init__(
		self,
		simulator: SensorSimulator,
		interval_seconds: float,
		clock: Callable[[], datetime] | None = None,
	):
		self.simulator = simulator
		self.interval_seconds = interval_seconds
		self._clock = clock or (lambda: datetime.now(UTC))
		self._task: asyncio.Task[None] | None = None

	@property
	def running(self) -> bool:
		return self._task is not None and not self._task.done()

	def start(self) -> None:
		if self.running:
			return
		self._task = asyncio.create_task(self._run(), name="sensor-simulation")
		logger.info("simulation_started", interval_seconds=self.interval_seconds)

	async def stop(self) -> None:
		if self._task is None:
			return
		self._task.cancel()
		with contextlib.suppress(asyncio.CancelledError):
			await self._task
		self._task = None
		logger.info("simulation_stopped", ticks=self.simulator.snapshot().tick_count)

	async def _run(self) -> None:
		while True:
			try:
				self.simulator.tick(self._clock())
			except Exception as exc:
				logger.exception("simulation_tick_failed", error=str(exc))
			await asyncio.sleep(self.interval_seconds)
