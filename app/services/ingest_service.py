"""Sensor reading ingestion pipeline.

Primary path (caller-visible, synchronous):
  1. validate the five metric fields
  2. resolve the crop profile (explicit id, else active/default crop)
  3. evaluate the status vector (strict policy)
  4. persist and commit the reading

Side effects (dispatched, never awaited by the caller):
  5. persist alerts for out-of-band metrics, then diff desired actuator
     state against a fresh device snapshot and apply each command.

A side-effect failure is logged as ``SideEffectError`` and dropped; it never
rolls back the stored reading and is never retried.
"""

from __future__ import annotations

import asyncio
import math
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any
from zoneinfo import ZoneInfo

import structlog
from redis.asyncio import Redis
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.database import async_session_factory
from app.engine.alerts import generate_alerts
from app.engine.control import LightSchedule, resolve_device_targets
from app.engine.thresholds import (
	SensorValues,
	StatusVector,
	ThresholdProfile,
	evaluate_for_ingestion,
)
from app.errors import PersistenceError, SideEffectError, ValidationError
from app.models.devices import Device
from app.models.readings import Alert, SensorReading
from app.services.alert_service import AlertService
from app.services.crop_service import CropService
from app.services.device_service import DeviceService
from app.services.realtime import RealtimePublisher

logger = structlog.get_logger("hydrosense.ingest")

READING_FIELDS: tuple[str, ...] = ("air_temp", "water_temp", "humidity", "ph", "tds")

Dispatch = Callable[..., Any]

# Strong references keep fire-and-forget tasks alive until they finish.
_background_tasks: set[asyncio.Task[Any]] = set()


def spawn_background(func: Callable[..., Any], *args: Any) -> None:
	"""Default dispatcher: run ``func(*args)`` as a detached asyncio task."""
	task = asyncio.create_task(func(*args))
	_background_tasks.add(task)
	task.add_done_callback(_background_tasks.discard)


async def drain_background() -> None:
	"""Wait for every dispatched side effect (used on shutdown and in tests)."""
	while _background_tasks:
		await asyncio.gather(*list(_background_tasks), return_exceptions=True)


@dataclass(frozen=True, slots=True)
class RawReading:
	values: SensorValues
	crop_id: uuid.UUID | None = None


def _coerce_metric(payload: Mapping[str, Any], name: str) -> float:
	value = payload[name]
	if isinstance(value, bool) or not isinstance(value, (int, float)):
		raise ValidationError(f"Field {name} must be a number")
	try:
		number = float(value)
	except OverflowError as exc:
		raise ValidationError(f"Field {name} must be a finite number") from exc
	if not math.isfinite(number):
		raise ValidationError(f"Field {name} must be a finite number")
	return number


def parse_raw_reading(payload: Any) -> RawReading:
	if not isinstance(payload, Mapping):
		raise ValidationError("Reading payload must be a JSON object")

	missing = [name for name in READING_FIELDS if payload.get(name) is None]
	if missing:
		raise ValidationError(f"Missing required fields: {', '.join(missing)}")
	values = SensorValues(**{name: _coerce_metric(payload, name) for name in READING_FIELDS})

	crop_id: uuid.UUID | None = None
	raw_crop_id = payload.get("crop_id")
	if raw_crop_id is not None:
		try:
			crop_id = uuid.UUID(str(raw_crop_id))
		except ValueError as exc:
			raise ValidationError(f"Invalid crop_id: {raw_crop_id}") from exc
	return RawReading(values=values, crop_id=crop_id)


@dataclass(frozen=True, slots=True)
class SideEffectContext:
	reading_id: uuid.UUID
	values: SensorValues
	status: StatusVector
	profile: ThresholdProfile
	suppress_repeat_alerts: bool = False
	light_schedule: LightSchedule = field(default_factory=LightSchedule)
	site_timezone: str = "UTC"
	clock: Callable[[tzinfo], datetime] = datetime.now


@dataclass(slots=True)
class SideEffectReport:
	alerts_created: int = 0
	commands_applied: int = 0
	commands_stale: int = 0
	failures: list[str] = field(default_factory=list)


class IngestService:
	def __init__(
		self,
		db: AsyncSession,
		redis_client: Redis | None = None,
		dispatch: Dispatch | None = None,
		settings: Settings | None = None,
	):
		self.db = db
		self.redis_client = redis_client
		self.dispatch = dispatch or spawn_background
		self.settings = settings or get_settings()
		self.publisher = RealtimePublisher(redis_client)

	async def ingest(self, payload: Any, explicit_profile_id: uuid.UUID | None = None) -> SensorReading:
		raw = parse_raw_reading(payload)
		crop = await CropService(self.db).resolve_profile(explicit_profile_id or raw.crop_id)
		profile = ThresholdProfile.from_row(crop)
		status = evaluate_for_ingestion(raw.values, profile)

		reading = SensorReading(
			**raw.values.as_columns(),
			status=status.to_dict(),
			crop_id=crop.id,
		)
		try:
			self.db.add(reading)
			await self.db.flush()
			await self.db.refresh(reading)
			await self.db.commit()
		except SQLAlchemyError as exc:
			await self.db.rollback()
			logger.error("reading_persist_failed", error=str(exc))
			raise PersistenceError("failed to store sensor reading") from exc

		logger.info(
			"reading_ingested",
			reading_id=str(reading.id),
			crop=profile.name,
			status=status.to_dict(),
		)
		await self.publisher.reading_inserted(reading)

		context = SideEffectContext(
			reading_id=reading.id,
			values=raw.values,
			status=status,
			profile=profile,
			suppress_repeat_alerts=self.settings.alert_suppress_repeats,
			light_schedule=LightSchedule(self.settings.light_on_hour, self.settings.light_off_hour),
			site_timezone=self.settings.site_timezone,
		)
		self.dispatch(run_side_effects, context, self.redis_client)
		return reading


def _site_now(context: SideEffectContext) -> datetime:
	return context.clock(ZoneInfo(context.site_timezone))


async def _create_alerts(session: AsyncSession, context: SideEffectContext) -> list[Alert]:
	if context.status.is_nominal:
		return []
	service = AlertService(session)
	suppress = await service.unread_sensor_types() if context.suppress_repeat_alerts else set()
	drafts = generate_alerts(context.values, context.status, context.profile, suppress)
	rows = await service.create_alerts(drafts)
	if rows:
		logger.info(
			"alerts_created",
			reading_id=str(context.reading_id),
			sensor_types=[row.sensor_type for row in rows],
		)
	return rows


async def _apply_auto_control(
	session: AsyncSession,
	context: SideEffectContext,
	report: SideEffectReport,
) -> list[Device]:
	service = DeviceService(session)
	devices = await service.snapshot()
	commands = resolve_device_targets(
		context.values,
		context.profile,
		devices,
		_site_now(context),
		context.light_schedule,
	)
	applied: list[Device] = []
	for command in commands:
		try:
			async with session.begin_nested():
				device = await service.apply_command(command)
		except Exception as exc:
			_log_failure(SideEffectError(f"device update {command.device_id}", exc), context, report)
			continue
		if device is None:
			report.commands_stale += 1
		else:
			applied.append(device)
	return applied


def _log_failure(error: SideEffectError, context: SideEffectContext, report: SideEffectReport) -> None:
	report.failures.append(error.stage)
	logger.error(
		"side_effect_failed",
		stage=error.stage,
		reading_id=str(context.reading_id),
		error=str(error.cause),
	)


async def _rollback_quietly(session: AsyncSession) -> None:
	try:
		await session.rollback()
	except Exception as exc:
		logger.warning("side_effect_rollback_failed", error=str(exc))


async def run_side_effects(context: SideEffectContext, redis_client: Redis | None = None) -> SideEffectReport:
	"""Alerts then auto-control, each in its own transaction; never raises.

	Realtime events for a stage are published only after that stage commits.
	"""
	report = SideEffectReport()
	publisher = RealtimePublisher(redis_client)
	try:
		async with async_session_factory() as session:
			try:
				alerts = await _create_alerts(session, context)
				await session.commit()
			except Exception as exc:
				await _rollback_quietly(session)
				_log_failure(SideEffectError("alerts", exc), context, report)
			else:
				report.alerts_created = len(alerts)
				await AlertService(session, publisher).publish_created(alerts)

			try:
				devices = await _apply_auto_control(session, context, report)
				await session.commit()
			except Exception as exc:
				await _rollback_quietly(session)
				_log_failure(SideEffectError("auto_control", exc), context, report)
			else:
				report.commands_applied = len(devices)
				for device in devices:
					await publisher.device_updated(device)
	except Exception as exc:
		_log_failure(SideEffectError("session", exc), context, report)
	return report
