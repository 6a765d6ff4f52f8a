from __future__ import annotations

import json
import math
import random
import uuid
from datetime import UTC, datetime
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import SQLAlchemyError
from structlog.testing import capture_logs

from app.config import Settings
from app.engine.alerts import generate_alerts
from app.engine.control import DeviceState, resolve_device_targets
from app.engine.thresholds import SensorValues, ThresholdProfile, evaluate
from app.errors import ConfigurationError, PersistenceError, ValidationError
from app.models.enums import MetricEnum, SeverityEnum
from app.models.readings import Alert, SensorReading
from app.services import ingest_service
from app.services.ingest_service import (
	IngestService,
	SideEffectContext,
	drain_background,
	parse_raw_reading,
	run_side_effects,
	spawn_background,
)
from app.services.sample_service import SampleDataService

NOMINAL_PAYLOAD = {"air_temp": 23.5, "water_temp": 21.2, "humidity": 65, "ph": 6.1, "tds": 750}
COLD_WATER_PAYLOAD = {**NOMINAL_PAYLOAD, "water_temp": 15.5}
NOON = datetime(2026, 6, 1, 12, 0, tzinfo=UTC)


class _Dispatched:
	def __init__(self) -> None:
		self.calls: list[tuple[Any, ...]] = []

	def __call__(self, func: Any, *args: Any) -> None:
		self.calls.append((func, *args))


def _context(profile: ThresholdProfile, payload: dict[str, Any], **kwargs: Any) -> SideEffectContext:
	values = SensorValues(**{name: float(payload[name]) for name in ingest_service.READING_FIELDS})
	return SideEffectContext(
		reading_id=uuid.uuid4(),
		values=values,
		status=evaluate(values, profile),
		profile=profile,
		**kwargs,
	)


# ── Payload validation ─────────────────────────────────────────────────────


def test_parse_accepts_ints_and_optional_crop_id() -> None:
	crop_id = uuid.uuid4()
	raw = parse_raw_reading({**NOMINAL_PAYLOAD, "crop_id": str(crop_id), "extra": "ignored"})
	assert raw.values == SensorValues(23.5, 21.2, 65.0, 6.1, 750.0)
	assert raw.crop_id == crop_id


@pytest.mark.parametrize("missing", ["air_temp", "water_temp", "humidity", "ph", "tds"])
def test_parse_rejects_missing_field(missing: str) -> None:
	payload = {key: value for key, value in NOMINAL_PAYLOAD.items() if key != missing}
	with pytest.raises(ValidationError) as exc_info:
		parse_raw_reading(payload)
	assert exc_info.value.message == f"Missing required fields: {missing}"


def test_parse_treats_null_as_missing() -> None:
	with pytest.raises(ValidationError, match="ph, tds"):
		parse_raw_reading({**NOMINAL_PAYLOAD, "ph": None, "tds": None})


@pytest.mark.parametrize("bad", ["6.1", True, [6.1], {"v": 6.1}, math.nan, math.inf, 10**400])
def test_parse_rejects_non_numeric_values(bad: Any) -> None:
	with pytest.raises(ValidationError, match="Field ph"):
		parse_raw_reading({**NOMINAL_PAYLOAD, "ph": bad})


def test_parse_rejects_non_object_payload() -> None:
	with pytest.raises(ValidationError):
		parse_raw_reading([23.5, 21.2, 65, 6.1, 750])


def test_parse_rejects_malformed_crop_id() -> None:
	with pytest.raises(ValidationError, match="crop_id"):
		parse_raw_reading({**NOMINAL_PAYLOAD, "crop_id": "lettuce"})


# ── Primary path ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_nominal_reading_end_to_end(fake_db_session, crop_factory, device_factory, result_factory) -> None:
	crop = crop_factory()
	fake_db_session.execute.return_value = result_factory(crop)
	dispatch = _Dispatched()

	reading = await IngestService(fake_db_session, None, dispatch).ingest(dict(NOMINAL_PAYLOAD))

	assert isinstance(reading, SensorReading)
	assert reading.status == {metric.value: "normal" for metric in MetricEnum}
	assert reading.crop_id == crop.id
	assert fake_db_session.added == [reading]
	fake_db_session.commit.assert_awaited_once()

	assert len(dispatch.calls) == 1
	func, context, redis_client = dispatch.calls[0]
	assert func is run_side_effects
	assert redis_client is None
	assert context.reading_id == reading.id
	assert generate_alerts(context.values, context.status, context.profile) == []

	devices = [
		DeviceState.from_row(device_factory(kind))
		for kind in ("heater", "humidifier", "fan", "pump")
	]
	assert resolve_device_targets(context.values, context.profile, devices, NOON) == []


@pytest.mark.asyncio
async def test_cold_water_reading_end_to_end(fake_db_session, crop_factory, device_factory, result_factory) -> None:
	crop = crop_factory()
	fake_db_session.execute.return_value = result_factory(crop)
	dispatch = _Dispatched()

	reading = await IngestService(fake_db_session, None, dispatch).ingest(dict(COLD_WATER_PAYLOAD))

	assert reading.status["waterTemp"] == "critical"
	assert {key for key, value in reading.status.items() if value != "normal"} == {"waterTemp"}

	_, context, _ = dispatch.calls[0]
	drafts = generate_alerts(context.values, context.status, context.profile)
	assert [draft.message for draft in drafts] == ["Water temperature (15.5°C) exceeds limits for Lettuce"]

	heater = DeviceState.from_row(device_factory("heater", is_on=False))
	commands = resolve_device_targets(context.values, context.profile, [heater], NOON)
	assert [(command.device_id, command.desired_on) for command in commands] == [(heater.id, True)]


@pytest.mark.asyncio
async def test_missing_ph_persists_nothing(fake_db_session) -> None:
	dispatch = _Dispatched()
	payload = {key: value for key, value in NOMINAL_PAYLOAD.items() if key != "ph"}

	with pytest.raises(ValidationError):
		await IngestService(fake_db_session, None, dispatch).ingest(payload)

	assert fake_db_session.added == []
	fake_db_session.execute.assert_not_awaited()
	fake_db_session.commit.assert_not_awaited()
	assert dispatch.calls == []


@pytest.mark.asyncio
async def test_no_profile_rejects_reading(fake_db_session, result_factory) -> None:
	fake_db_session.execute.return_value = result_factory(None)
	dispatch = _Dispatched()

	with pytest.raises(ConfigurationError):
		await IngestService(fake_db_session, None, dispatch).ingest(dict(NOMINAL_PAYLOAD))

	assert fake_db_session.added == []
	assert dispatch.calls == []


@pytest.mark.asyncio
async def test_unknown_explicit_profile_rejects_reading(fake_db_session, result_factory) -> None:
	fake_db_session.execute.return_value = result_factory(None)

	with pytest.raises(ConfigurationError, match="not found"):
		await IngestService(fake_db_session, None, _Dispatched()).ingest(
			dict(NOMINAL_PAYLOAD),
			explicit_profile_id=uuid.uuid4(),
		)


@pytest.mark.asyncio
async def test_store_failure_surfaces_persistence_error(fake_db_session, crop_factory, result_factory) -> None:
	fake_db_session.execute.return_value = result_factory(crop_factory())
	fake_db_session.commit.side_effect = SQLAlchemyError("connection reset")
	dispatch = _Dispatched()

	with pytest.raises(PersistenceError):
		await IngestService(fake_db_session, None, dispatch).ingest(dict(NOMINAL_PAYLOAD))

	fake_db_session.rollback.assert_awaited_once()
	assert dispatch.calls == []


@pytest.mark.asyncio
async def test_ingest_publishes_reading_insert(fake_db_session, fake_redis, crop_factory, result_factory) -> None:
	fake_db_session.execute.return_value = result_factory(crop_factory())

	reading = await IngestService(fake_db_session, fake_redis, _Dispatched()).ingest(dict(NOMINAL_PAYLOAD))

	fake_redis.publish.assert_awaited_once()
	channel, message = fake_redis.publish.await_args.args
	assert channel == "hydroponics:live"
	assert '"table": "sensor_readings"' in message
	assert str(reading.id) in message


@pytest.mark.asyncio
async def test_sample_generator_ingests_against_resolved_crop(fake_db_session, crop_factory, result_factory) -> None:
	crop = crop_factory()
	fake_db_session.execute.return_value = result_factory(crop)
	dispatch = _Dispatched()

	reading = await SampleDataService(fake_db_session, None, dispatch, rng=random.Random(4)).generate()

	assert reading.crop_id == crop.id
	assert 560 - 56 - 0.5 <= reading.tds <= 840 + 56 + 0.5
	assert set(reading.status) == {metric.value for metric in MetricEnum}
	assert len(dispatch.calls) == 1


@pytest.mark.asyncio
async def test_default_dispatcher_runs_detached() -> None:
	seen: list[str] = []

	async def record(value: str) -> None:
		seen.append(value)

	spawn_background(record, "done")
	assert seen == []
	await drain_background()
	assert seen == ["done"]


# ── Side effects ───────────────────────────────────────────────────────────


@pytest.fixture
def side_effect_session(fake_db_session, monkeypatch: pytest.MonkeyPatch):
	monkeypatch.setattr(ingest_service, "async_session_factory", lambda: fake_db_session)
	return fake_db_session


@pytest.mark.asyncio
async def test_side_effects_create_alerts_and_switch_heater(
	side_effect_session,
	lettuce: ThresholdProfile,
	device_factory,
	result_factory,
) -> None:
	heater = device_factory("heater")
	switched = device_factory("heater", is_on=True)
	side_effect_session.execute.side_effect = [
		result_factory(values=[heater]),
		result_factory(switched),
	]

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD))

	assert report.alerts_created == 1
	assert report.commands_applied == 1
	assert report.failures == []
	alerts = [obj for obj in side_effect_session.added if isinstance(obj, Alert)]
	assert [(alert.sensor_type, alert.severity) for alert in alerts] == [("waterTemp", "critical")]
	assert side_effect_session.commit.await_count == 2
	assert side_effect_session.savepoints == 1


@pytest.mark.asyncio
async def test_nominal_side_effects_write_nothing(side_effect_session, lettuce: ThresholdProfile, device_factory, result_factory) -> None:
	side_effect_session.execute.return_value = result_factory(values=[device_factory("heater"), device_factory("fan")])

	report = await run_side_effects(_context(lettuce, NOMINAL_PAYLOAD))

	assert report.alerts_created == 0
	assert report.commands_applied == 0
	assert side_effect_session.added == []
	side_effect_session.flush.assert_not_awaited()


@pytest.mark.asyncio
async def test_stale_device_command_is_skipped(side_effect_session, lettuce: ThresholdProfile, device_factory, result_factory) -> None:
	side_effect_session.execute.side_effect = [
		result_factory(values=[device_factory("heater")]),
		result_factory(None),
	]

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD))

	assert report.commands_applied == 0
	assert report.commands_stale == 1
	assert report.failures == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
	("moment", "light_on", "desired_on"),
	[
		(NOON, False, True),
		(datetime(2026, 6, 1, 20, 0, tzinfo=UTC), True, False),
	],
)
async def test_light_follows_the_context_clock(
	side_effect_session,
	lettuce: ThresholdProfile,
	device_factory,
	result_factory,
	moment: datetime,
	light_on: bool,
	desired_on: bool,
) -> None:
	light = device_factory("light", is_on=light_on)
	side_effect_session.execute.side_effect = [
		result_factory(values=[light]),
		result_factory(device_factory("light", is_on=desired_on)),
	]
	context = _context(lettuce, NOMINAL_PAYLOAD, clock=lambda tz: moment.astimezone(tz))

	report = await run_side_effects(context)

	assert report.commands_applied == 1
	update = side_effect_session.execute.await_args_list[1].args[0]
	assert update.compile(dialect=postgresql.dialect()).params["is_on"] is desired_on


@pytest.mark.asyncio
async def test_alert_failure_does_not_block_auto_control(
	side_effect_session,
	lettuce: ThresholdProfile,
	device_factory,
	result_factory,
) -> None:
	side_effect_session.flush.side_effect = SQLAlchemyError("alerts table locked")
	side_effect_session.execute.side_effect = [
		result_factory(values=[device_factory("heater")]),
		result_factory(device_factory("heater", is_on=True)),
	]

	with capture_logs() as logs:
		report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD))

	assert report.failures == ["alerts"]
	assert report.commands_applied == 1
	side_effect_session.rollback.assert_awaited()
	failures = [entry for entry in logs if entry["event"] == "side_effect_failed"]
	assert [entry["stage"] for entry in failures] == ["alerts"]


@pytest.mark.asyncio
async def test_device_failure_is_isolated_per_command(
	side_effect_session,
	lettuce: ThresholdProfile,
	device_factory,
	result_factory,
) -> None:
	heater = device_factory("heater")
	humidifier = device_factory("humidifier")
	side_effect_session.execute.side_effect = [
		result_factory(values=[heater, humidifier]),
		SQLAlchemyError("deadlock detected"),
		result_factory(device_factory("humidifier", is_on=True)),
	]
	payload = {**COLD_WATER_PAYLOAD, "humidity": 40}

	report = await run_side_effects(_context(lettuce, payload))

	assert report.failures == [f"device update {heater.id}"]
	assert report.commands_applied == 1
	assert side_effect_session.savepoints == 2


@pytest.mark.asyncio
async def test_suppression_flag_skips_repeat_alerts(
	side_effect_session,
	lettuce: ThresholdProfile,
	result_factory,
) -> None:
	side_effect_session.execute.side_effect = [
		result_factory(values=["waterTemp"]),
		result_factory(values=[]),
	]

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD, suppress_repeat_alerts=True))

	assert report.alerts_created == 0
	assert side_effect_session.added == []


@pytest.mark.asyncio
async def test_side_effects_never_raise(monkeypatch: pytest.MonkeyPatch, lettuce: ThresholdProfile) -> None:
	def broken_factory() -> Any:
		raise RuntimeError("pool exhausted")

	monkeypatch.setattr(ingest_service, "async_session_factory", broken_factory)

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD))

	assert report.failures == ["session"]


@pytest.mark.asyncio
async def test_suppression_setting_reaches_side_effects(fake_db_session, crop_factory, result_factory) -> None:
	fake_db_session.execute.return_value = result_factory(crop_factory())
	dispatch = _Dispatched()
	settings = Settings(alert_suppress_repeats=True, light_on_hour=7, light_off_hour=19)

	await IngestService(fake_db_session, None, dispatch, settings).ingest(dict(COLD_WATER_PAYLOAD))

	_, context, _ = dispatch.calls[0]
	assert context.suppress_repeat_alerts is True
	assert (context.light_schedule.on_hour, context.light_schedule.off_hour) == (7, 19)
	assert context.status[MetricEnum.water_temp] == SeverityEnum.critical


# ── Routes ─────────────────────────────────────────────────────────────────


@pytest.fixture
def recorded_side_effects(monkeypatch: pytest.MonkeyPatch) -> list[SideEffectContext]:
	contexts: list[SideEffectContext] = []

	async def fake_run(context: SideEffectContext, _redis: Any = None) -> None:
		contexts.append(context)

	monkeypatch.setattr(ingest_service, "run_side_effects", fake_run)
	return contexts


@pytest.mark.asyncio
async def test_ingest_endpoint_success_envelope(
	client: AsyncClient,
	fake_db_session,
	crop_factory,
	result_factory,
	recorded_side_effects,
) -> None:
	crop = crop_factory()
	fake_db_session.execute.return_value = result_factory(crop)

	response = await client.post("/api/v1/ingest/readings", json=COLD_WATER_PAYLOAD)

	assert response.status_code == 200
	body = response.json()
	assert body["status"] == "success"
	assert body["data"]["crop_id"] == str(crop.id)
	assert body["data"]["water_temp"] == 15.5
	assert body["data"]["status"] == {
		"airTemp": "normal",
		"waterTemp": "critical",
		"humidity": "normal",
		"ph": "normal",
		"tds": "normal",
	}
	assert set(body["data"]) == {"id", "air_temp", "water_temp", "humidity", "ph", "tds", "status", "created_at", "crop_id"}
	assert len(recorded_side_effects) == 1


@pytest.mark.asyncio
async def test_ingest_endpoint_validation_error(client: AsyncClient, recorded_side_effects) -> None:
	payload = {key: value for key, value in NOMINAL_PAYLOAD.items() if key != "ph"}

	response = await client.post("/api/v1/ingest/readings", json=payload)

	assert response.status_code == 400
	assert response.json() == {"error": "Missing required fields: ph"}
	assert recorded_side_effects == []


@pytest.mark.asyncio
async def test_ingest_endpoint_configuration_error(
	client: AsyncClient,
	fake_db_session,
	result_factory,
	recorded_side_effects,
) -> None:
	fake_db_session.execute.return_value = result_factory(None)

	response = await client.post("/api/v1/ingest/readings", json=NOMINAL_PAYLOAD)

	assert response.status_code == 404
	assert response.json() == {"error": "no crop profile configured"}


@pytest.mark.asyncio
async def test_ingest_endpoint_unexpected_error(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
	async def boom(self: IngestService, _payload: Any, explicit_profile_id: Any = None) -> Any:
		raise RuntimeError("kaboom")

	monkeypatch.setattr(IngestService, "ingest", boom)

	response = await client.post("/api/v1/ingest/readings", json=NOMINAL_PAYLOAD)

	assert response.status_code == 500
	assert response.json() == {"error": "ingest failure"}


@pytest.mark.asyncio
async def test_ingest_endpoint_rejects_non_object_body(client: AsyncClient) -> None:
	response = await client.post("/api/v1/ingest/readings", json=[1, 2, 3])

	assert response.status_code == 400
	assert "error" in response.json()


@pytest.mark.asyncio
async def test_ingest_endpoint_rejects_malformed_json(client: AsyncClient, recorded_side_effects) -> None:
	response = await client.post(
		"/api/v1/ingest/readings",
		content=b'{"air_temp": 23.5,',
		headers={"content-type": "application/json"},
	)

	assert response.status_code == 400
	assert response.json() == {"error": "Request body must be valid JSON"}
	assert recorded_side_effects == []


@pytest.mark.asyncio
async def test_ingest_endpoint_rejects_oversized_integer(client: AsyncClient, recorded_side_effects) -> None:
	response = await client.post("/api/v1/ingest/readings", json={**NOMINAL_PAYLOAD, "tds": 10**400})

	assert response.status_code == 400
	assert response.json() == {"error": "Field tds must be a finite number"}
	assert recorded_side_effects == []


@pytest.mark.asyncio
async def test_sample_endpoint(
	client: AsyncClient,
	fake_db_session,
	crop_factory,
	result_factory,
	recorded_side_effects,
) -> None:
	crop = crop_factory()
	fake_db_session.execute.return_value = result_factory(crop)

	response = await client.post(f"/api/v1/ingest/sample?crop_id={crop.id}")

	assert response.status_code == 200
	assert response.json()["data"]["crop_id"] == str(crop.id)

	fake_db_session.execute.return_value = result_factory(None)
	response = await client.post("/api/v1/ingest/sample")
	assert response.status_code == 404


@pytest.mark.asyncio
async def test_side_effect_events_follow_commits(
	side_effect_session,
	fake_redis,
	lettuce: ThresholdProfile,
	device_factory,
	result_factory,
) -> None:
	order: list[str] = []
	side_effect_session.commit.side_effect = lambda: order.append("commit")
	fake_redis.publish.side_effect = lambda _channel, message: order.append(json.loads(message)["table"])
	side_effect_session.execute.side_effect = [
		result_factory(values=[device_factory("heater")]),
		result_factory(device_factory("heater", is_on=True)),
	]

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD), fake_redis)

	assert report.alerts_created == 1
	assert report.commands_applied == 1
	assert order == ["commit", "alerts", "commit", "devices"]


@pytest.mark.asyncio
async def test_failed_stage_publishes_nothing(
	side_effect_session,
	fake_redis,
	lettuce: ThresholdProfile,
	result_factory,
) -> None:
	side_effect_session.commit.side_effect = [SQLAlchemyError("serialization failure"), None]
	side_effect_session.execute.return_value = result_factory(values=[])

	report = await run_side_effects(_context(lettuce, COLD_WATER_PAYLOAD), fake_redis)

	assert report.failures == ["alerts"]
	assert report.alerts_created == 0
	fake_redis.publish.assert_not_awaited()
