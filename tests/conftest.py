"""Shared pytest fixtures: async test client, fake DB session, fake Redis."""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.database import get_db
from app.engine.thresholds import ThresholdProfile
from app.main import app

LETTUCE_BOUNDS: dict[str, float] = {
	"min_air_temp": 15.0,
	"max_air_temp": 24.0,
	"min_water_temp": 18.0,
	"max_water_temp": 23.0,
	"min_humidity": 50.0,
	"max_humidity": 70.0,
	"min_ph": 5.5,
	"max_ph": 6.5,
	"min_tds": 560.0,
	"max_tds": 840.0,
}

# Column defaults the database would fill in on INSERT.
_SERVER_DEFAULTS: dict[str, Any] = {
	"is_active": False,
	"is_read": False,
	"is_on": False,
}


class FakeResult:
	"""Minimal stand-in for a SQLAlchemy ``Result``."""

	def __init__(self, value: Any = None, values: list[Any] | None = None) -> None:
		self.value = value
		self.values = values if values is not None else []

	def scalar_one_or_none(self) -> Any:
		return self.value

	def scalar_one(self) -> Any:
		return self.value

	def scalars(self) -> SimpleNamespace:
		return SimpleNamespace(all=lambda: list(self.values))


class FakeAsyncSession:
	def __init__(self) -> None:
		self.commit = AsyncMock()
		self.rollback = AsyncMock()
		self.close = AsyncMock()
		self.execute = AsyncMock(return_value=FakeResult())
		self.flush = AsyncMock()
		self.refresh = AsyncMock(side_effect=self._refresh)
		self.added: list[Any] = []
		self.savepoints = 0

	def add(self, obj: Any) -> None:
		self.added.append(obj)

	def add_all(self, objs: list[Any]) -> None:
		self.added.extend(objs)

	@asynccontextmanager
	async def _nested(self) -> AsyncIterator[FakeAsyncSession]:
		yield self

	def begin_nested(self) -> Any:
		self.savepoints += 1
		return self._nested()

	async def __aenter__(self) -> FakeAsyncSession:
		return self

	async def __aexit__(self, *_exc: Any) -> None:
		return None

	async def _refresh(self, obj: Any) -> None:
		now = datetime.now(UTC)
		if getattr(obj, "id", None) is None:
			obj.id = uuid.uuid4()
		for name in ("created_at", "updated_at"):
			if hasattr(type(obj), name) and getattr(obj, name, None) is None:
				setattr(obj, name, now)
		for name, default in _SERVER_DEFAULTS.items():
			if hasattr(type(obj), name) and getattr(obj, name, None) is None:
				setattr(obj, name, default)


class FakePubSub:
	def __init__(self, payloads: list[dict[str, Any]]) -> None:
		self.payloads = payloads
		self.index = 0
		self.subscribed_channel: str | None = None
		self.unsubscribed_channel: str | None = None
		self.closed = False

	async def subscribe(self, _channel: str) -> None:
		self.subscribed_channel = _channel
		return None

	async def get_message(self, ignore_subscribe_messages: bool, timeout: float) -> dict[str, Any] | None:
		if self.index >= len(self.payloads):
			return None
		message = self.payloads[self.index]
		self.index += 1
		return message

	async def unsubscribe(self, _channel: str) -> None:
		self.unsubscribed_channel = _channel
		return None

	async def close(self) -> None:
		self.closed = True
		return None


class FakeRedis:
	def __init__(self, payloads: list[dict[str, Any]] | None = None) -> None:
		self.payloads = payloads or []
		self.publish = AsyncMock(return_value=1)
		self.ping = AsyncMock(return_value=True)
		self.last_pubsub: FakePubSub | None = None

	def pubsub(self) -> FakePubSub:
		self.last_pubsub = FakePubSub(self.payloads)
		return self.last_pubsub


def make_crop(name: str = "Lettuce", *, is_active: bool = True, **overrides: float) -> SimpleNamespace:
	"""ORM-shaped crop row for service and route tests."""
	now = datetime.now(UTC)
	return SimpleNamespace(
		id=uuid.uuid4(),
		name=name,
		is_active=is_active,
		created_at=now,
		updated_at=now,
		**{**LETTUCE_BOUNDS, **overrides},
	)


def make_device(device_type: str, *, is_on: bool = False, name: str | None = None) -> SimpleNamespace:
	return SimpleNamespace(
		id=uuid.uuid4(),
		name=name or device_type.title(),
		device_type=device_type,
		is_on=is_on,
		last_updated=datetime(2026, 1, 1, 8, 0, tzinfo=UTC),
	)


@pytest.fixture
def lettuce() -> ThresholdProfile:
	return ThresholdProfile(name="Lettuce", **LETTUCE_BOUNDS)


@pytest.fixture
def fake_db_session() -> FakeAsyncSession:
	"""A lightweight async-session stub for dependency overrides in API tests."""
	return FakeAsyncSession()


@pytest.fixture
def fake_redis() -> FakeRedis:
	"""Reusable fake Redis client with async publish and pubsub behavior."""
	return FakeRedis()


@pytest.fixture
async def client(fake_db_session: FakeAsyncSession) -> AsyncGenerator[AsyncClient, None]:
	"""HTTPX async client with lifespan disabled and DB dependency mocked."""

	async def override_get_db() -> AsyncGenerator[Any, None]:
		yield fake_db_session

	app.dependency_overrides[get_db] = override_get_db
	app.state.redis = None
	app.state.simulation = None
	original_lifespan = app.router.lifespan_context

	@asynccontextmanager
	async def noop_lifespan(_: Any) -> AsyncGenerator[None, None]:
		yield

	app.router.lifespan_context = noop_lifespan

	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://test") as test_client:
		yield test_client

	app.router.lifespan_context = original_lifespan
	app.dependency_overrides.clear()
	app.state.redis = None
	app.state.simulation = None


@pytest.fixture
def crop_factory() -> Any:
	return make_crop


@pytest.fixture
def device_factory() -> Any:
	return make_device


@pytest.fixture
def result_factory() -> type[FakeResult]:
	return FakeResult
