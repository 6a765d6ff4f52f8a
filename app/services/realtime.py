"""Row-change notifications over Redis pub/sub.

Events mirror the shape dashboard subscribers already consume: an
``event_type`` (INSERT/UPDATE), the ``table`` name and the serialised row.
Delivery is best effort; a publish failure is logged and never propagates.
"""

from __future__ import annotations

import json
import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any

import structlog
from redis.asyncio import Redis

from app.config import get_settings

logger = structlog.get_logger("hydrosense.realtime")


def _to_plain(value: Any) -> Any:
	if isinstance(value, datetime):
		return value.isoformat()
	if isinstance(value, uuid.UUID):
		return str(value)
	if isinstance(value, Enum):
		return value.value
	if isinstance(value, Mapping):
		return {str(k): _to_plain(v) for (k, v) in value.items()}
	if isinstance(value, (list, tuple)):
		return [_to_plain(v) for v in value]
	return value


def row_payload(row: Any, columns: tuple[str, ...]) -> dict[str, Any]:
	return {column: _to_plain(getattr(row, column, None)) for column in columns}


READING_COLUMNS = ("id", "air_temp", "water_temp", "humidity", "ph", "tds", "status", "created_at", "crop_id")
ALERT_COLUMNS = ("id", "message", "sensor_type", "severity", "is_read", "created_at")
DEVICE_COLUMNS = ("id", "name", "device_type", "is_on", "last_updated")


class RealtimePublisher:
	def __init__(self, redis_client: Redis | None, channel: str | None = None):
		self.redis_client = redis_client
		self.channel = channel or get_settings().realtime_channel

	async def publish(self, event_type: str, table: str, record: Mapping[str, Any]) -> bool:
		if self.redis_client is None:
			return False
		payload = {
			"event_type": event_type,
			"table": table,
			"record": _to_plain(record),
			"published_at": datetime.now(UTC).isoformat(),
		}
		try:
			await self.redis_client.publish(self.channel, json.dumps(payload))
		except Exception as exc:
			logger.warning("realtime_publish_failed", table=table, event_type=event_type, error=str(exc))
			return False
		return True

	async def reading_inserted(self, reading: Any) -> bool:
		return await self.publish("INSERT", "sensor_readings", row_payload(reading, READING_COLUMNS))

	async def alert_inserted(self, alert: Any) -> bool:
		return await self.publish("INSERT", "alerts", row_payload(alert, ALERT_COLUMNS))

	async def device_updated(self, device: Any) -> bool:
		return await self.publish("UPDATE", "devices", row_payload(device, DEVICE_COLUMNS))
