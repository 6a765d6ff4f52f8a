"""WebSocket live feed route: forwards realtime row-change events."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.config import get_settings

router = APIRouter(tags=["websocket"])

_TABLES = {"sensor_readings", "alerts", "devices"}


@router.websocket("/ws/live")
async def ws_live_feed(websocket: WebSocket) -> None:
	await websocket.accept()

	tables_param = websocket.query_params.get("tables")
	tables = _TABLES
	if tables_param:
		tables = {token.strip() for token in tables_param.split(",") if token.strip()}
		if not tables <= _TABLES:
			await websocket.send_json({"error": "invalid_tables"})
			await websocket.close(code=1008)
			return

	redis_client = getattr(websocket.app.state, "redis", None)
	if redis_client is None:
		await websocket.send_json({"error": "redis_unavailable"})
		await websocket.close(code=1011)
		return

	channel = get_settings().realtime_channel
	pubsub = redis_client.pubsub()
	await pubsub.subscribe(channel)

	try:
		while True:
			message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
			if message is not None and message.get("type") == "message":
				payload = message.get("data")
				if isinstance(payload, bytes):
					payload = payload.decode("utf-8")
				if isinstance(payload, str):
					try:
						event = json.loads(payload)
					except json.JSONDecodeError:
						await websocket.send_text(payload)
					else:
						if isinstance(event, dict) and event.get("table") in tables:
							await websocket.send_json(event)
			await asyncio.sleep(0.05)
	except WebSocketDisconnect:
		return
	finally:
		await pubsub.unsubscribe(channel)
		await pubsub.close()
