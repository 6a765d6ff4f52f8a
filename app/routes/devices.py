"""Actuator routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.devices import DeviceListRead, DeviceRead
from app.services.device_service import DeviceService
from app.services.realtime import RealtimePublisher

router = APIRouter(prefix="/devices", tags=["devices"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="device failure")


@router.get("", response_model=DeviceListRead)
async def list_devices(db: AsyncSession = Depends(get_db)) -> DeviceListRead:
	try:
		devices = await DeviceService(db).list_devices()
	except Exception as exc:
		raise _map_error(exc) from exc
	return DeviceListRead(items=[DeviceRead.model_validate(device) for device in devices])


@router.post("/{device_id}/toggle", response_model=DeviceRead)
async def toggle_device(device_id: uuid.UUID, request: Request, db: AsyncSession = Depends(get_db)) -> DeviceRead:
	service = DeviceService(db, RealtimePublisher(getattr(request.app.state, "redis", None)))
	try:
		device = await service.toggle(device_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return DeviceRead.model_validate(device)
