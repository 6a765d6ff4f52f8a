"""Stored sensor reading routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.readings import ReadingListRead, ReadingRead, ReadingStatusRead, StatusVectorRead
from app.services.reading_service import DEFAULT_HISTORY_LIMIT, ReadingService

router = APIRouter(prefix="/readings", tags=["readings"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="reading query failure")


@router.get("", response_model=ReadingListRead)
async def list_readings(
	limit: int = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=1000),
	db: AsyncSession = Depends(get_db),
) -> ReadingListRead:
	try:
		readings = await ReadingService(db).history(limit)
	except Exception as exc:
		raise _map_error(exc) from exc
	return ReadingListRead(items=[ReadingRead.model_validate(reading) for reading in readings])


@router.get("/latest", response_model=ReadingRead)
async def latest_reading(db: AsyncSession = Depends(get_db)) -> ReadingRead:
	try:
		reading = await ReadingService(db).latest()
	except Exception as exc:
		raise _map_error(exc) from exc
	return ReadingRead.model_validate(reading)


@router.get("/{reading_id}/status", response_model=ReadingStatusRead)
async def reading_status(reading_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> ReadingStatusRead:
	try:
		reading, profile, display_status = await ReadingService(db).display_status(reading_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return ReadingStatusRead(
		reading_id=reading.id,
		crop_id=reading.crop_id,
		profile_name=profile.name if profile else None,
		stored_status=StatusVectorRead(**reading.status),
		status=StatusVectorRead(**display_status.to_dict()),
	)
