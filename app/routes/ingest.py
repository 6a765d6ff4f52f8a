"""Sensor reading ingestion routes.

Responses follow the ingestion envelope: ``{"data": ..., "status": "success"}``
on success and ``{"error": "..."}`` with a 4xx/5xx status otherwise.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import HydroponicsError, ValidationError
from app.schemas.readings import ErrorResponse, IngestResponse, ReadingRead
from app.services.ingest_service import IngestService
from app.services.sample_service import SampleDataService

router = APIRouter(prefix="/ingest", tags=["ingest"])
logger = structlog.get_logger("hydrosense.routes.ingest")

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
	status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
	status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
	status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
}


def _error_response(exc: Exception) -> JSONResponse:
	if isinstance(exc, HydroponicsError):
		return JSONResponse(status_code=exc.status_code, content={"error": exc.message})
	logger.exception("ingest_unexpected_failure", error=str(exc))
	return JSONResponse(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		content={"error": "ingest failure"},
	)


async def _read_json(request: Request) -> Any:
	try:
		return await request.json()
	except ValueError as exc:
		raise ValidationError("Request body must be valid JSON") from exc


@router.post("/readings", response_model=IngestResponse, responses=_ERROR_RESPONSES)
async def ingest_reading(
	request: Request,
	background_tasks: BackgroundTasks,
	db: AsyncSession = Depends(get_db),
) -> IngestResponse | JSONResponse:
	service = IngestService(db, getattr(request.app.state, "redis", None), background_tasks.add_task)
	try:
		reading = await service.ingest(await _read_json(request))
	except Exception as exc:
		return _error_response(exc)
	return IngestResponse(data=ReadingRead.model_validate(reading))


@router.post("/sample", response_model=IngestResponse, responses=_ERROR_RESPONSES)
async def ingest_sample(
	request: Request,
	background_tasks: BackgroundTasks,
	crop_id: uuid.UUID | None = None,
	db: AsyncSession = Depends(get_db),
) -> IngestResponse | JSONResponse:
	service = SampleDataService(db, getattr(request.app.state, "redis", None), background_tasks.add_task)
	try:
		reading = await service.generate(crop_id)
	except Exception as exc:
		return _error_response(exc)
	return IngestResponse(data=ReadingRead.model_validate(reading))
