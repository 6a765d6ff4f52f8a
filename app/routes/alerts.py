"""Alert routes."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.alerts import AlertListRead, AlertRead, AlertsMarkedRead
from app.services.alert_service import AlertService

router = APIRouter(prefix="/alerts", tags=["alerts"])


def _map_error(exc: Exception) -> HTTPException:
	if isinstance(exc, LookupError):
		return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
	if isinstance(exc, ValueError):
		return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
	return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="alert failure")


@router.get("", response_model=AlertListRead)
async def list_alerts(
	unread_only: bool = False,
	limit: int = Query(default=100, ge=1, le=1000),
	db: AsyncSession = Depends(get_db),
) -> AlertListRead:
	service = AlertService(db)
	try:
		alerts = await service.list_alerts(unread_only=unread_only, limit=limit)
		unread = await service.unread_count()
	except Exception as exc:
		raise _map_error(exc) from exc
	return AlertListRead(items=[AlertRead.model_validate(alert) for alert in alerts], unread_count=unread)


@router.post("/read-all", response_model=AlertsMarkedRead)
async def mark_all_read(db: AsyncSession = Depends(get_db)) -> AlertsMarkedRead:
	try:
		updated = await AlertService(db).mark_all_read()
	except Exception as exc:
		raise _map_error(exc) from exc
	return AlertsMarkedRead(updated=updated)


@router.post("/{alert_id}/dismiss", response_model=AlertRead)
async def dismiss_alert(alert_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> AlertRead:
	try:
		alert = await AlertService(db).dismiss(alert_id)
	except Exception as exc:
		raise _map_error(exc) from exc
	return AlertRead.model_validate(alert)
