"""Simulated sensor feed routes (pull interface over the scheduler's state)."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.engine.simulation import SimulationScheduler, SimulationSnapshot
from app.engine.thresholds import SensorValues, ThresholdProfile
from app.schemas.readings import StatusVectorRead
from app.schemas.simulation import (
	HistoryPointRead,
	SimulatedAlertRead,
	SimulatedValuesRead,
	SimulationRead,
)
from app.services.crop_service import CropService

router = APIRouter(prefix="/simulation", tags=["simulation"])


def _require_scheduler(request: Request) -> SimulationScheduler:
	scheduler = getattr(request.app.state, "simulation", None)
	if scheduler is None:
		raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="simulation disabled")
	return scheduler


def _values_read(values: SensorValues) -> SimulatedValuesRead:
	return SimulatedValuesRead(**values.as_columns())


def _to_read(snapshot: SimulationSnapshot, running: bool) -> SimulationRead:
	return SimulationRead(
		running=running,
		profile_name=snapshot.profile_name,
		connected=snapshot.connected,
		last_updated=snapshot.last_updated,
		tick_count=snapshot.tick_count,
		values=_values_read(snapshot.values),
		status=StatusVectorRead(**snapshot.status.to_dict()),
		alerts=[
			SimulatedAlertRead(
				id=alert.id,
				message=alert.message,
				sensor_type=alert.sensor_type,
				severity=alert.severity,
				timestamp=alert.timestamp,
				is_read=alert.is_read,
			)
			for alert in snapshot.alerts
		],
		history=[
			HistoryPointRead(timestamp=point.timestamp, values=_values_read(point.values))
			for point in snapshot.history
		],
	)


@router.get("", response_model=SimulationRead)
async def get_simulation(request: Request) -> SimulationRead:
	scheduler = _require_scheduler(request)
	return _to_read(scheduler.simulator.snapshot(), scheduler.running)


@router.put("/crop/{crop_id}", response_model=SimulationRead)
async def set_simulation_crop(
	crop_id: uuid.UUID,
	request: Request,
	db: AsyncSession = Depends(get_db),
) -> SimulationRead:
	scheduler = _require_scheduler(request)
	try:
		crop = await CropService(db).get_crop(crop_id)
	except LookupError as exc:
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
	scheduler.simulator.set_profile(ThresholdProfile.from_row(crop))
	return _to_read(scheduler.simulator.snapshot(), scheduler.running)


@router.post("/alerts/{alert_id}/dismiss", response_model=SimulationRead)
async def dismiss_simulated_alert(alert_id: str, request: Request) -> SimulationRead:
	scheduler = _require_scheduler(request)
	if not scheduler.simulator.dismiss_alert(alert_id):
		raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Alert {alert_id} not found")
	return _to_read(scheduler.simulator.snapshot(), scheduler.running)


@router.post("/alerts/read-all", response_model=SimulationRead)
async def mark_simulated_alerts_read(request: Request) -> SimulationRead:
	scheduler = _require_scheduler(request)
	scheduler.simulator.mark_all_alerts_read()
	return _to_read(scheduler.simulator.snapshot(), scheduler.running)
