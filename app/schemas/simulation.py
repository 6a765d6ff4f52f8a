"""Pydantic schemas for the simulated sensor feed."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import MetricEnum, SeverityEnum
from app.schemas.readings import StatusVectorRead


class SimulatedValuesRead(BaseModel):
	air_temp: float
	water_temp: float
	humidity: float
	ph: float
	tds: float


class SimulatedAlertRead(BaseModel):
	id: str
	message: str
	sensor_type: MetricEnum
	severity: SeverityEnum
	timestamp: datetime
	is_read: bool


class HistoryPointRead(BaseModel):
	timestamp: datetime
	values: SimulatedValuesRead


class SimulationRead(BaseModel):
	running: bool
	profile_name: str | None = None
	connected: bool
	last_updated: datetime | None = None
	tick_count: int
	values: SimulatedValuesRead
	status: StatusVectorRead
	alerts: list[SimulatedAlertRead] = Field(default_factory=list)
	history: list[HistoryPointRead] = Field(default_factory=list)
