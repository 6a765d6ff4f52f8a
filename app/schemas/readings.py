"""Pydantic schemas for sensor readings and the ingestion envelope."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import SeverityEnum


class StatusVectorRead(BaseModel):
	airTemp: SeverityEnum = SeverityEnum.normal
	waterTemp: SeverityEnum = SeverityEnum.normal
	humidity: SeverityEnum = SeverityEnum.normal
	ph: SeverityEnum = SeverityEnum.normal
	tds: SeverityEnum = SeverityEnum.normal


class ReadingRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	air_temp: float
	water_temp: float
	humidity: float
	ph: float
	tds: float
	status: StatusVectorRead
	created_at: datetime
	crop_id: uuid.UUID | None = None


class IngestResponse(BaseModel):
	data: ReadingRead
	status: Literal["success"] = "success"


class ErrorResponse(BaseModel):
	error: str


class ReadingListRead(BaseModel):
	items: list[ReadingRead] = Field(default_factory=list)


class ReadingStatusRead(BaseModel):
	reading_id: uuid.UUID
	crop_id: uuid.UUID | None = None
	profile_name: str | None = None
	stored_status: StatusVectorRead
	status: StatusVectorRead
