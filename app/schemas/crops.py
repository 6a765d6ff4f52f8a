"""Pydantic schemas for crop threshold profiles."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CropBounds(BaseModel):
	model_config = ConfigDict(allow_inf_nan=False)

	min_air_temp: float
	max_air_temp: float
	min_water_temp: float
	max_water_temp: float
	min_humidity: float
	max_humidity: float
	min_ph: float
	max_ph: float
	min_tds: float
	max_tds: float


class CropCreate(CropBounds):
	name: str = Field(min_length=1, max_length=100)


class CropUpdate(CropCreate):
	"""Full replacement of a profile's name and bounds."""


class CropRead(CropBounds):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	name: str
	is_active: bool
	created_at: datetime
	updated_at: datetime


class CropListRead(BaseModel):
	items: list[CropRead]
