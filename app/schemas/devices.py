"""Pydantic schemas for actuator devices."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict


class DeviceRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	name: str
	device_type: str
	is_on: bool
	last_updated: datetime


class DeviceListRead(BaseModel):
	items: list[DeviceRead]
