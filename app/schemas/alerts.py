"""Pydantic schemas for persisted alerts."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from app.models.enums import MetricEnum, SeverityEnum


class AlertRead(BaseModel):
	model_config = ConfigDict(from_attributes=True)

	id: uuid.UUID
	message: str
	sensor_type: MetricEnum
	severity: SeverityEnum
	is_read: bool
	created_at: datetime


class AlertListRead(BaseModel):
	items: list[AlertRead]
	unread_count: int


class AlertsMarkedRead(BaseModel):
	updated: int
