"""Stored reading queries and display-time re-evaluation."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.thresholds import SensorValues, StatusVector, ThresholdProfile, evaluate_for_display
from app.models.crops import CropProfile
from app.models.readings import SensorReading

DEFAULT_HISTORY_LIMIT = 24


class ReadingService:
	def __init__(self, db: AsyncSession):
		self.db = db

	async def latest(self) -> SensorReading:
		stmt = select(SensorReading).order_by(SensorReading.created_at.desc()).limit(1)
		row = await self.db.execute(stmt)
		reading = row.scalar_one_or_none()
		if reading is None:
			raise LookupError("no sensor readings recorded yet")
		return reading

	async def history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> list[SensorReading]:
		stmt = select(SensorReading).order_by(SensorReading.created_at.desc()).limit(limit)
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def get_reading(self, reading_id: uuid.UUID) -> SensorReading:
		row = await self.db.execute(select(SensorReading).where(SensorReading.id == reading_id))
		reading = row.scalar_one_or_none()
		if reading is None:
			raise LookupError(f"Reading {reading_id} not found")
		return reading

	async def display_status(self, reading_id: uuid.UUID) -> tuple[SensorReading, ThresholdProfile | None, StatusVector]:
		"""Re-evaluate a stored reading against its crop; all-normal if the crop is gone."""
		reading = await self.get_reading(reading_id)
		profile: ThresholdProfile | None = None
		if reading.crop_id is not None:
			row = await self.db.execute(select(CropProfile).where(CropProfile.id == reading.crop_id))
			crop = row.scalar_one_or_none()
			if crop is not None:
				profile = ThresholdProfile.from_row(crop)
		return reading, profile, evaluate_for_display(SensorValues.from_row(reading), profile)
