"""Crop profile CRUD and active-profile resolution."""

from __future__ import annotations

import uuid

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ConfigurationError
from app.models.crops import CropProfile
from app.schemas.crops import CropCreate, CropUpdate

_BOUND_FIELDS = (
	"min_air_temp",
	"max_air_temp",
	"min_water_temp",
	"max_water_temp",
	"min_humidity",
	"max_humidity",
	"min_ph",
	"max_ph",
	"min_tds",
	"max_tds",
)


class CropService:
	"""Reads and writes whole crop profiles."""

	def __init__(self, db: AsyncSession):
		self.db = db

	async def list_crops(self) -> list[CropProfile]:
		rows = await self.db.execute(select(CropProfile).order_by(CropProfile.name.asc()))
		return list(rows.scalars().all())

	async def get_crop(self, crop_id: uuid.UUID) -> CropProfile:
		row = await self.db.execute(select(CropProfile).where(CropProfile.id == crop_id))
		crop = row.scalar_one_or_none()
		if crop is None:
			raise LookupError(f"Crop {crop_id} not found")
		return crop

	async def create_crop(self, payload: CropCreate) -> CropProfile:
		crop = CropProfile(name=payload.name, **payload.model_dump(include=set(_BOUND_FIELDS)))
		self.db.add(crop)
		await self.db.flush()
		await self.db.refresh(crop)
		return crop

	async def update_crop(self, crop_id: uuid.UUID, payload: CropUpdate) -> CropProfile:
		crop = await self.get_crop(crop_id)
		crop.name = payload.name
		for field_name in _BOUND_FIELDS:
			setattr(crop, field_name, getattr(payload, field_name))
		await self.db.flush()
		await self.db.refresh(crop)
		return crop

	async def activate_crop(self, crop_id: uuid.UUID) -> CropProfile:
		crop = await self.get_crop(crop_id)
		await self.db.execute(
			update(CropProfile).where(CropProfile.id != crop.id).values(is_active=False)
		)
		crop.is_active = True
		await self.db.flush()
		await self.db.refresh(crop)
		return crop

	async def resolve_profile(self, crop_id: uuid.UUID | None = None) -> CropProfile:
		"""Explicit crop, else the active crop, else the earliest-created crop."""
		if crop_id is not None:
			try:
				return await self.get_crop(crop_id)
			except LookupError as exc:
				raise ConfigurationError(str(exc)) from exc

		stmt = (
			select(CropProfile)
			.order_by(
				CropProfile.is_active.desc(),
				CropProfile.created_at.asc(),
				CropProfile.name.asc(),
				CropProfile.id.asc(),
			)
			.limit(1)
		)
		row = await self.db.execute(stmt)
		crop = row.scalar_one_or_none()
		if crop is None:
			raise ConfigurationError("no crop profile configured")
		return crop
