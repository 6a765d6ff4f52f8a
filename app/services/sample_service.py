"""Sample-data generator: draws a reading around a crop's bounds and ingests it."""

from __future__ import annotations

import random
import uuid

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, get_settings
from app.engine.sampling import generate_sample_values
from app.engine.thresholds import ThresholdProfile
from app.models.readings import SensorReading
from app.services.crop_service import CropService
from app.services.ingest_service import Dispatch, IngestService


class SampleDataService:
	def __init__(
		self,
		db: AsyncSession,
		redis_client: Redis | None = None,
		dispatch: Dispatch | None = None,
		rng: random.Random | None = None,
		settings: Settings | None = None,
	):
		self.db = db
		self.redis_client = redis_client
		self.dispatch = dispatch
		self.rng = rng or random.Random()
		self.settings = settings or get_settings()

	async def generate(self, crop_id: uuid.UUID | None = None) -> SensorReading:
		crop = await CropService(self.db).resolve_profile(crop_id)
		values = generate_sample_values(
			ThresholdProfile.from_row(crop),
			self.rng,
			self.settings.sample_variance,
		)
		ingest = IngestService(self.db, self.redis_client, self.dispatch, self.settings)
		return await ingest.ingest(values.as_columns(), explicit_profile_id=crop.id)
