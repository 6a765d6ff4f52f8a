"""Actuator listing, manual toggles and auto-control command application."""

from __future__ import annotations

import uuid

import structlog
from sqlalchemy import func, not_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.control import DeviceCommand, DeviceState
from app.models.devices import Device
from app.services.realtime import RealtimePublisher

logger = structlog.get_logger("hydrosense.devices")


class DeviceService:
	def __init__(self, db: AsyncSession, publisher: RealtimePublisher | None = None):
		self.db = db
		self.publisher = publisher or RealtimePublisher(None)

	async def list_devices(self) -> list[Device]:
		rows = await self.db.execute(select(Device).order_by(Device.name.asc()))
		return list(rows.scalars().all())

	async def snapshot(self) -> list[DeviceState]:
		return [DeviceState.from_row(device) for device in await self.list_devices()]

	async def get_device(self, device_id: uuid.UUID) -> Device:
		row = await self.db.execute(select(Device).where(Device.id == device_id))
		device = row.scalar_one_or_none()
		if device is None:
			raise LookupError(f"Device {device_id} not found")
		return device

	async def toggle(self, device_id: uuid.UUID) -> Device:
		"""Flip ``is_on`` in a single UPDATE so concurrent toggles never lose a flip."""
		stmt = (
			update(Device)
			.where(Device.id == device_id)
			.values(is_on=not_(Device.is_on), last_updated=func.now())
			.returning(Device)
			.execution_options(synchronize_session=False)
		)
		row = await self.db.execute(stmt)
		device = row.scalar_one_or_none()
		if device is None:
			raise LookupError(f"Device {device_id} not found")
		await self.publisher.device_updated(device)
		return device

	async def apply_command(self, command: DeviceCommand) -> Device | None:
		"""Write ``desired_on`` only if the row is unchanged since the snapshot.

		``last_updated`` acts as the version stamp: if another writer touched the
		device after our snapshot, the command is stale and is dropped instead of
		overwriting the newer state.  Returns the updated row, or None when
		skipped.  Publishing the change is left to the caller, after commit.
		"""
		stmt = update(Device).where(Device.id == command.device_id)
		if command.seen_last_updated is not None:
			stmt = stmt.where(Device.last_updated == command.seen_last_updated)
		stmt = (
			stmt.values(is_on=command.desired_on, last_updated=func.now())
			.returning(Device)
			.execution_options(synchronize_session=False)
		)
		row = await self.db.execute(stmt)
		device = row.scalar_one_or_none()
		if device is None:
			logger.info(
				"device_command_stale",
				device_id=str(command.device_id),
				desired_on=command.desired_on,
			)
			return None

		logger.info(
			"device_command_applied",
			device_id=str(command.device_id),
			device_type=command.device_type.value,
			desired_on=command.desired_on,
		)
		return device
