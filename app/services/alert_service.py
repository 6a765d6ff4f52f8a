"""Alert persistence and read-state management."""

from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.engine.alerts import AlertDraft
from app.models.readings import Alert
from app.services.realtime import RealtimePublisher


class AlertService:
	def __init__(self, db: AsyncSession, publisher: RealtimePublisher | None = None):
		self.db = db
		self.publisher = publisher or RealtimePublisher(None)

	async def list_alerts(self, *, unread_only: bool = False, limit: int = 100) -> list[Alert]:
		stmt = select(Alert).order_by(Alert.created_at.desc()).limit(limit)
		if unread_only:
			stmt = stmt.where(Alert.is_read.is_(False))
		rows = await self.db.execute(stmt)
		return list(rows.scalars().all())

	async def unread_count(self) -> int:
		row = await self.db.execute(select(func.count()).select_from(Alert).where(Alert.is_read.is_(False)))
		return int(row.scalar_one())

	async def unread_sensor_types(self) -> set[str]:
		rows = await self.db.execute(select(Alert.sensor_type).where(Alert.is_read.is_(False)).distinct())
		return set(rows.scalars().all())

	async def create_alerts(self, drafts: Sequence[AlertDraft]) -> list[Alert]:
		if not drafts:
			return []
		rows = [
			Alert(
				message=draft.message,
				sensor_type=draft.sensor_type.value,
				severity=draft.severity.value,
				is_read=False,
			)
			for draft in drafts
		]
		self.db.add_all(rows)
		await self.db.flush()
		return rows

	async def publish_created(self, rows: Sequence[Alert]) -> None:
		"""Announce inserted alerts; call only once their transaction has committed."""
		for row in rows:
			await self.publisher.alert_inserted(row)

	async def dismiss(self, alert_id: uuid.UUID) -> Alert:
		stmt = (
			update(Alert)
			.where(Alert.id == alert_id)
			.values(is_read=True)
			.returning(Alert)
			.execution_options(synchronize_session=False)
		)
		row = await self.db.execute(stmt)
		alert = row.scalar_one_or_none()
		if alert is None:
			raise LookupError(f"Alert {alert_id} not found")
		return alert

	async def mark_all_read(self) -> int:
		stmt = (
			update(Alert)
			.where(Alert.is_read.is_(False))
			.values(is_read=True)
			.returning(Alert.id)
			.execution_options(synchronize_session=False)
		)
		rows = await self.db.execute(stmt)
		return len(rows.scalars().all())
