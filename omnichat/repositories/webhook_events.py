"""Webhook event log persistence."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlmodel import select

from omnichat.models.database_models import WebhookEvent
from omnichat.models.enums import WebhookEventStatus


class WebhookEventRepository:
    def __init__(self, db_session_factory):
        self.db = db_session_factory

    async def get_by_external_id(self, external_id: str) -> WebhookEvent | None:
        async with self.db() as session:
            result = await session.execute(
                select(WebhookEvent).where(WebhookEvent.external_id == external_id)
            )
            return result.scalars().first()

    async def create(self, event: WebhookEvent) -> WebhookEvent:
        """Insert a new event. Raises IntegrityError on a duplicate external_id."""
        async with self.db() as session:
            session.add(event)
            await session.flush()
            return event

    async def mark_processed(self, event_id: int) -> None:
        await self._set_status(event_id, WebhookEventStatus.PROCESSED)

    async def mark_failed(self, event_id: int, error: str) -> None:
        await self._set_status(event_id, WebhookEventStatus.FAILED, error=error)

    async def _set_status(
        self, event_id: int, status: WebhookEventStatus, error: str | None = None
    ) -> None:
        async with self.db() as session:
            event = await session.get(WebhookEvent, event_id)
            if event is None:
                return
            event.status = status
            event.processed_at = datetime.now(UTC)
            event.error = error
