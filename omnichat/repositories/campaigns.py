"""Campaign and template persistence."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlmodel import select

from omnichat.core.exceptions import CampaignNotFoundError
from omnichat.models.database_models import BroadcastCampaign, MessageTemplate
from omnichat.models.enums import CampaignStatus


class CampaignRepository:
    def __init__(self, db_session_factory):
        self.db = db_session_factory

    async def add(self, campaign: BroadcastCampaign) -> BroadcastCampaign:
        async with self.db() as session:
            session.add(campaign)
            await session.flush()
            return campaign

    async def get(self, campaign_id: int) -> BroadcastCampaign | None:
        async with self.db() as session:
            return await session.get(BroadcastCampaign, campaign_id)

    async def require(self, campaign_id: int) -> BroadcastCampaign:
        campaign = await self.get(campaign_id)
        if campaign is None:
            raise CampaignNotFoundError(campaign_id)
        return campaign

    async def update(self, campaign_id: int, **fields: Any) -> BroadcastCampaign:
        async with self.db() as session:
            campaign = await session.get(BroadcastCampaign, campaign_id)
            if campaign is None:
                raise CampaignNotFoundError(campaign_id)
            for key, value in fields.items():
                setattr(campaign, key, value)
            return campaign

    async def list_due(self, now: datetime) -> list[BroadcastCampaign]:
        async with self.db() as session:
            result = await session.execute(
                select(BroadcastCampaign)
                .where(
                    BroadcastCampaign.status == CampaignStatus.SCHEDULED,
                    BroadcastCampaign.scheduled_at <= now,
                )
                .order_by(BroadcastCampaign.scheduled_at, BroadcastCampaign.id)
            )
            return list(result.scalars().all())


class TemplateRepository:
    def __init__(self, db_session_factory):
        self.db = db_session_factory

    async def get(self, template_id: int) -> MessageTemplate | None:
        async with self.db() as session:
            return await session.get(MessageTemplate, template_id)

    async def upsert(
        self, channel_id: int, template_name: str, language: str, **fields: Any
    ) -> MessageTemplate:
        """Insert or wholesale-overwrite a template keyed by (channel, name, language)."""
        async with self.db() as session:
            result = await session.execute(
                select(MessageTemplate).where(
                    MessageTemplate.channel_id == channel_id,
                    MessageTemplate.template_name == template_name,
                    MessageTemplate.language == language,
                )
            )
            template = result.scalars().first()
            if template is None:
                template = MessageTemplate(
                    channel_id=channel_id,
                    template_name=template_name,
                    language=language,
                    **fields,
                )
                session.add(template)
            else:
                for key, value in fields.items():
                    setattr(template, key, value)
                template.updated_at = datetime.now(UTC)
            await session.flush()
            return template
