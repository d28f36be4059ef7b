"""Channel lookups."""

from __future__ import annotations

from sqlmodel import select

from omnichat.core.exceptions import ChannelNotFoundError
from omnichat.models.database_models import AutoResponseRule, Channel
from omnichat.models.enums import Platform, TriggerType


class ChannelRepository:
    def __init__(self, db_session_factory):
        self.db = db_session_factory

    async def get(self, channel_id: int) -> Channel | None:
        async with self.db() as session:
            return await session.get(Channel, channel_id)

    async def require(self, channel_id: int) -> Channel:
        channel = await self.get(channel_id)
        if channel is None:
            raise ChannelNotFoundError(channel_id)
        return channel

    async def find_by_platform_id(self, platform: Platform, platform_id: str) -> Channel | None:
        async with self.db() as session:
            result = await session.execute(
                select(Channel).where(
                    Channel.platform == platform,
                    Channel.platform_id == platform_id,
                )
            )
            return result.scalars().first()

    async def add(self, channel: Channel) -> Channel:
        async with self.db() as session:
            session.add(channel)
            await session.flush()
            return channel

    async def list_keyword_rules(self, channel_id: int) -> list[AutoResponseRule]:
        """Active keyword rules, highest priority first."""
        async with self.db() as session:
            result = await session.execute(
                select(AutoResponseRule)
                .where(
                    AutoResponseRule.channel_id == channel_id,
                    AutoResponseRule.is_active.is_(True),
                    AutoResponseRule.trigger_type == TriggerType.KEYWORD,
                )
                .order_by(AutoResponseRule.priority.desc(), AutoResponseRule.id)
            )
            return list(result.scalars().all())
