"""
Delivery status reconciliation.

Provider status callbacks are joined to stored messages through
platform_message_id only. Campaign statistics mix two sources: sent and
failed come from the campaign's own counters, delivered and read are
recounted from the recipients' outbound messages on every call.
"""

from __future__ import annotations

from datetime import UTC, datetime

from sqlmodel import select

from omnichat.core.config.settings import Settings, settings
from omnichat.core.logging.logger import get_logger
from omnichat.models.database_models import Message
from omnichat.models.enums import MessageDirection, MessageStatus
from omnichat.models.metadata_keys import status_timestamp_key
from omnichat.repositories.campaigns import CampaignRepository
from omnichat.repositories.conversations import (
    ConversationRepository,
    whatsapp_conversation_id,
)
from omnichat.repositories.messages import MessageRepository
from omnichat.schemas.results import DeliveryStats

_STATUS_RANK = {
    MessageStatus.PENDING: 0,
    MessageStatus.SENT: 1,
    MessageStatus.DELIVERED: 2,
    MessageStatus.READ: 3,
}


def is_regression(current: MessageStatus, new: MessageStatus) -> bool:
    """True when ``new`` would move a message backwards (failed is terminal)."""
    if current == MessageStatus.FAILED:
        return new != MessageStatus.FAILED
    if new == MessageStatus.FAILED:
        return False
    return _STATUS_RANK[new] < _STATUS_RANK[current]


class DeliveryTracker:
    """Applies provider delivery callbacks and computes campaign delivery stats."""

    def __init__(
        self,
        db_session_factory,
        app_settings: Settings | None = None,
        monotonic: bool | None = None,
    ):
        self.db = db_session_factory
        self.settings = app_settings or settings
        self.monotonic = (
            self.settings.delivery_status_monotonic if monotonic is None else monotonic
        )
        self.campaigns = CampaignRepository(db_session_factory)
        self.conversations = ConversationRepository(db_session_factory)
        self.messages = MessageRepository(db_session_factory)
        self.logger = get_logger(__name__)

    async def update_delivery_status(
        self,
        platform_message_id: str,
        status: MessageStatus | str,
        timestamp: datetime | None = None,
    ) -> bool:
        """
        Apply a status callback to the message carrying ``platform_message_id``.

        Unknown message ids are a no-op. The time of the callback is recorded
        under ``{status}_at`` in the message metadata.

        Returns:
            True if the stored status changed
        """
        try:
            new_status = MessageStatus(status)
        except ValueError:
            self.logger.warning(f"Ignoring unknown delivery status '{status}'")
            return False

        reported_at = (timestamp or datetime.now(UTC)).isoformat()

        async with self.db() as session:
            result = await session.execute(
                select(Message).where(Message.platform_message_id == platform_message_id)
            )
            message = result.scalars().first()
            if message is None:
                self.logger.debug(f"No stored message for status of {platform_message_id}")
                return False

            message.meta = {
                **(message.meta or {}),
                status_timestamp_key(new_status.value): reported_at,
            }

            current = MessageStatus(message.status)
            if self.monotonic and is_regression(current, new_status):
                self.logger.info(
                    f"Keeping {current.value} for {platform_message_id}, "
                    f"late {new_status.value} ignored"
                )
                return False

            message.status = new_status
            return current != new_status

    async def get_campaign_delivery_stats(self, campaign_id: int) -> DeliveryStats:
        campaign = await self.campaigns.require(campaign_id)
        recipients = campaign.recipients or []

        delivered = 0
        read = 0
        for phone in recipients:
            conversation = await self.conversations.find(
                campaign.channel_id, whatsapp_conversation_id(phone)
            )
            if conversation is None:
                continue

            for message in await self.messages.list_for_conversation(
                conversation.id, MessageDirection.OUTBOUND
            ):
                if message.status == MessageStatus.READ:
                    read += 1
                elif message.status == MessageStatus.DELIVERED:
                    delivered += 1

        return DeliveryStats(
            total=len(recipients),
            sent=campaign.sent_count,
            failed=campaign.failed_count,
            delivered=delivered,
            read=read,
        )
