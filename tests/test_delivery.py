"""Tests for delivery status reconciliation and campaign statistics."""

from datetime import UTC, datetime

import pytest

from omnichat.campaigns.delivery import DeliveryTracker, is_regression
from omnichat.campaigns.engine import BroadcastEngine
from omnichat.core.exceptions import CampaignNotFoundError
from omnichat.models.database_models import Message
from omnichat.models.enums import MessageDirection, MessageStatus, Platform
from omnichat.repositories.conversations import ConversationRepository
from omnichat.repositories.messages import MessageRepository

RECIPIENTS = ["5511900000001", "5511900000002", "5511900000003"]


@pytest.fixture
def tracker(db, test_settings):
    return DeliveryTracker(db, test_settings)


@pytest.fixture
async def outbound_message(db, whatsapp_channel):
    conversation = await ConversationRepository(db).upsert(
        channel_id=whatsapp_channel.id,
        platform=Platform.WHATSAPP,
        platform_conversation_id="wa_5511900000001",
        participant_id="5511900000001",
    )
    return await MessageRepository(db).add(
        Message(
            conversation_id=conversation.id,
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            direction=MessageDirection.OUTBOUND,
            content="Promo",
            status=MessageStatus.SENT,
            platform_message_id="wamid.OUT1",
        )
    )


class TestIsRegression:
    def test_forward_moves(self):
        assert not is_regression(MessageStatus.SENT, MessageStatus.DELIVERED)
        assert not is_regression(MessageStatus.DELIVERED, MessageStatus.READ)
        assert not is_regression(MessageStatus.SENT, MessageStatus.FAILED)

    def test_backward_moves(self):
        assert is_regression(MessageStatus.READ, MessageStatus.DELIVERED)
        assert is_regression(MessageStatus.FAILED, MessageStatus.SENT)


class TestUpdateDeliveryStatus:
    async def test_status_and_timestamp_recorded(self, tracker, db, outbound_message):
        reported = datetime(2026, 3, 1, 10, 30, tzinfo=UTC)

        changed = await tracker.update_delivery_status("wamid.OUT1", "delivered", reported)

        assert changed is True
        message = await MessageRepository(db).get_by_platform_id("wamid.OUT1")
        assert message.status == MessageStatus.DELIVERED
        assert message.meta["delivered_at"] == reported.isoformat()

    async def test_unknown_message_is_a_no_op(self, tracker, database):
        assert await tracker.update_delivery_status("wamid.MISSING", "read") is False

    async def test_unknown_status_is_ignored(self, tracker, db, outbound_message):
        assert await tracker.update_delivery_status("wamid.OUT1", "deleted") is False
        message = await MessageRepository(db).get_by_platform_id("wamid.OUT1")
        assert message.status == MessageStatus.SENT

    async def test_late_status_overwrites_by_default(self, tracker, db, outbound_message):
        await tracker.update_delivery_status("wamid.OUT1", "read")
        await tracker.update_delivery_status("wamid.OUT1", "delivered")

        message = await MessageRepository(db).get_by_platform_id("wamid.OUT1")
        assert message.status == MessageStatus.DELIVERED
        assert {"read_at", "delivered_at"} <= set(message.meta)

    async def test_monotonic_mode_keeps_the_furthest_status(
        self, db, test_settings, outbound_message
    ):
        tracker = DeliveryTracker(db, test_settings, monotonic=True)

        await tracker.update_delivery_status("wamid.OUT1", "read")
        changed = await tracker.update_delivery_status("wamid.OUT1", "delivered")

        assert changed is False
        message = await MessageRepository(db).get_by_platform_id("wamid.OUT1")
        assert message.status == MessageStatus.READ
        # The late callback is still recorded
        assert "delivered_at" in message.meta


class TestCampaignDeliveryStats:
    async def test_counts_read_and_delivered_separately(
        self, tracker, db, whatsapp_channel, sender_factory, test_settings, limiter
    ):
        engine = BroadcastEngine(db, sender_factory, app_settings=test_settings, limiter=limiter)
        campaign = await engine.create_campaign(whatsapp_channel.id, "Promo", RECIPIENTS)
        await engine.execute_campaign(campaign.id, custom_message="Hi")

        # FakeSender ids are handed out in recipient order
        await tracker.update_delivery_status("wamid.TEST1", "read")
        await tracker.update_delivery_status("wamid.TEST2", "delivered")

        stats = await tracker.get_campaign_delivery_stats(campaign.id)

        assert stats.total == 3
        assert stats.sent == 3
        assert stats.failed == 0
        assert stats.read == 1
        assert stats.delivered == 1

    async def test_campaign_without_sends(
        self, tracker, db, whatsapp_channel, sender_factory, test_settings, limiter
    ):
        engine = BroadcastEngine(db, sender_factory, app_settings=test_settings, limiter=limiter)
        campaign = await engine.create_campaign(whatsapp_channel.id, "Draft", RECIPIENTS)

        stats = await tracker.get_campaign_delivery_stats(campaign.id)

        assert stats.model_dump() == {
            "total": 3,
            "sent": 0,
            "failed": 0,
            "delivered": 0,
            "read": 0,
        }

    async def test_unknown_campaign(self, tracker, database):
        with pytest.raises(CampaignNotFoundError):
            await tracker.get_campaign_delivery_stats(404)
