"""Tests for the classify, reply and tag follow-up pipeline."""

from datetime import UTC, datetime

import pytest
from conftest import add_keyword_rule

from omnichat.core.exceptions import ChannelNotFoundError
from omnichat.followup.dispatcher import AUTO_RESPONSES, AutoResponseDispatcher, match_rule
from omnichat.models.database_models import AutoResponseRule, Message
from omnichat.models.enums import (
    Intent,
    MessageDirection,
    MessageStatus,
    Platform,
    Priority,
    Sentiment,
    SuggestedAction,
)
from omnichat.models.metadata_keys import (
    AUTO_RESPONSE,
    CLASSIFIED_AT,
    LAST_CONFIDENCE,
    LAST_INTENT,
    SUGGESTED_ACTION,
)
from omnichat.repositories.conversations import ConversationRepository
from omnichat.repositories.messages import MessageRepository

PHONE = "5511912345678"


@pytest.fixture
def dispatcher(db, sender_factory):
    return AutoResponseDispatcher(db, sender_factory)


@pytest.fixture
async def conversation(db, whatsapp_channel):
    return await ConversationRepository(db).upsert(
        channel_id=whatsapp_channel.id,
        platform=Platform.WHATSAPP,
        platform_conversation_id=f"wa_{PHONE}",
        participant_id=PHONE,
        fields={"unread": True},
    )


class TestMatchRule:
    def test_keywords_are_comma_separated_and_case_insensitive(self):
        rule = AutoResponseRule(
            id=1, channel_id=1, name="hours", trigger_value="Opening Hours, open", response="9-5"
        )
        assert match_rule([rule], "When are you OPEN?") is rule
        assert match_rule([rule], "what are your opening hours") is rule
        assert match_rule([rule], "hello") is None

    def test_first_rule_in_list_wins(self):
        first = AutoResponseRule(id=1, channel_id=1, name="a", trigger_value="price", response="A")
        second = AutoResponseRule(id=2, channel_id=1, name="b", trigger_value="price", response="B")
        assert match_rule([first, second], "price?") is first


class TestProcessIncomingReply:
    async def test_greeting_is_answered_and_tagged(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        action = await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "Hey!", PHONE
        )

        assert action.sent is True
        assert action.response_text == AUTO_RESPONSES[Intent.GREETING]
        fake_sender.send_text.assert_awaited_once_with(PHONE, AUTO_RESPONSES[Intent.GREETING])

        stored = await ConversationRepository(db).get(conversation.id)
        assert stored.unread is False
        assert stored.priority == Priority.LOW
        assert stored.sentiment == Sentiment.NEUTRAL
        assert stored.tags == ["greeting", "auto_respond"]
        assert stored.meta[LAST_INTENT] == "greeting"
        assert stored.meta[LAST_CONFIDENCE] == 0.7
        assert stored.meta[SUGGESTED_ACTION] == "auto_respond"
        assert CLASSIFIED_AT in stored.meta

        [reply] = await MessageRepository(db).list_for_conversation(
            conversation.id, MessageDirection.OUTBOUND
        )
        assert reply.status == MessageStatus.SENT
        assert reply.content == AUTO_RESPONSES[Intent.GREETING]
        assert reply.meta == {AUTO_RESPONSE: True}

    async def test_complaint_is_escalated_not_answered(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        action = await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "Worst service ever, I want a refund", PHONE
        )

        assert action.sent is False
        assert action.response_text is None
        assert action.classification.suggested_action == SuggestedAction.ESCALATE_HUMAN
        fake_sender.send_text.assert_not_awaited()

        stored = await ConversationRepository(db).get(conversation.id)
        assert stored.priority == Priority.URGENT
        assert stored.sentiment == Sentiment.NEGATIVE
        assert stored.tags == ["complaint", "escalate_human"]
        assert stored.unread is True

    async def test_positive_feedback_sentiment(self, dispatcher, db, whatsapp_channel, conversation):
        await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "Awesome, love it", PHONE
        )

        stored = await ConversationRepository(db).get(conversation.id)
        assert stored.sentiment == Sentiment.POSITIVE
        assert stored.meta[LAST_INTENT] == "positive_feedback"

    async def test_keyword_rule_overrides_classification(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        rule = await add_keyword_rule(
            db, whatsapp_channel.id, "pricing,price list", "Our price list: example.com/prices"
        )

        action = await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "Can you send me the price list?", PHONE
        )

        assert action.rule_id == rule.id
        assert action.sent is True
        assert action.classification.suggested_action == SuggestedAction.AUTO_RESPOND
        fake_sender.send_text.assert_awaited_once_with(
            PHONE, "Our price list: example.com/prices"
        )
        stored = await ConversationRepository(db).get(conversation.id)
        assert stored.meta[SUGGESTED_ACTION] == "auto_respond"

    async def test_higher_priority_rule_wins(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        await add_keyword_rule(db, whatsapp_channel.id, "delivery", "generic", priority=1)
        await add_keyword_rule(db, whatsapp_channel.id, "delivery", "specific", priority=5)
        await add_keyword_rule(
            db, whatsapp_channel.id, "delivery", "disabled", priority=9, is_active=False
        )

        await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "delivery times?", PHONE
        )

        fake_sender.send_text.assert_awaited_once_with(PHONE, "specific")

    async def test_send_failure_still_tags(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        fake_sender.failing_recipients.add(PHONE)

        action = await dispatcher.process_incoming_reply(
            whatsapp_channel, conversation.id, "unsubscribe", PHONE
        )

        assert action.sent is False
        assert action.response_text == AUTO_RESPONSES[Intent.OPT_OUT]
        stored = await ConversationRepository(db).get(conversation.id)
        assert stored.meta[LAST_INTENT] == "opt_out"
        assert stored.unread is True
        assert (
            await MessageRepository(db).list_for_conversation(
                conversation.id, MessageDirection.OUTBOUND
            )
            == []
        )


class TestProcessPendingReplies:
    async def test_reprocesses_latest_inbound_text_of_unread_conversations(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        messages = MessageRepository(db)
        for index, text in enumerate(["the app is broken", "hello again"]):
            await messages.add(
                Message(
                    conversation_id=conversation.id,
                    channel_id=whatsapp_channel.id,
                    platform=Platform.WHATSAPP,
                    direction=MessageDirection.INBOUND,
                    content=text,
                    timestamp=datetime(2026, 1, 1, 12, index, tzinfo=UTC),
                    status=MessageStatus.DELIVERED,
                    platform_message_id=f"wamid.P{index}",
                )
            )

        summary = await dispatcher.process_pending_replies(whatsapp_channel.id)

        assert summary.processed == 1
        assert summary.actions[0].classification.intent == Intent.GREETING
        fake_sender.send_text.assert_awaited_once()

    async def test_read_conversations_are_skipped(
        self, dispatcher, db, whatsapp_channel, conversation, fake_sender
    ):
        await ConversationRepository(db).mark_read(conversation.id)

        summary = await dispatcher.process_pending_replies(whatsapp_channel.id)

        assert summary.processed == 0
        fake_sender.send_text.assert_not_awaited()

    async def test_unknown_channel(self, dispatcher, database):
        with pytest.raises(ChannelNotFoundError):
            await dispatcher.process_pending_replies(4242)
