"""Tests for conversation and message persistence rules."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

from sqlmodel import select

from omnichat.models.database_models import Conversation, Message
from omnichat.models.enums import MessageDirection, Platform
from omnichat.repositories.conversations import (
    ConversationRepository,
    comment_conversation_id,
    whatsapp_conversation_id,
)
from omnichat.repositories.messages import MessageRepository


class TestConversationIds:
    def test_formats(self):
        assert whatsapp_conversation_id("5511") == "wa_5511"
        assert comment_conversation_id(Platform.INSTAGRAM, "9") == "ig_comment:9"
        assert comment_conversation_id(Platform.FACEBOOK, "1_2") == "fb_comment:1_2"


class TestConversationUpsert:
    async def test_create_only_fields_apply_on_insert(self, db, whatsapp_channel):
        conversations = ConversationRepository(db)

        created = await conversations.upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_1",
            participant_id="1",
            fields={"last_message": "first"},
            create_only={"unread": False},
        )
        updated = await conversations.upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_1",
            participant_id="1",
            fields={"last_message": "second", "unread": True},
            create_only={"unread": False},
        )

        assert created.unread is False
        assert updated.id == created.id
        assert updated.unread is True
        assert updated.last_message == "second"

    async def test_upsert_retries_after_losing_insert_race(self, db, whatsapp_channel):
        winner = await ConversationRepository(db).upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_race",
            participant_id="race",
            fields={"last_message": "first"},
        )
        sessions_opened = 0

        @asynccontextmanager
        async def stale_first_lookup():
            nonlocal sessions_opened
            async with db() as session:
                sessions_opened += 1
                if sessions_opened == 1:
                    # Lookup misses the row the concurrent writer just stored
                    miss = MagicMock()
                    miss.scalars.return_value.first.return_value = None
                    session.execute = AsyncMock(return_value=miss)
                yield session

        loser = await ConversationRepository(stale_first_lookup).upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_race",
            participant_id="race",
            fields={"last_message": "second"},
        )

        assert sessions_opened == 2
        assert loser.id == winner.id
        assert loser.last_message == "second"
        async with db() as session:
            result = await session.execute(
                select(Conversation).where(Conversation.platform_conversation_id == "wa_race")
            )
            assert len(result.scalars().all()) == 1

    async def test_merge_metadata_keeps_other_keys(self, db, whatsapp_channel):
        conversations = ConversationRepository(db)
        conversation = await conversations.upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_meta",
            participant_id="meta",
            fields={"meta": {"source": "ads"}},
        )

        await conversations.merge_metadata(conversation.id, {"lastIntent": "greeting"})

        stored = await conversations.get(conversation.id)
        assert stored.meta == {"source": "ads", "lastIntent": "greeting"}

    async def test_mark_read_unknown_conversation(self, db, database):
        assert await ConversationRepository(db).mark_read(12345) is False


class TestMessageRepository:
    async def test_duplicate_platform_id_returns_stored_row(self, db, whatsapp_channel):
        conversation = await ConversationRepository(db).upsert(
            channel_id=whatsapp_channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id="wa_dup",
            participant_id="dup",
        )
        messages = MessageRepository(db)

        def build(content: str) -> Message:
            return Message(
                conversation_id=conversation.id,
                channel_id=whatsapp_channel.id,
                platform=Platform.WHATSAPP,
                direction=MessageDirection.INBOUND,
                content=content,
                platform_message_id="wamid.DUP",
            )

        first = await messages.add(build("original"))
        second = await messages.add(build("replayed"))

        assert second.id == first.id
        assert second.content == "original"
        assert len(await messages.list_for_conversation(conversation.id)) == 1
