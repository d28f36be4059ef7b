"""
Conversation persistence.

Conversations are keyed by (channel_id, platform_conversation_id) with a
unique constraint. upsert() is the only way the pipeline creates them: it
updates the existing row or inserts a new one, and when a concurrent insert
wins the race the uniqueness violation is caught and the update retried.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from omnichat.models.database_models import Conversation
from omnichat.models.enums import Platform


def whatsapp_conversation_id(phone: str) -> str:
    return f"wa_{phone}"


def comment_conversation_id(platform: Platform, comment_id: str) -> str:
    prefix = "ig" if platform == Platform.INSTAGRAM else "fb"
    return f"{prefix}_comment:{comment_id}"


class ConversationRepository:
    """Database operations on conversations."""

    def __init__(self, db_session_factory, logger=None, max_attempts: int = 2):
        self.db = db_session_factory
        self.logger = logger
        self.max_attempts = max_attempts

    async def get(self, conversation_id: int) -> Conversation | None:
        async with self.db() as session:
            return await session.get(Conversation, conversation_id)

    async def find(
        self, channel_id: int, platform_conversation_id: str
    ) -> Conversation | None:
        async with self.db() as session:
            result = await session.execute(
                select(Conversation).where(
                    Conversation.channel_id == channel_id,
                    Conversation.platform_conversation_id == platform_conversation_id,
                )
            )
            return result.scalars().first()

    async def upsert(
        self,
        *,
        channel_id: int,
        platform: Platform,
        platform_conversation_id: str,
        participant_id: str,
        participant_name: str | None = None,
        fields: dict[str, Any] | None = None,
        create_only: dict[str, Any] | None = None,
    ) -> Conversation:
        """
        Update or insert the conversation for a participant.

        Args:
            fields: Columns written on both insert and update
            create_only: Columns written only when the row is created

        Returns:
            The stored conversation
        """
        fields = fields or {}
        last_error: IntegrityError | None = None

        for attempt in range(self.max_attempts):
            try:
                async with self.db() as session:
                    result = await session.execute(
                        select(Conversation).where(
                            Conversation.channel_id == channel_id,
                            Conversation.platform_conversation_id
                            == platform_conversation_id,
                        )
                    )
                    conversation = result.scalars().first()

                    if conversation is None:
                        conversation = Conversation(
                            channel_id=channel_id,
                            platform=platform,
                            platform_conversation_id=platform_conversation_id,
                            participant_id=participant_id,
                            participant_name=participant_name,
                            **{**(create_only or {}), **fields},
                        )
                        session.add(conversation)
                    else:
                        for key, value in fields.items():
                            setattr(conversation, key, value)
                        if participant_name:
                            conversation.participant_name = participant_name
                        conversation.updated_at = datetime.now(UTC)

                    await session.flush()
                    return conversation

            except IntegrityError as e:
                last_error = e
                if self.logger:
                    self.logger.warning(
                        f"Concurrent insert of conversation {platform_conversation_id} "
                        f"(attempt {attempt + 1}/{self.max_attempts}), retrying"
                    )

        raise last_error

    async def update(self, conversation_id: int, **fields: Any) -> Conversation | None:
        async with self.db() as session:
            conversation = await session.get(Conversation, conversation_id)
            if conversation is None:
                return None
            for key, value in fields.items():
                setattr(conversation, key, value)
            conversation.updated_at = datetime.now(UTC)
            return conversation

    async def merge_metadata(
        self, conversation_id: int, values: dict[str, Any], **fields: Any
    ) -> Conversation | None:
        """Merge keys into the metadata bag and set other columns in one write."""
        async with self.db() as session:
            conversation = await session.get(Conversation, conversation_id)
            if conversation is None:
                return None
            # New dict so the JSON column change is detected
            conversation.meta = {**(conversation.meta or {}), **values}
            for key, value in fields.items():
                setattr(conversation, key, value)
            conversation.updated_at = datetime.now(UTC)
            return conversation

    async def mark_read(self, conversation_id: int) -> bool:
        return await self.update(conversation_id, unread=False) is not None

    async def list_unread(self, channel_id: int) -> list[Conversation]:
        async with self.db() as session:
            result = await session.execute(
                select(Conversation)
                .where(Conversation.channel_id == channel_id, Conversation.unread.is_(True))
                .order_by(Conversation.id)
            )
            return list(result.scalars().all())
