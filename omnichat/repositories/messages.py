"""Message persistence."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from omnichat.models.database_models import Message
from omnichat.models.enums import MessageDirection


class MessageRepository:
    def __init__(self, db_session_factory, logger=None):
        self.db = db_session_factory
        self.logger = logger

    async def add(self, message: Message) -> Message:
        """
        Store a message.

        A message whose platform_message_id is already stored is not inserted
        again; the stored row is returned instead.
        """
        try:
            async with self.db() as session:
                session.add(message)
                await session.flush()
                return message
        except IntegrityError:
            if not message.platform_message_id:
                raise
            existing = await self.get_by_platform_id(message.platform_message_id)
            if existing is None:
                raise
            if self.logger:
                self.logger.info(
                    f"Message {message.platform_message_id} already stored, skipping"
                )
            return existing

    async def get_by_platform_id(self, platform_message_id: str) -> Message | None:
        async with self.db() as session:
            result = await session.execute(
                select(Message).where(Message.platform_message_id == platform_message_id)
            )
            return result.scalars().first()

    async def list_for_conversation(
        self, conversation_id: int, direction: MessageDirection | None = None
    ) -> list[Message]:
        async with self.db() as session:
            statement = select(Message).where(Message.conversation_id == conversation_id)
            if direction is not None:
                statement = statement.where(Message.direction == direction)
            result = await session.execute(statement.order_by(Message.timestamp, Message.id))
            return list(result.scalars().all())

    async def latest_inbound_text(self, conversation_id: int) -> Message | None:
        async with self.db() as session:
            result = await session.execute(
                select(Message)
                .where(
                    Message.conversation_id == conversation_id,
                    Message.direction == MessageDirection.INBOUND,
                    Message.message_type == "text",
                )
                .order_by(Message.timestamp.desc(), Message.id.desc())
            )
            return result.scalars().first()
