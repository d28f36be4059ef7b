"""
Routing of verified webhook payloads.

Each entry is resolved to its channel by (platform, entry id); entries for
unknown channels are skipped. Every change is classified into a typed
variant and handled on its own: an exception in one change is logged and
does not affect the others. Resyncs that belong to external collaborators
run as background tasks so the webhook response is not held up.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Coroutine
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel

from omnichat.campaigns.delivery import DeliveryTracker
from omnichat.core.logging.context import clear_processing_context, set_processing_context
from omnichat.core.logging.logger import get_logger
from omnichat.followup.dispatcher import AutoResponseDispatcher
from omnichat.models.database_models import Channel, Message
from omnichat.models.enums import MessageDirection, MessageStatus, Platform
from omnichat.repositories.channels import ChannelRepository
from omnichat.repositories.conversations import (
    ConversationRepository,
    comment_conversation_id,
    whatsapp_conversation_id,
)
from omnichat.repositories.messages import MessageRepository
from omnichat.schemas.webhook import (
    AdAccountChange,
    CommentChange,
    CommerceChange,
    FeedChange,
    IgnoredChange,
    InboundWhatsAppMessage,
    MetaWebhookPayload,
    WhatsAppMessagesChange,
    WhatsAppStatusChange,
    classify_change,
)
from omnichat.services.external_sync import ExternalSyncService, LoggingExternalSync

ChangeHandler = Callable[[Channel, Any], Awaitable[None]]


class RoutingSummary(BaseModel):
    entries: int = 0
    skipped_entries: int = 0
    handled: int = 0
    failed: int = 0
    ignored: int = 0


class EventRouter:
    """Dispatches webhook changes to per-variant handlers."""

    def __init__(
        self,
        db_session_factory,
        dispatcher: AutoResponseDispatcher,
        tracker: DeliveryTracker,
        external_sync: ExternalSyncService | None = None,
    ):
        self.logger = get_logger(__name__)
        self.dispatcher = dispatcher
        self.tracker = tracker
        self.external_sync = external_sync or LoggingExternalSync()
        self.channels = ChannelRepository(db_session_factory)
        self.conversations = ConversationRepository(db_session_factory, logger=self.logger)
        self.messages = MessageRepository(db_session_factory, logger=self.logger)
        self._background_tasks: set[asyncio.Task] = set()

        self._handlers: dict[type, ChangeHandler] = {
            WhatsAppStatusChange: self._handle_statuses,
            WhatsAppMessagesChange: self._handle_inbound_messages,
            CommentChange: self._handle_comment,
            FeedChange: self._handle_feed,
            CommerceChange: self._handle_commerce,
            AdAccountChange: self._handle_ad_account,
        }

    async def route(self, payload: MetaWebhookPayload) -> RoutingSummary:
        summary = RoutingSummary()
        platform = payload.platform
        if platform is None:
            self.logger.info(f"Ignoring webhook for unsupported object '{payload.object}'")
            return summary

        try:
            for entry in payload.entry:
                summary.entries += 1
                if not entry.id:
                    summary.skipped_entries += 1
                    continue

                channel = await self.channels.find_by_platform_id(platform, entry.id)
                if channel is None:
                    self.logger.info(f"No {platform.value} channel for id {entry.id}, skipping")
                    summary.skipped_entries += 1
                    continue

                set_processing_context(channel_id=channel.id)
                for change in entry.changes:
                    try:
                        variants = classify_change(payload.object, change)
                    except Exception as e:
                        self.logger.exception(f"❌ Malformed {change.field} change: {e}")
                        summary.failed += 1
                        continue
                    for variant in variants:
                        await self._dispatch(channel, variant, summary)
        finally:
            clear_processing_context()

        return summary

    async def _dispatch(self, channel: Channel, variant: Any, summary: RoutingSummary) -> None:
        if isinstance(variant, IgnoredChange):
            self.logger.debug(f"Ignored change ({variant.field}): {variant.reason}")
            summary.ignored += 1
            return

        handler = self._handlers[type(variant)]
        try:
            await handler(channel, variant)
            summary.handled += 1
        except Exception as e:
            # Provider will not redeliver; the change is only recorded here
            self.logger.exception(f"❌ Failed to process {variant.kind} change: {e}")
            summary.failed += 1

    # ------------------------------------------------------------------
    # WhatsApp
    # ------------------------------------------------------------------

    async def _handle_statuses(self, channel: Channel, change: WhatsAppStatusChange) -> None:
        for update in change.statuses:
            try:
                await self.tracker.update_delivery_status(
                    update.message_id, update.status, update.timestamp
                )
            except Exception as e:
                self.logger.error(f"❌ Delivery status update for {update.message_id} failed: {e}")

    async def _handle_inbound_messages(
        self, channel: Channel, change: WhatsAppMessagesChange
    ) -> None:
        for message in change.messages:
            await self._store_inbound_message(channel, message)

    async def _store_inbound_message(
        self, channel: Channel, message: InboundWhatsAppMessage
    ) -> None:
        set_processing_context(participant_id=message.phone)
        preview = message.text or message.message_type
        received_at = message.timestamp or datetime.now(UTC)

        conversation = await self.conversations.upsert(
            channel_id=channel.id,
            platform=Platform.WHATSAPP,
            platform_conversation_id=whatsapp_conversation_id(message.phone),
            participant_id=message.phone,
            participant_name=message.profile_name,
            fields={
                "last_message": preview,
                "last_message_time": received_at,
                "unread": True,
            },
        )

        await self.messages.add(
            Message(
                conversation_id=conversation.id,
                channel_id=channel.id,
                platform=Platform.WHATSAPP,
                direction=MessageDirection.INBOUND,
                message_type=message.message_type,
                content=message.text,
                timestamp=received_at,
                status=MessageStatus.DELIVERED,
                platform_message_id=message.message_id,
                meta=message.raw,
            )
        )
        self.logger.info(f"📥 Inbound {message.message_type} stored in conversation {conversation.id}")

        if message.text:
            try:
                await self.dispatcher.process_incoming_reply(
                    channel, conversation.id, message.text, message.phone
                )
            except Exception as e:
                self.logger.error(f"❌ Follow-up for conversation {conversation.id} failed: {e}")

    # ------------------------------------------------------------------
    # Comments and external resyncs
    # ------------------------------------------------------------------

    async def _handle_comment(self, channel: Channel, change: CommentChange) -> None:
        conversation = await self.conversations.upsert(
            channel_id=channel.id,
            platform=change.platform,
            platform_conversation_id=comment_conversation_id(change.platform, change.comment_id),
            participant_id=change.author,
            participant_name=change.author,
            fields={"last_message": change.text, "unread": True},
        )
        self.logger.info(f"💬 {change.platform.value} comment in conversation {conversation.id}")

    async def _handle_feed(self, channel: Channel, change: FeedChange) -> None:
        self._spawn(self.external_sync.resync_page(channel, change.post_id), "page resync")

    async def _handle_commerce(self, channel: Channel, change: CommerceChange) -> None:
        self._spawn(
            self.external_sync.sync_commerce_orders(channel, change.merchant_settings_id),
            "commerce sync",
        )

    async def _handle_ad_account(self, channel: Channel, change: AdAccountChange) -> None:
        self._spawn(
            self.external_sync.sync_ad_campaigns(channel, change.ad_account_id), "ad sync"
        )

    # ------------------------------------------------------------------
    # Background tasks
    # ------------------------------------------------------------------

    def _spawn(self, coro: Coroutine[Any, Any, None], description: str) -> asyncio.Task:
        task = asyncio.create_task(self._run_background(coro, description))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _run_background(self, coro: Coroutine[Any, Any, None], description: str) -> None:
        try:
            await coro
        except Exception as e:
            self.logger.error(f"❌ Background {description} failed: {e}")

    @property
    def pending_tasks(self) -> int:
        return len(self._background_tasks)

    async def drain(self) -> None:
        """Wait for every background task started so far."""
        if self._background_tasks:
            await asyncio.gather(*list(self._background_tasks), return_exceptions=True)
