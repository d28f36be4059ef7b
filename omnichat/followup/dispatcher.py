"""
Auto-response dispatch for inbound text.

Flow for one message: classify, let the first matching keyword rule of the
channel override the decision, send the resolved reply when the action is
``auto_respond``, then tag the conversation whatever the send outcome was.
A failed send is logged and reported through ``FollowUpAction.sent``.
"""

from __future__ import annotations

from datetime import UTC, datetime

from omnichat.core.logging.logger import get_logger
from omnichat.intent.classifier import classify
from omnichat.messaging.factory import SenderFactory
from omnichat.models.database_models import AutoResponseRule, Channel, Message
from omnichat.models.enums import (
    Intent,
    MessageDirection,
    MessageStatus,
    Platform,
    SuggestedAction,
)
from omnichat.models.metadata_keys import AUTO_RESPONSE
from omnichat.repositories.channels import ChannelRepository
from omnichat.repositories.conversations import ConversationRepository
from omnichat.repositories.messages import MessageRepository
from omnichat.schemas.results import FollowUpAction, PendingReplySummary

from .tagger import ConversationTagger

AUTO_RESPONSES: dict[Intent, str] = {
    Intent.GREETING: "Hi there! 👋 Thanks for reaching out. How can we help you today?",
    Intent.POSITIVE_FEEDBACK: (
        "Thank you so much for the kind words! We really appreciate it. 🙏 "
        "Is there anything else we can help you with?"
    ),
    Intent.OPT_OUT: (
        "We've noted your request. You will no longer receive marketing messages "
        "from us. If you change your mind, just say 'subscribe'. Thank you!"
    ),
}


def rule_keywords(rule: AutoResponseRule) -> list[str]:
    return [k.strip().lower() for k in (rule.trigger_value or "").split(",") if k.strip()]


def match_rule(rules: list[AutoResponseRule], text: str) -> AutoResponseRule | None:
    """First rule with a keyword contained in the text, case-insensitively."""
    lowered = text.lower()
    for rule in rules:
        if any(keyword in lowered for keyword in rule_keywords(rule)):
            return rule
    return None


class AutoResponseDispatcher:
    """Runs the classify → reply → tag pipeline for inbound messages."""

    def __init__(self, db_session_factory, sender_factory: SenderFactory):
        self.logger = get_logger(__name__)
        self.sender_factory = sender_factory
        self.channels = ChannelRepository(db_session_factory)
        self.conversations = ConversationRepository(db_session_factory, logger=self.logger)
        self.messages = MessageRepository(db_session_factory, logger=self.logger)
        self.tagger = ConversationTagger(self.conversations)

    async def process_incoming_reply(
        self,
        channel: Channel,
        conversation_id: int,
        text: str,
        participant_id: str,
    ) -> FollowUpAction:
        classification = classify(text)
        action = FollowUpAction(
            conversation_id=conversation_id,
            participant_id=participant_id,
            classification=classification,
        )

        rule = match_rule(await self.channels.list_keyword_rules(channel.id), text)
        if rule is not None:
            action.rule_id = rule.id
            action.response_text = rule.response
            classification = classification.model_copy(
                update={"suggested_action": SuggestedAction.AUTO_RESPOND}
            )
            action.classification = classification
        elif classification.suggested_action == SuggestedAction.AUTO_RESPOND:
            action.response_text = AUTO_RESPONSES.get(classification.intent)

        if action.response_text and classification.suggested_action == SuggestedAction.AUTO_RESPOND:
            action.sent = await self._send_auto_response(
                channel, conversation_id, participant_id, action.response_text
            )

        await self.tagger.tag(conversation_id, classification)
        self.logger.info(
            f"🏷️ Conversation {conversation_id} tagged {classification.intent.value} "
            f"→ {classification.suggested_action.value} (sent={action.sent})"
        )
        return action

    async def process_pending_replies(self, channel_id: int) -> PendingReplySummary:
        """Re-run the pipeline on the latest inbound text of every unread conversation."""
        channel = await self.channels.require(channel_id)
        summary = PendingReplySummary(channel_id=channel.id, processed=0)

        for conversation in await self.conversations.list_unread(channel.id):
            latest = await self.messages.latest_inbound_text(conversation.id)
            if latest is None or not latest.content:
                continue
            try:
                summary.actions.append(
                    await self.process_incoming_reply(
                        channel, conversation.id, latest.content, conversation.participant_id
                    )
                )
                summary.processed += 1
            except Exception as e:
                self.logger.error(
                    f"❌ Pending reply for conversation {conversation.id} failed: {e}"
                )
        return summary

    async def _send_auto_response(
        self,
        channel: Channel,
        conversation_id: int,
        participant_id: str,
        text: str,
    ) -> bool:
        try:
            sender = await self.sender_factory.create_sender(channel)
            sent = await sender.send_text(participant_id, text)
        except Exception as e:
            self.logger.error(f"❌ Failed to send auto-response to {participant_id}: {e}")
            return False

        now = datetime.now(UTC)
        try:
            await self.messages.add(
                Message(
                    conversation_id=conversation_id,
                    channel_id=channel.id,
                    platform=Platform(channel.platform),
                    direction=MessageDirection.OUTBOUND,
                    message_type="text",
                    content=text,
                    timestamp=now,
                    status=MessageStatus.SENT,
                    platform_message_id=sent.message_id,
                    meta={AUTO_RESPONSE: True},
                )
            )
            await self.conversations.update(
                conversation_id, last_message=text, last_message_time=now, unread=False
            )
        except Exception as e:
            self.logger.error(f"❌ Auto-response to {participant_id} sent but not stored: {e}")
        return True
