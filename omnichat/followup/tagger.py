"""
Conversation tagging from classification results.

Writes the classification keys into the conversation metadata bag and the
derived priority, sentiment and tags columns. Tags are replaced on every
classification, never merged.
"""

from __future__ import annotations

from datetime import UTC, datetime

from omnichat.models.database_models import Conversation
from omnichat.models.enums import Intent, Priority, Sentiment
from omnichat.models.metadata_keys import (
    CLASSIFIED_AT,
    LAST_CONFIDENCE,
    LAST_INTENT,
    SUGGESTED_ACTION,
)
from omnichat.repositories.conversations import ConversationRepository
from omnichat.schemas.results import ClassificationResult

INTENT_PRIORITY: dict[Intent, Priority] = {
    Intent.COMPLAINT: Priority.URGENT,
    Intent.SUPPORT_REQUEST: Priority.HIGH,
    Intent.PURCHASE_INTENT: Priority.HIGH,
    Intent.APPOINTMENT_BOOKING: Priority.NORMAL,
    Intent.PRICING_INQUIRY: Priority.NORMAL,
    Intent.GENERAL_INQUIRY: Priority.NORMAL,
    Intent.GREETING: Priority.LOW,
    Intent.POSITIVE_FEEDBACK: Priority.LOW,
    Intent.OPT_OUT: Priority.LOW,
    Intent.UNKNOWN: Priority.LOW,
}


def sentiment_for(intent: Intent) -> Sentiment:
    if intent == Intent.COMPLAINT:
        return Sentiment.NEGATIVE
    if intent == Intent.POSITIVE_FEEDBACK:
        return Sentiment.POSITIVE
    return Sentiment.NEUTRAL


class ConversationTagger:
    def __init__(self, conversations: ConversationRepository):
        self.conversations = conversations

    async def tag(
        self, conversation_id: int, classification: ClassificationResult
    ) -> Conversation | None:
        return await self.conversations.merge_metadata(
            conversation_id,
            {
                LAST_INTENT: classification.intent.value,
                LAST_CONFIDENCE: classification.confidence,
                SUGGESTED_ACTION: classification.suggested_action.value,
                CLASSIFIED_AT: datetime.now(UTC).isoformat(),
            },
            priority=INTENT_PRIORITY.get(classification.intent, Priority.NORMAL),
            sentiment=sentiment_for(classification.intent),
            tags=[classification.intent.value, classification.suggested_action.value],
        )
