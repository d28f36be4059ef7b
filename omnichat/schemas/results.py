"""
Result models returned by the pipeline services.

Plain pydantic models so the API layer can return them directly.
"""

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field

from omnichat.models.enums import Intent, Platform, SuggestedAction


class ClassificationResult(BaseModel):
    """Outcome of classifying one inbound text."""

    model_config = ConfigDict(frozen=True)

    intent: Intent
    confidence: float = Field(..., ge=0.0, le=1.0)
    suggested_action: SuggestedAction
    reasoning: str


class SendResult(BaseModel):
    """Result of a successful platform send. Failures raise PlatformSendError."""

    message_id: str
    recipient: str
    platform: Platform
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class IngestResult(BaseModel):
    """Acknowledgement returned to the webhook caller."""

    success: bool = True
    deduped: bool | None = None
    event_id: int | None = Field(default=None, exclude=True)


class FollowUpAction(BaseModel):
    """What the follow-up pipeline decided for one inbound message."""

    conversation_id: int
    participant_id: str
    classification: ClassificationResult
    response_text: str | None = None
    sent: bool = False
    rule_id: int | None = None


class RecipientError(BaseModel):
    recipient: str
    error: str


class CampaignResult(BaseModel):
    """Aggregated outcome of one campaign run."""

    campaign_id: int
    sent: int = 0
    failed: int = 0
    errors: list[RecipientError] = Field(default_factory=list)


class DeliveryStats(BaseModel):
    """
    Delivery counters for a campaign.

    ``sent`` and ``failed`` are the campaign's stored counters; ``delivered``
    and ``read`` are recomputed from the recipients' outbound messages.
    """

    total: int
    sent: int
    failed: int
    delivered: int
    read: int


class TemplateSyncResult(BaseModel):
    channel_id: int
    synced: int


class PendingReplySummary(BaseModel):
    channel_id: int
    processed: int
    actions: list[FollowUpAction] = Field(default_factory=list)
