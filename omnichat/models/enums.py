"""
Enumerations shared by the persistence models, the pipeline and the API.

All enums are (str, Enum) so they serialize as their plain values.
"""

from enum import Enum


class Platform(str, Enum):
    """Messaging platforms a channel can be connected to."""

    WHATSAPP = "whatsapp"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"


class WebhookEventStatus(str, Enum):
    RECEIVED = "received"
    PROCESSED = "processed"
    FAILED = "failed"


class MessageDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MessageStatus(str, Enum):
    """Provider-reported lifecycle of a message."""

    PENDING = "pending"
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"
    FAILED = "failed"


class ConversationStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class CampaignStatus(str, Enum):
    DRAFT = "draft"
    SCHEDULED = "scheduled"
    SENDING = "sending"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (CampaignStatus.COMPLETED, CampaignStatus.FAILED)


class TemplateStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class TriggerType(str, Enum):
    """How an auto-response rule is triggered. Only keyword rules are evaluated inline."""

    KEYWORD = "keyword"
    TIME = "time"
    ABSENCE = "absence"


class MediaKind(str, Enum):
    IMAGE = "image"
    VIDEO = "video"
    AUDIO = "audio"
    DOCUMENT = "document"


class Intent(str, Enum):
    """Intent categories produced by the classifier."""

    PURCHASE_INTENT = "purchase_intent"
    PRICING_INQUIRY = "pricing_inquiry"
    APPOINTMENT_BOOKING = "appointment_booking"
    SUPPORT_REQUEST = "support_request"
    COMPLAINT = "complaint"
    POSITIVE_FEEDBACK = "positive_feedback"
    OPT_OUT = "opt_out"
    GREETING = "greeting"
    GENERAL_INQUIRY = "general_inquiry"
    UNKNOWN = "unknown"


class SuggestedAction(str, Enum):
    AUTO_RESPOND = "auto_respond"
    ESCALATE_HUMAN = "escalate_human"
    AI_GENERATE = "ai_generate"
    IGNORE = "ignore"


class Priority(str, Enum):
    """Conversation priority."""

    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class Sentiment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ErrorCode(str, Enum):
    """Error codes carried by Omnichat exceptions."""

    SIGNATURE_VALIDATION_FAILED = "signature_validation_failed"
    WEBHOOK_NOT_CONFIGURED = "webhook_not_configured"
    VERIFICATION_FAILED = "verification_failed"
    INVALID_PAYLOAD = "invalid_payload"
    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    CREDENTIALS_MISSING = "credentials_missing"
    TEMPLATE_SYNC_FAILED = "template_sync_failed"
    RATE_LIMITED = "rate_limited"
    AUTHENTICATION_FAILED = "authentication_failed"
    PLATFORM_ERROR = "platform_error"
    UNSUPPORTED_OPERATION = "unsupported_operation"
