"""Repositories wrapping the async session factory."""

from .campaigns import CampaignRepository, TemplateRepository
from .channels import ChannelRepository
from .conversations import (
    ConversationRepository,
    comment_conversation_id,
    whatsapp_conversation_id,
)
from .messages import MessageRepository
from .webhook_events import WebhookEventRepository

__all__ = [
    "CampaignRepository",
    "ChannelRepository",
    "ConversationRepository",
    "MessageRepository",
    "TemplateRepository",
    "WebhookEventRepository",
    "comment_conversation_id",
    "whatsapp_conversation_id",
]
