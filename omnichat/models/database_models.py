"""
Database models for channels, conversations, messages and campaigns.

SQLModel tables with enums stored as their values and JSON bags that become
JSONB on PostgreSQL. The Python attribute for metadata bags is ``meta``
because ``metadata`` is reserved by SQLAlchemy; the column is still named
``metadata``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, Column, DateTime, String, Text, UniqueConstraint
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlmodel import Field, SQLModel

from .enums import (
    CampaignStatus,
    ConversationStatus,
    MessageDirection,
    MessageStatus,
    Platform,
    Priority,
    Sentiment,
    TemplateStatus,
    TriggerType,
    WebhookEventStatus,
)

# =============================================================================
# Column helpers
# =============================================================================

JSONType = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    return datetime.now(UTC)


def enum_values(enum_cls: type[Enum]) -> list:
    """
    Extract enum values for SQLAlchemy enum configuration.

    Top-level function (not lambda) so it can be pickled.
    """
    return [member.value for member in enum_cls]


def get_enum_column(
    enum_cls: type[Enum],
    column_name: str,
    nullable: bool = False,
    native_enum: bool = False,
    **kwargs,
):
    """
    Create a Column storing an enum by value.

    Non-native by default so the same schema works on SQLite and PostgreSQL.
    """
    return Column(
        SAEnum(
            enum_cls,
            name=column_name,
            values_callable=enum_values,
            native_enum=native_enum,
        ),
        nullable=nullable,
        **kwargs,
    )


def json_column(name: str | None = None, nullable: bool = False) -> Column:
    if name:
        return Column(name, JSONType, nullable=nullable)
    return Column(JSONType, nullable=nullable)


def timestamp_column(nullable: bool = False) -> Column:
    return Column(DateTime(timezone=True), nullable=nullable)


# =============================================================================
# Tables
# =============================================================================


class Channel(SQLModel, table=True):
    """A connected external account (WhatsApp number, Facebook page, Instagram account)."""

    __tablename__ = "channels"
    __table_args__ = (
        UniqueConstraint("platform", "platform_id", name="uq_channel_platform_id"),
    )

    id: int | None = Field(default=None, primary_key=True)
    name: str
    platform: Platform = Field(sa_column=get_enum_column(Platform, "platform_t"))
    # Phone number id for WhatsApp, page id for Facebook, account id for Instagram
    platform_id: str = Field(index=True)
    is_connected: bool = Field(default=True)
    settings: dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


class WebhookEvent(SQLModel, table=True):
    """Audit log of received webhooks. Rows are never deleted."""

    __tablename__ = "webhook_events"

    id: int | None = Field(default=None, primary_key=True)
    provider: str = Field(default="meta")
    event_type: str
    external_id: str = Field(sa_column=Column(String, unique=True, nullable=False))
    payload: dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    status: WebhookEventStatus = Field(
        default=WebhookEventStatus.RECEIVED,
        sa_column=get_enum_column(WebhookEventStatus, "webhook_event_status_t"),
    )
    received_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    processed_at: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )
    error: str | None = Field(default=None, sa_column=Column(Text, nullable=True))


class Conversation(SQLModel, table=True):
    """A thread with one external participant on one channel."""

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint(
            "channel_id",
            "platform_conversation_id",
            name="uq_conversation_channel_participant",
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    channel_id: int = Field(foreign_key="channels.id", index=True)
    platform: Platform = Field(sa_column=get_enum_column(Platform, "platform_t"))
    # wa_{phone}, ig_comment:{id} or fb_comment:{id}
    platform_conversation_id: str
    participant_id: str
    participant_name: str | None = None
    last_message: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    last_message_time: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )
    unread: bool = Field(default=True)
    status: ConversationStatus = Field(
        default=ConversationStatus.OPEN,
        sa_column=get_enum_column(ConversationStatus, "conversation_status_t"),
    )
    priority: Priority = Field(
        default=Priority.NORMAL, sa_column=get_enum_column(Priority, "priority_t")
    )
    sentiment: Sentiment = Field(
        default=Sentiment.NEUTRAL, sa_column=get_enum_column(Sentiment, "sentiment_t")
    )
    tags: list[str] = Field(default_factory=list, sa_column=json_column())
    meta: dict[str, Any] = Field(default_factory=dict, sa_column=json_column("metadata"))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


class Message(SQLModel, table=True):
    """A single inbound or outbound message."""

    __tablename__ = "messages"

    id: int | None = Field(default=None, primary_key=True)
    conversation_id: int = Field(foreign_key="conversations.id", index=True)
    channel_id: int = Field(foreign_key="channels.id", index=True)
    platform: Platform = Field(sa_column=get_enum_column(Platform, "platform_t"))
    direction: MessageDirection = Field(
        sa_column=get_enum_column(MessageDirection, "message_direction_t")
    )
    message_type: str = Field(default="text")
    content: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    media_url: str | None = None
    timestamp: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    status: MessageStatus = Field(
        default=MessageStatus.PENDING,
        sa_column=get_enum_column(MessageStatus, "message_status_t"),
    )
    # Join key for delivery status callbacks
    platform_message_id: str | None = Field(
        default=None, sa_column=Column(String, unique=True, index=True, nullable=True)
    )
    meta: dict[str, Any] = Field(default_factory=dict, sa_column=json_column("metadata"))


class MessageTemplate(SQLModel, table=True):
    """Provider-approved template, overwritten on each sync."""

    __tablename__ = "message_templates"
    __table_args__ = (
        UniqueConstraint(
            "channel_id", "template_name", "language", name="uq_template_name_language"
        ),
    )

    id: int | None = Field(default=None, primary_key=True)
    channel_id: int = Field(foreign_key="channels.id", index=True)
    platform: Platform = Field(
        default=Platform.WHATSAPP, sa_column=get_enum_column(Platform, "platform_t")
    )
    template_name: str
    provider_template_id: str | None = None
    category: str | None = None
    language: str = Field(default="en")
    content: dict[str, Any] = Field(default_factory=dict, sa_column=json_column())
    status: TemplateStatus = Field(
        default=TemplateStatus.PENDING,
        sa_column=get_enum_column(TemplateStatus, "template_status_t"),
    )
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())


class BroadcastCampaign(SQLModel, table=True):
    """A batch send against a recipient snapshot taken at creation."""

    __tablename__ = "broadcast_campaigns"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    channel_id: int = Field(foreign_key="channels.id", index=True)
    template_id: int | None = Field(default=None, foreign_key="message_templates.id")
    recipients: list[str] = Field(default_factory=list, sa_column=json_column())
    status: CampaignStatus = Field(
        default=CampaignStatus.DRAFT,
        sa_column=get_enum_column(CampaignStatus, "campaign_status_t"),
    )
    sent_count: int = Field(default=0)
    failed_count: int = Field(default=0)
    scheduled_at: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    completed_at: datetime | None = Field(
        default=None, sa_column=timestamp_column(nullable=True)
    )


class AutoResponseRule(SQLModel, table=True):
    """Channel-scoped canned reply. Keyword rules hold comma-separated keywords."""

    __tablename__ = "auto_response_rules"

    id: int | None = Field(default=None, primary_key=True)
    channel_id: int = Field(foreign_key="channels.id", index=True)
    name: str
    trigger_type: TriggerType = Field(
        default=TriggerType.KEYWORD,
        sa_column=get_enum_column(TriggerType, "trigger_type_t"),
    )
    trigger_value: str
    response: str = Field(sa_column=Column(Text, nullable=False))
    is_active: bool = Field(default=True)
    priority: int = Field(default=0)
