"""
Meta webhook payload models.

The envelope (``object`` / ``entry`` / ``changes``) is validated with
pydantic, then every change is turned into one or more typed variants by
classify_change(). The router dispatches on the variant type and never looks
at raw ``object`` or ``field`` strings.
"""

from datetime import UTC, datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from omnichat.models.enums import Platform

OBJECT_PLATFORMS: dict[str, Platform] = {
    "whatsapp_business_account": Platform.WHATSAPP,
    "instagram": Platform.INSTAGRAM,
    "page": Platform.FACEBOOK,
    # Commerce and ad accounts hang off the Facebook page channel
    "commerce_order": Platform.FACEBOOK,
    "commerce_checkout": Platform.FACEBOOK,
    "ad_account": Platform.FACEBOOK,
}


def parse_unix_timestamp(value: Any) -> datetime | None:
    """Graph timestamps are unix seconds, often sent as strings."""
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), UTC)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


# =============================================================================
# Envelope
# =============================================================================


class WebhookChange(BaseModel):
    model_config = ConfigDict(extra="allow")

    field: str | None = None
    value: dict[str, Any] = Field(default_factory=dict)

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> dict[str, Any]:
        return v if isinstance(v, dict) else {}


class WebhookEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | None = None
    time: int | None = None
    changes: list[WebhookChange] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def stringify_id(cls, v: Any) -> str | None:
        return None if v is None else str(v)


class MetaWebhookPayload(BaseModel):
    """Top-level webhook body sent by Meta for every subscribed object."""

    model_config = ConfigDict(extra="allow")

    object: str
    entry: list[WebhookEntry] = Field(default_factory=list)

    @property
    def platform(self) -> Platform | None:
        return OBJECT_PLATFORMS.get(self.object)


# =============================================================================
# Change variants
# =============================================================================


class StatusUpdate(BaseModel):
    message_id: str
    status: str
    timestamp: datetime | None = None


class WhatsAppStatusChange(BaseModel):
    kind: Literal["whatsapp_status"] = "whatsapp_status"
    statuses: list[StatusUpdate]


class InboundWhatsAppMessage(BaseModel):
    message_id: str | None = None
    phone: str
    profile_name: str | None = None
    message_type: str = "text"
    text: str | None = None
    timestamp: datetime | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class WhatsAppMessagesChange(BaseModel):
    kind: Literal["whatsapp_messages"] = "whatsapp_messages"
    messages: list[InboundWhatsAppMessage]


class CommentChange(BaseModel):
    kind: Literal["comment"] = "comment"
    platform: Platform
    comment_id: str
    author: str
    text: str = ""


class FeedChange(BaseModel):
    kind: Literal["feed"] = "feed"
    post_id: str


class CommerceChange(BaseModel):
    kind: Literal["commerce"] = "commerce"
    merchant_settings_id: str


class AdAccountChange(BaseModel):
    kind: Literal["ad_account"] = "ad_account"
    ad_account_id: str


class IgnoredChange(BaseModel):
    kind: Literal["ignored"] = "ignored"
    field: str | None = None
    reason: str


RoutedChange = Annotated[
    WhatsAppStatusChange
    | WhatsAppMessagesChange
    | CommentChange
    | FeedChange
    | CommerceChange
    | AdAccountChange
    | IgnoredChange,
    Field(discriminator="kind"),
]


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> str | None:
    if value is None or value == "" or isinstance(value, (dict, list, bool)):
        return None
    return str(value)


def _whatsapp_variants(change: WebhookChange) -> list[RoutedChange]:
    if change.field != "messages":
        return [IgnoredChange(field=change.field, reason="unhandled whatsapp field")]

    value = change.value
    variants: list[RoutedChange] = []

    statuses = [
        StatusUpdate(
            message_id=str(s["id"]),
            status=str(s["status"]),
            timestamp=parse_unix_timestamp(s.get("timestamp")),
        )
        for s in _as_list(value.get("statuses"))
        if isinstance(s, dict) and s.get("id") and s.get("status")
    ]
    if statuses:
        variants.append(WhatsAppStatusChange(statuses=statuses))

    contacts = _as_list(value.get("contacts"))
    contact = _as_dict(contacts[0]) if contacts else {}
    messages = []
    for message in _as_list(value.get("messages")):
        if not isinstance(message, dict):
            continue
        phone = _as_str(contact.get("wa_id")) or _as_str(message.get("from"))
        if not phone:
            continue
        messages.append(
            InboundWhatsAppMessage(
                message_id=_as_str(message.get("id")),
                phone=phone,
                profile_name=_as_str(_as_dict(contact.get("profile")).get("name")),
                message_type=_as_str(message.get("type")) or "text",
                text=_as_str(_as_dict(message.get("text")).get("body")),
                timestamp=parse_unix_timestamp(message.get("timestamp")),
                raw=message,
            )
        )
    if messages:
        variants.append(WhatsAppMessagesChange(messages=messages))

    return variants or [IgnoredChange(field=change.field, reason="no statuses or messages")]


def _comment_variant(platform: Platform, value: dict[str, Any]) -> RoutedChange:
    author = _as_dict(value.get("from"))
    if platform == Platform.INSTAGRAM:
        comment_id = _as_str(value.get("id"))
        name = _as_str(author.get("username")) or "instagram_user"
        text = _as_str(value.get("text")) or ""
    else:
        comment_id = _as_str(value.get("comment_id"))
        name = _as_str(author.get("name")) or "Facebook User"
        text = _as_str(value.get("message")) or ""

    if not comment_id:
        return IgnoredChange(field="comments", reason="comment without id")
    return CommentChange(platform=platform, comment_id=comment_id, author=name, text=text)


def classify_change(webhook_object: str, change: WebhookChange) -> list[RoutedChange]:
    """Turn one raw change into the variants the router understands."""
    value = change.value

    if webhook_object == "whatsapp_business_account":
        return _whatsapp_variants(change)

    if webhook_object == "instagram" and change.field == "comments":
        return [_comment_variant(Platform.INSTAGRAM, value)]

    if webhook_object == "page":
        if change.field == "comments":
            return [_comment_variant(Platform.FACEBOOK, value)]
        if change.field == "feed":
            post_id = value.get("post_id") or value.get("item")
            if post_id:
                return [FeedChange(post_id=str(post_id))]

    if webhook_object in ("commerce_order", "commerce_checkout"):
        merchant_id = value.get("commerce_merchant_settings_id") or value.get("id")
        if merchant_id:
            return [CommerceChange(merchant_settings_id=str(merchant_id))]

    if webhook_object == "ad_account" and value.get("ad_account_id"):
        return [AdAccountChange(ad_account_id=str(value["ad_account_id"]))]

    return [IgnoredChange(field=change.field, reason=f"unhandled {webhook_object} change")]
