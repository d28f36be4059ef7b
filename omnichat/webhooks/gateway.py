"""
Webhook gateway for Meta callbacks.

Handles the subscription handshake, HMAC signature verification of the raw
body and idempotent ingestion. Each delivery gets an external id; a delivery
whose id is already in the event log is acknowledged as deduped without any
side effects. Routing side effects are not transactional with the event
row: a process crash during routing leaves the event ``received`` and the
provider's redelivery is what eventually processes it.
"""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError

from omnichat.core.config.settings import Settings, settings
from omnichat.core.exceptions import (
    PayloadValidationError,
    WebhookConfigurationError,
    WebhookVerificationError,
)
from omnichat.core.logging.logger import get_logger
from omnichat.models.database_models import WebhookEvent
from omnichat.repositories.webhook_events import WebhookEventRepository
from omnichat.schemas.results import IngestResult
from omnichat.schemas.webhook import MetaWebhookPayload

from .router import EventRouter

SIGNATURE_PREFIX = "sha256="
WEBHOOK_PROVIDER = "meta"


def compute_signature(secret: str, raw_body: bytes) -> str:
    """Value Meta sends in X-Hub-Signature-256 for a body."""
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha256).hexdigest()
    return f"{SIGNATURE_PREFIX}{digest}"


def derive_external_id(payload: dict[str, Any], raw_body: bytes) -> str:
    """
    Stable dedup key for a delivery.

    Prefers the first WhatsApp message id, then an Instagram change id, then
    a Facebook comment id, and falls back to a SHA-256 of the raw body.
    """
    entries = payload.get("entry") or []
    first_entry = entries[0] if entries and isinstance(entries[0], dict) else {}
    changes = first_entry.get("changes") or []
    first_change = changes[0] if changes and isinstance(changes[0], dict) else {}
    value = first_change.get("value")
    value = value if isinstance(value, dict) else {}

    messages = value.get("messages")
    if isinstance(messages, list) and messages and isinstance(messages[0], dict):
        message_id = messages[0].get("id")
        if isinstance(message_id, str) and message_id:
            return f"wa_msg:{message_id}"
    change_id = value.get("id")
    if isinstance(change_id, str) and change_id:
        return f"ig_evt:{change_id}"
    comment_id = value.get("comment_id")
    if isinstance(comment_id, str) and comment_id:
        return f"fb_cmt:{comment_id}"
    return hashlib.sha256(raw_body).hexdigest()


class WebhookGateway:
    """Boundary between Meta's webhook deliveries and the event router."""

    def __init__(
        self,
        db_session_factory,
        router: EventRouter,
        *,
        app_secret: str | None = None,
        verify_token: str | None = None,
        app_settings: Settings | None = None,
    ):
        config = app_settings or settings
        self.app_secret = app_secret if app_secret is not None else config.meta_app_secret
        self.verify_token = (
            verify_token if verify_token is not None else config.meta_webhook_verify_token
        )
        self.router = router
        self.events = WebhookEventRepository(db_session_factory)
        self.logger = get_logger(__name__)

    def verify(self, raw_body: bytes, signature_header: str | None) -> bool:
        """
        Check the X-Hub-Signature-256 header against the raw body.

        Raises:
            WebhookConfigurationError: No app secret configured
        """
        if not self.app_secret:
            raise WebhookConfigurationError("META_APP_SECRET")
        if not signature_header or not signature_header.startswith(SIGNATURE_PREFIX):
            return False

        expected = compute_signature(self.app_secret, raw_body)
        return hmac.compare_digest(
            expected.encode("utf-8"), signature_header.strip().encode("utf-8")
        )

    def challenge(self, mode: str | None, token: str | None, challenge: str | None) -> str:
        """
        Answer the subscription handshake.

        Returns:
            The challenge, verbatim

        Raises:
            WebhookConfigurationError: No verify token configured
            WebhookVerificationError: Wrong mode or token
        """
        if not self.verify_token:
            raise WebhookConfigurationError("META_WEBHOOK_VERIFY_TOKEN")

        token_ok = token is not None and hmac.compare_digest(
            token.encode("utf-8"), self.verify_token.encode("utf-8")
        )
        if mode != "subscribe" or not token_ok or challenge is None:
            self.logger.warning(f"Webhook verification rejected (mode={mode})")
            raise WebhookVerificationError()

        self.logger.info("✅ Webhook subscription verified")
        return challenge

    async def ingest(self, raw_body: bytes) -> IngestResult:
        """
        Log and route one verified delivery.

        Raises:
            PayloadValidationError: Body is not a valid webhook payload; nothing is stored
        """
        try:
            data = json.loads(raw_body)
            payload = MetaWebhookPayload.model_validate(data)
        except (ValueError, ValidationError) as e:
            raise PayloadValidationError(str(e)) from e

        external_id = derive_external_id(data, raw_body)

        existing = await self.events.get_by_external_id(external_id)
        if existing is not None:
            self.logger.info(f"🔁 Duplicate webhook {external_id}, acknowledged")
            return IngestResult(success=True, deduped=True, event_id=existing.id)

        try:
            event = await self.events.create(
                WebhookEvent(
                    provider=WEBHOOK_PROVIDER,
                    event_type=payload.object,
                    external_id=external_id,
                    payload=data,
                )
            )
        except IntegrityError:
            # A concurrent delivery of the same event inserted first
            self.logger.info(f"🔁 Webhook {external_id} stored concurrently, acknowledged")
            return IngestResult(success=True, deduped=True)

        try:
            summary = await self.router.route(payload)
        except Exception as e:
            await self.events.mark_failed(event.id, str(e))
            raise

        await self.events.mark_processed(event.id)
        self.logger.info(
            f"📨 Webhook {external_id} processed: {summary.handled} handled, "
            f"{summary.failed} failed, {summary.ignored} ignored"
        )
        return IngestResult(success=True, event_id=event.id)
