"""
WhatsApp Cloud API sender.

Payloads follow the Cloud API ``/{phone-number-id}/messages`` format.
"""

from typing import Any

from omnichat.core.logging.logger import get_logger
from omnichat.messaging.errors import PlatformSendError
from omnichat.messaging.interface import IPlatformSender
from omnichat.messaging.meta.client import MetaGraphClient
from omnichat.models.enums import MediaKind, Platform
from omnichat.schemas.results import SendResult


class WhatsAppSender(IPlatformSender):
    """Sends messages from one WhatsApp business phone number."""

    def __init__(self, client: MetaGraphClient, phone_number_id: str):
        self.client = client
        self.phone_number_id = phone_number_id
        self.logger = get_logger(__name__)

    @property
    def platform(self) -> Platform:
        return Platform.WHATSAPP

    @property
    def sender_id(self) -> str:
        return self.phone_number_id

    def _base_payload(self, recipient: str, message_type: str) -> dict[str, Any]:
        return {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": recipient,
            "type": message_type,
        }

    async def _send(self, recipient: str, payload: dict[str, Any]) -> SendResult:
        response = await self.client.post(f"{self.phone_number_id}/messages", payload)
        messages = response.get("messages") or []
        message_id = messages[0].get("id") if messages else None
        if not message_id:
            raise PlatformSendError("No message id in WhatsApp response")

        self.logger.debug(f"WhatsApp {payload['type']} sent to {recipient}: {message_id}")
        return SendResult(
            message_id=message_id, recipient=recipient, platform=Platform.WHATSAPP
        )

    async def send_text(self, recipient: str, text: str) -> SendResult:
        payload = self._base_payload(recipient, "text")
        payload["text"] = {"body": text, "preview_url": False}
        return await self._send(recipient, payload)

    async def send_template(
        self,
        recipient: str,
        template_name: str,
        language: str,
        components: list[dict[str, Any]] | None = None,
    ) -> SendResult:
        payload = self._base_payload(recipient, "template")
        template: dict[str, Any] = {
            "name": template_name,
            "language": {"code": language},
        }
        if components:
            template["components"] = components
        payload["template"] = template
        return await self._send(recipient, payload)

    async def send_media(
        self,
        recipient: str,
        media_type: MediaKind,
        url: str,
        caption: str | None = None,
    ) -> SendResult:
        media_type = MediaKind(media_type)
        media: dict[str, Any] = {"link": url}
        if caption and media_type in (MediaKind.IMAGE, MediaKind.VIDEO):
            media["caption"] = caption
        elif caption and media_type == MediaKind.DOCUMENT:
            media["filename"] = caption

        payload = self._base_payload(recipient, media_type.value)
        payload[media_type.value] = media
        return await self._send(recipient, payload)
