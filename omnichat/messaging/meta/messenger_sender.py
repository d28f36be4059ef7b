"""
Messenger and Instagram Direct sender.

Both use the Send API on the page (or Instagram account) node. Templates
are a WhatsApp concept and are rejected here.
"""

from typing import Any

from omnichat.messaging.errors import PlatformSendError, UnsupportedOperationError
from omnichat.messaging.interface import IPlatformSender
from omnichat.messaging.meta.client import MetaGraphClient
from omnichat.models.enums import MediaKind, Platform
from omnichat.schemas.results import SendResult


class MessengerSender(IPlatformSender):
    def __init__(self, client: MetaGraphClient, page_id: str, platform: Platform):
        self.client = client
        self.page_id = page_id
        self._platform = platform

    @property
    def platform(self) -> Platform:
        return self._platform

    @property
    def sender_id(self) -> str:
        return self.page_id

    async def _send(self, recipient: str, message: dict[str, Any]) -> SendResult:
        response = await self.client.post(
            f"{self.page_id}/messages",
            {
                "recipient": {"id": recipient},
                "messaging_type": "RESPONSE",
                "message": message,
            },
        )
        message_id = response.get("message_id")
        if not message_id:
            raise PlatformSendError(f"No message id in {self._platform.value} response")
        return SendResult(message_id=message_id, recipient=recipient, platform=self._platform)

    async def send_text(self, recipient: str, text: str) -> SendResult:
        return await self._send(recipient, {"text": text})

    async def send_template(
        self,
        recipient: str,
        template_name: str,
        language: str,
        components: list[dict[str, Any]] | None = None,
    ) -> SendResult:
        raise UnsupportedOperationError("Template messages", self._platform.value)

    async def send_media(
        self,
        recipient: str,
        media_type: MediaKind,
        url: str,
        caption: str | None = None,
    ) -> SendResult:
        media_type = MediaKind(media_type)
        attachment_type = "file" if media_type == MediaKind.DOCUMENT else media_type.value
        result = await self._send(
            recipient,
            {
                "attachment": {
                    "type": attachment_type,
                    "payload": {"url": url, "is_reusable": True},
                }
            },
        )
        # Captions travel as a follow-up text on Messenger
        if caption:
            await self.send_text(recipient, caption)
        return result
