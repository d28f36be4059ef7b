"""
Platform send adapter interface.

The three primitives every connected platform offers. Each returns the
provider-issued message id, which is the join key for later delivery status
callbacks. Failures raise PlatformSendError subclasses.
"""

from abc import ABC, abstractmethod
from typing import Any

from omnichat.models.enums import MediaKind, Platform
from omnichat.schemas.results import SendResult


class IPlatformSender(ABC):
    """Send adapter bound to one channel."""

    @property
    @abstractmethod
    def platform(self) -> Platform:
        """Platform this sender delivers to."""

    @property
    @abstractmethod
    def sender_id(self) -> str:
        """Provider id the messages are sent from (phone number id, page id)."""

    @abstractmethod
    async def send_text(self, recipient: str, text: str) -> SendResult:
        """Send free text. Session-window rules are enforced by the provider."""

    @abstractmethod
    async def send_template(
        self,
        recipient: str,
        template_name: str,
        language: str,
        components: list[dict[str, Any]] | None = None,
    ) -> SendResult:
        """Send a pre-approved template with its filled components."""

    @abstractmethod
    async def send_media(
        self,
        recipient: str,
        media_type: MediaKind,
        url: str,
        caption: str | None = None,
    ) -> SendResult:
        """Send an image, video, audio clip or document by link."""


def build_body_parameters(params: dict[str, Any] | None) -> list[dict[str, Any]]:
    """
    Turn ordered template params into a body component.

    Values are used in the dict's insertion order, so ``{"name": "Ana",
    "code": "X1"}`` fills ``{{1}}`` with Ana and ``{{2}}`` with X1.
    """
    if not params:
        return []
    return [
        {
            "type": "body",
            "parameters": [
                {"type": "text", "text": str(value)} for value in params.values()
            ],
        }
    ]
