"""
Per-channel construction of Graph clients and send adapters.

Every operation builds its collaborators from the channel it acts on, so
each call uses that channel's own credential.
"""

import aiohttp

from omnichat.core.config.settings import Settings, settings
from omnichat.messaging.interface import IPlatformSender
from omnichat.messaging.meta.client import MetaGraphClient
from omnichat.messaging.meta.messenger_sender import MessengerSender
from omnichat.messaging.meta.whatsapp_sender import WhatsAppSender
from omnichat.models.database_models import Channel
from omnichat.models.enums import Platform
from omnichat.services.credentials import CredentialResolver


class SenderFactory:
    """Builds Meta senders for channels using a shared HTTP session."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        credentials: CredentialResolver,
        app_settings: Settings | None = None,
    ):
        self.session = session
        self.credentials = credentials
        self.settings = app_settings or settings

    async def create_client(self, channel: Channel) -> MetaGraphClient:
        token = await self.credentials.resolve(channel)
        return MetaGraphClient(
            self.session,
            token,
            api_version=self.settings.api_version,
            base_url=self.settings.base_url,
        )

    async def create_sender(self, channel: Channel) -> IPlatformSender:
        client = await self.create_client(channel)
        if channel.platform == Platform.WHATSAPP:
            return WhatsAppSender(client, channel.platform_id)
        return MessengerSender(client, channel.platform_id, Platform(channel.platform))
