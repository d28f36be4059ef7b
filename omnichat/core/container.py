"""
Service wiring shared by the HTTP app and the CLI.

Owns the database, the shared aiohttp session and every pipeline service.
Collaborators can be injected for tests; anything not injected is built from
settings on start().
"""

from __future__ import annotations

import aiohttp

from omnichat.campaigns.delivery import DeliveryTracker
from omnichat.campaigns.engine import BroadcastEngine
from omnichat.campaigns.throttle import TokenBucket
from omnichat.core.config.settings import Settings, settings
from omnichat.core.logging.logger import get_app_logger
from omnichat.database.manager import Database
from omnichat.followup.dispatcher import AutoResponseDispatcher
from omnichat.messaging.factory import SenderFactory
from omnichat.repositories.channels import ChannelRepository
from omnichat.repositories.conversations import ConversationRepository
from omnichat.services.credentials import CredentialResolver, EnvironmentCredentialResolver
from omnichat.services.external_sync import ExternalSyncService, LoggingExternalSync
from omnichat.webhooks.gateway import WebhookGateway
from omnichat.webhooks.router import EventRouter


class ServiceContainer:
    """Builds and tears down the pipeline services."""

    def __init__(
        self,
        app_settings: Settings | None = None,
        *,
        database: Database | None = None,
        sender_factory: SenderFactory | None = None,
        credentials: CredentialResolver | None = None,
        external_sync: ExternalSyncService | None = None,
        limiter: TokenBucket | None = None,
    ):
        self.settings = app_settings or settings
        self.database = database or Database(
            self.settings.database_url, echo=self.settings.database_echo
        )
        self.credentials = credentials or EnvironmentCredentialResolver(self.settings)
        self.external_sync = external_sync or LoggingExternalSync()
        self._sender_factory = sender_factory
        self._limiter = limiter
        self.http_session: aiohttp.ClientSession | None = None
        self._owns_session = False
        self._started = False

    async def start(self) -> None:
        if self._started:
            return
        logger = get_app_logger()

        await self.database.initialize()
        db = self.database.session_factory

        if self._sender_factory is None:
            connector = aiohttp.TCPConnector(limit=100, keepalive_timeout=30)
            self.http_session = aiohttp.ClientSession(
                connector=connector, timeout=aiohttp.ClientTimeout(total=30)
            )
            self._owns_session = True
            self._sender_factory = SenderFactory(
                self.http_session, self.credentials, self.settings
            )
            logger.info("🌐 HTTP session created for Graph API calls")

        self.sender_factory = self._sender_factory
        self.channels = ChannelRepository(db)
        self.conversations = ConversationRepository(db)
        self.tracker = DeliveryTracker(db, self.settings)
        self.dispatcher = AutoResponseDispatcher(db, self.sender_factory)
        self.router = EventRouter(db, self.dispatcher, self.tracker, self.external_sync)
        self.gateway = WebhookGateway(db, self.router, app_settings=self.settings)
        self.engine = BroadcastEngine(
            db, self.sender_factory, app_settings=self.settings, limiter=self._limiter
        )
        self._started = True
        logger.info("✅ Omnichat services ready")

    async def close(self) -> None:
        if self._started:
            await self.router.drain()
        if self._owns_session and self.http_session is not None:
            await self.http_session.close()
            self.http_session = None
        await self.database.dispose()
        self._started = False
