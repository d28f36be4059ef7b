"""
Collaborators that resync data owned by other subsystems.

Page feeds, commerce orders and ad campaigns are synced elsewhere; the
webhook router only tells them what changed. The default implementation
records the request in the log.
"""

from typing import Protocol

from omnichat.core.logging.logger import get_logger
from omnichat.models.database_models import Channel


class ExternalSyncService(Protocol):
    async def resync_page(self, channel: Channel, post_id: str) -> None: ...

    async def sync_commerce_orders(self, channel: Channel, merchant_settings_id: str) -> None: ...

    async def sync_ad_campaigns(self, channel: Channel, ad_account_id: str) -> None: ...


class LoggingExternalSync:
    """Default collaborator: acknowledges resync requests in the log only."""

    def __init__(self):
        self.logger = get_logger(__name__)

    async def resync_page(self, channel: Channel, post_id: str) -> None:
        self.logger.info(f"📄 Page resync requested for channel {channel.id} (post {post_id})")

    async def sync_commerce_orders(self, channel: Channel, merchant_settings_id: str) -> None:
        self.logger.info(
            f"🛒 Commerce sync requested for channel {channel.id} ({merchant_settings_id})"
        )

    async def sync_ad_campaigns(self, channel: Channel, ad_account_id: str) -> None:
        self.logger.info(f"📊 Ad sync requested for channel {channel.id} ({ad_account_id})")
