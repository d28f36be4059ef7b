"""
Broadcast campaign engine.

Lifecycle: ``draft`` (or ``scheduled`` when created with a send time), then
``sending`` for the duration of one run, then ``completed`` or ``failed``.
A run walks the recipient snapshot in order, one send at a time, paced by a
token bucket. A failing recipient is recorded and the loop moves on; the run
ends ``failed`` only when every recipient failed.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from omnichat.core.config.settings import Settings, settings
from omnichat.core.exceptions import CampaignStateError, TemplateSyncError
from omnichat.core.logging.context import clear_processing_context, set_processing_context
from omnichat.core.logging.logger import get_logger
from omnichat.messaging.factory import SenderFactory
from omnichat.messaging.interface import IPlatformSender, build_body_parameters
from omnichat.messaging.meta.templates import fetch_message_templates
from omnichat.models.database_models import (
    BroadcastCampaign,
    Channel,
    Message,
    MessageTemplate,
)
from omnichat.models.enums import (
    CampaignStatus,
    MessageDirection,
    MessageStatus,
    Platform,
    TemplateStatus,
)
from omnichat.models.metadata_keys import CAMPAIGN_ID
from omnichat.repositories.campaigns import CampaignRepository, TemplateRepository
from omnichat.repositories.channels import ChannelRepository
from omnichat.repositories.conversations import (
    ConversationRepository,
    whatsapp_conversation_id,
)
from omnichat.repositories.messages import MessageRepository
from omnichat.schemas.results import CampaignResult, RecipientError

from .throttle import TokenBucket

NO_CONTENT_ERROR = "No template or message provided"
WABA_ID_SETTING = "waba_id"


def template_status_from_provider(status: str | None) -> TemplateStatus:
    normalized = (status or "").lower()
    if normalized == TemplateStatus.APPROVED.value:
        return TemplateStatus.APPROVED
    if normalized == TemplateStatus.REJECTED.value:
        return TemplateStatus.REJECTED
    return TemplateStatus.PENDING


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


class BroadcastEngine:
    """Creates, runs and syncs templates for broadcast campaigns."""

    def __init__(
        self,
        db_session_factory,
        sender_factory: SenderFactory,
        *,
        app_settings: Settings | None = None,
        limiter: TokenBucket | None = None,
    ):
        self.settings = app_settings or settings
        self.logger = get_logger(__name__)
        self.sender_factory = sender_factory
        self.limiter = limiter or TokenBucket(
            rate=self.settings.broadcast_rate_per_second,
            capacity=self.settings.broadcast_burst,
        )
        self.campaigns = CampaignRepository(db_session_factory)
        self.templates = TemplateRepository(db_session_factory)
        self.channels = ChannelRepository(db_session_factory)
        self.conversations = ConversationRepository(db_session_factory, logger=self.logger)
        self.messages = MessageRepository(db_session_factory)

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    async def sync_templates(self, channel_id: int) -> int:
        """
        Pull the provider's template catalog into message_templates.

        Every fetched template overwrites the stored row for the same
        (channel, name, language). Returns the number of templates synced.
        """
        channel = await self.channels.require(channel_id)
        waba_id = (channel.settings or {}).get(
            WABA_ID_SETTING
        ) or self.settings.whatsapp_business_account_id
        if not waba_id:
            raise TemplateSyncError(
                "No WhatsApp Business Account id configured for template sync"
            )

        client = await self.sender_factory.create_client(channel)
        fetched = await fetch_message_templates(client, waba_id)

        synced = 0
        for item in fetched:
            name = item.get("name")
            if not name:
                continue
            await self.templates.upsert(
                channel.id,
                name,
                item.get("language") or self.settings.default_template_language,
                platform=Platform.WHATSAPP,
                provider_template_id=item.get("id"),
                category=item.get("category"),
                status=template_status_from_provider(item.get("status")),
                content={"components": item.get("components") or []},
            )
            synced += 1

        self.logger.info(f"🔄 Synced {synced} templates for channel {channel.id}")
        return synced

    # ------------------------------------------------------------------
    # Campaign CRUD
    # ------------------------------------------------------------------

    async def create_campaign(
        self,
        channel_id: int,
        name: str,
        recipients: list[str],
        *,
        template_id: int | None = None,
        scheduled_at: datetime | None = None,
    ) -> BroadcastCampaign:
        await self.channels.require(channel_id)
        if template_id is not None:
            template = await self.templates.get(template_id)
            if template is None or template.channel_id != channel_id:
                raise CampaignStateError(
                    f"Template {template_id} does not belong to channel {channel_id}"
                )

        campaign = await self.campaigns.add(
            BroadcastCampaign(
                name=name,
                channel_id=channel_id,
                template_id=template_id,
                # Snapshot; later edits to any contact list do not affect the run
                recipients=list(recipients),
                status=CampaignStatus.SCHEDULED if scheduled_at else CampaignStatus.DRAFT,
                scheduled_at=as_utc(scheduled_at) if scheduled_at else None,
                sent_count=0,
                failed_count=0,
            )
        )
        self.logger.info(
            f"📣 Campaign {campaign.id} '{name}' created with {len(recipients)} recipients "
            f"({campaign.status.value})"
        )
        return campaign

    async def get_campaign(
        self, campaign_id: int
    ) -> tuple[BroadcastCampaign, MessageTemplate | None]:
        """Return the campaign and its template, if it has one."""
        campaign = await self.campaigns.require(campaign_id)
        template = None
        if campaign.template_id is not None:
            template = await self.templates.get(campaign.template_id)
        return campaign, template

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute_campaign(
        self,
        campaign_id: int,
        *,
        template_params: dict[str, Any] | None = None,
        custom_message: str | None = None,
    ) -> CampaignResult:
        """
        Send the campaign to every recipient in order.

        Args:
            template_params: Body parameters, applied in insertion order
            custom_message: Free text used when the campaign has no template

        Raises:
            CampaignNotFoundError: Unknown campaign
            CampaignStateError: Campaign already completed
        """
        campaign, template = await self.get_campaign(campaign_id)
        if campaign.status == CampaignStatus.COMPLETED:
            raise CampaignStateError("Campaign already completed")

        channel = await self.channels.require(campaign.channel_id)
        if not channel.platform_id:
            raise CampaignStateError("Channel not connected or missing platform id")
        sender = await self.sender_factory.create_sender(channel)

        await self.campaigns.update(campaign.id, status=CampaignStatus.SENDING)
        set_processing_context(channel_id=channel.id)
        self.logger.info(
            f"🚀 Executing campaign {campaign.id} for {len(campaign.recipients)} recipients"
        )

        result = CampaignResult(campaign_id=campaign.id)
        components = build_body_parameters(template_params)

        try:
            for recipient in campaign.recipients:
                set_processing_context(participant_id=recipient)
                if template is None and not custom_message:
                    result.errors.append(
                        RecipientError(recipient=recipient, error=NO_CONTENT_ERROR)
                    )
                    result.failed += 1
                    continue

                await self.limiter.acquire()
                try:
                    await self._send_to_recipient(
                        sender, channel, campaign, recipient, template, components, custom_message
                    )
                    result.sent += 1
                except Exception as e:
                    self.logger.error(f"❌ Campaign {campaign.id} send to {recipient} failed: {e}")
                    result.errors.append(RecipientError(recipient=recipient, error=str(e)))
                    result.failed += 1
        finally:
            clear_processing_context()

        all_failed = len(campaign.recipients) > 0 and result.failed == len(campaign.recipients)
        final_status = CampaignStatus.FAILED if all_failed else CampaignStatus.COMPLETED
        await self.campaigns.update(
            campaign.id,
            status=final_status,
            sent_count=result.sent,
            failed_count=result.failed,
            completed_at=datetime.now(UTC),
        )
        self.logger.info(
            f"🏁 Campaign {campaign.id} {final_status.value}: "
            f"{result.sent} sent, {result.failed} failed"
        )
        return result

    async def execute_due_campaigns(
        self, now: datetime | None = None
    ) -> list[CampaignResult]:
        """Run every scheduled campaign whose send time has passed."""
        now = as_utc(now) if now else datetime.now(UTC)
        results: list[CampaignResult] = []
        for campaign in await self.campaigns.list_due(now):
            try:
                results.append(await self.execute_campaign(campaign.id))
            except Exception as e:
                self.logger.error(f"❌ Scheduled campaign {campaign.id} could not run: {e}")
        return results

    async def _send_to_recipient(
        self,
        sender: IPlatformSender,
        channel: Channel,
        campaign: BroadcastCampaign,
        recipient: str,
        template: MessageTemplate | None,
        components: list[dict[str, Any]],
        custom_message: str | None,
    ) -> None:
        if template is not None:
            sent = await sender.send_template(
                recipient,
                template.template_name,
                template.language or self.settings.default_template_language,
                components or None,
            )
            message_type = "template"
            content = f"[Template: {template.template_name}]"
        else:
            sent = await sender.send_text(recipient, custom_message)
            message_type = "text"
            content = custom_message

        now = datetime.now(UTC)
        conversation = await self.conversations.upsert(
            channel_id=channel.id,
            platform=Platform(channel.platform),
            platform_conversation_id=whatsapp_conversation_id(recipient),
            participant_id=recipient,
            fields={"last_message": content, "last_message_time": now},
            create_only={"unread": False},
        )
        await self.messages.add(
            Message(
                conversation_id=conversation.id,
                channel_id=channel.id,
                platform=Platform(channel.platform),
                direction=MessageDirection.OUTBOUND,
                message_type=message_type,
                content=content,
                timestamp=now,
                status=MessageStatus.SENT,
                platform_message_id=sent.message_id,
                meta={CAMPAIGN_ID: campaign.id},
            )
        )
