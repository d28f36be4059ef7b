"""Broadcast campaign and template sync endpoints."""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from omnichat.api.dependencies import get_engine, get_tracker
from omnichat.campaigns.delivery import DeliveryTracker
from omnichat.campaigns.engine import BroadcastEngine
from omnichat.models.database_models import BroadcastCampaign, MessageTemplate
from omnichat.schemas.results import CampaignResult, DeliveryStats, TemplateSyncResult

router = APIRouter(tags=["Campaigns"])


class CampaignCreateRequest(BaseModel):
    channel_id: int
    name: str = Field(..., min_length=1)
    recipients: list[str]
    template_id: int | None = None
    scheduled_at: datetime | None = None


class CampaignExecuteRequest(BaseModel):
    template_params: dict[str, str] | None = None
    custom_message: str | None = None


class CampaignDetails(BaseModel):
    campaign: dict[str, Any]
    template: dict[str, Any] | None = None


def _details(campaign: BroadcastCampaign, template: MessageTemplate | None) -> CampaignDetails:
    return CampaignDetails(
        campaign=campaign.model_dump(mode="json"),
        template=template.model_dump(mode="json") if template else None,
    )


@router.post("/campaigns", status_code=201, response_model=CampaignDetails)
async def create_campaign(
    body: CampaignCreateRequest, engine: BroadcastEngine = Depends(get_engine)
):
    campaign = await engine.create_campaign(
        body.channel_id,
        body.name,
        body.recipients,
        template_id=body.template_id,
        scheduled_at=body.scheduled_at,
    )
    _, template = await engine.get_campaign(campaign.id)
    return _details(campaign, template)


@router.get("/campaigns/{campaign_id}", response_model=CampaignDetails)
async def get_campaign(campaign_id: int, engine: BroadcastEngine = Depends(get_engine)):
    return _details(*await engine.get_campaign(campaign_id))


@router.post("/campaigns/{campaign_id}/execute", response_model=CampaignResult)
async def execute_campaign(
    campaign_id: int,
    body: CampaignExecuteRequest | None = None,
    engine: BroadcastEngine = Depends(get_engine),
):
    body = body or CampaignExecuteRequest()
    return await engine.execute_campaign(
        campaign_id,
        template_params=body.template_params,
        custom_message=body.custom_message,
    )


@router.get("/campaigns/{campaign_id}/stats", response_model=DeliveryStats)
async def campaign_stats(
    campaign_id: int, tracker: DeliveryTracker = Depends(get_tracker)
):
    return await tracker.get_campaign_delivery_stats(campaign_id)


@router.post("/channels/{channel_id}/templates/sync", response_model=TemplateSyncResult)
async def sync_templates(channel_id: int, engine: BroadcastEngine = Depends(get_engine)):
    synced = await engine.sync_templates(channel_id)
    return TemplateSyncResult(channel_id=channel_id, synced=synced)
