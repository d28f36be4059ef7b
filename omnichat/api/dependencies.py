"""FastAPI dependencies resolving services from the running container."""

from fastapi import Request

from omnichat.campaigns.delivery import DeliveryTracker
from omnichat.campaigns.engine import BroadcastEngine
from omnichat.core.container import ServiceContainer
from omnichat.followup.dispatcher import AutoResponseDispatcher
from omnichat.repositories.conversations import ConversationRepository
from omnichat.webhooks.gateway import WebhookGateway


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_gateway(request: Request) -> WebhookGateway:
    return get_services(request).gateway


def get_engine(request: Request) -> BroadcastEngine:
    return get_services(request).engine


def get_tracker(request: Request) -> DeliveryTracker:
    return get_services(request).tracker


def get_dispatcher(request: Request) -> AutoResponseDispatcher:
    return get_services(request).dispatcher


def get_conversations(request: Request) -> ConversationRepository:
    return get_services(request).conversations
