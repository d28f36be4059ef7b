"""Conversation endpoints: explicit read and pending reply processing."""

from fastapi import APIRouter, Depends, HTTPException

from omnichat.api.dependencies import get_conversations, get_dispatcher
from omnichat.followup.dispatcher import AutoResponseDispatcher
from omnichat.repositories.conversations import ConversationRepository
from omnichat.schemas.results import PendingReplySummary

router = APIRouter(tags=["Conversations"])


@router.post("/conversations/{conversation_id}/read")
async def mark_conversation_read(
    conversation_id: int,
    conversations: ConversationRepository = Depends(get_conversations),
):
    if not await conversations.mark_read(conversation_id):
        raise HTTPException(status_code=404, detail="Conversation not found")
    return {"success": True}


@router.post("/channels/{channel_id}/pending-replies", response_model=PendingReplySummary)
async def process_pending_replies(
    channel_id: int, dispatcher: AutoResponseDispatcher = Depends(get_dispatcher)
):
    return await dispatcher.process_pending_replies(channel_id)
