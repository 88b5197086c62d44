"""Conversation REST API routes - V1"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...models.conversation import (
    Conversation,
    ConversationListResponse,
    ConversationPhase,
    ConversationResponse,
)
from ...services.errors import ConversationNotFoundError
from ...services.orchestrator import OrchestrationEngine
from .deps import get_engine

router = APIRouter(prefix="/api/v1", tags=["conversations-v1"])


def _to_response(engine: OrchestrationEngine, conversation: Conversation) -> ConversationResponse:
    return ConversationResponse(
        id=conversation.id,
        owner_key=conversation.owner_key,
        phase=conversation.phase,
        intent=conversation.intent,
        required_fields=conversation.required_fields,
        collected_fields=conversation.collected_fields,
        assigned_to=conversation.assigned_to,
        result=conversation.result,
        messages=conversation.messages,
        is_active=engine.conversations.is_active(conversation),
        created_at=conversation.created_at,
        updated_at=conversation.updated_at
    )


@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(
    owner_key: Optional[str] = None,
    phase: Optional[ConversationPhase] = None,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    List conversations, most recently updated first.

    Args:
        owner_key: Only conversations from this sender
        phase: Only conversations in this phase
    """
    conversations = engine.conversations.list(owner_key=owner_key, phase=phase)
    return ConversationListResponse(
        conversations=[_to_response(engine, c) for c in conversations],
        total=len(conversations)
    )


@router.get("/conversations/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: str,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Get conversation details including the transcript.

    Raises:
        HTTPException: If conversation not found
    """
    try:
        conversation = engine.conversations.get(conversation_id)
    except ConversationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _to_response(engine, conversation)
