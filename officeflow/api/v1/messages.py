"""Inbound message API routes - V1"""

from fastapi import APIRouter, Depends, HTTPException

from ...models.conversation import InboundMessage, IngestResult
from ...services.errors import InvalidTransitionError
from ...services.orchestrator import OrchestrationEngine
from ...utils.logger import get_app_logger
from .deps import get_engine

router = APIRouter(prefix="/api/v1", tags=["messages-v1"])
logger = get_app_logger("api")


@router.post("/messages", response_model=IngestResult)
async def ingest_message(
    message: InboundMessage,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Ingest one inbound chat message.

    The response reflects the conversation after the message was applied;
    work handed to a worker settles in the background.

    Raises:
        HTTPException: 409 if the conversation cannot take the message
    """
    logger.info(f"Inbound message {message.message_id} from {message.owner_key}")
    try:
        return await engine.ingest(message)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=409, detail=str(e))
