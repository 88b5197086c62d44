"""Artifact review API routes - V1"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...models.artifact import (
    Artifact,
    ArtifactListResponse,
    ArtifactResponse,
    RejectArtifactRequest,
    StoreArtifactRequest,
)
from ...services.errors import ArtifactNotFoundError, ArtifactStateError
from ...services.orchestrator import OrchestrationEngine
from .deps import get_engine

router = APIRouter(prefix="/api/v1", tags=["artifacts-v1"])


def _to_response(artifact: Artifact) -> ArtifactResponse:
    return ArtifactResponse(**artifact.model_dump())


@router.post("/artifacts", response_model=ArtifactResponse, status_code=201)
async def store_artifact(
    request: StoreArtifactRequest,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Store an artifact produced outside the engine.

    Raises:
        HTTPException: 409 if the id may not be overwritten or the conversation is engine-owned
    """
    try:
        artifact = engine.store_external(Artifact(**request.model_dump()))
    except ArtifactStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(artifact)


@router.get("/artifacts", response_model=ArtifactListResponse)
async def list_artifacts(
    conversation_id: Optional[str] = None,
    engine: OrchestrationEngine = Depends(get_engine)
):
    artifacts = engine.artifacts.list(conversation_id=conversation_id)
    return ArtifactListResponse(
        artifacts=[_to_response(a) for a in artifacts],
        total=len(artifacts)
    )


@router.get("/artifacts/{artifact_id}", response_model=ArtifactResponse)
async def get_artifact(
    artifact_id: str,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Get an artifact for review.

    Raises:
        HTTPException: If artifact not found
    """
    try:
        return _to_response(engine.artifacts.fetch(artifact_id))
    except ArtifactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/artifacts/{artifact_id}/approve", response_model=ArtifactResponse)
async def approve_artifact(
    artifact_id: str,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Approve an artifact. Approving twice returns the same approved artifact.

    Raises:
        HTTPException: 404 if not found, 409 if it was rejected
    """
    try:
        artifact = await engine.approve(artifact_id)
    except ArtifactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ArtifactStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _to_response(artifact)


@router.post("/artifacts/{artifact_id}/reject", response_model=ArtifactResponse)
async def reject_artifact(
    artifact_id: str,
    request: RejectArtifactRequest,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Reject an artifact with feedback and reopen its conversation.

    Raises:
        HTTPException: 404 if not found, 409 if already reviewed, 400 on empty feedback
    """
    try:
        artifact = await engine.reject(artifact_id, request.feedback)
    except ArtifactNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ArtifactStateError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(artifact)
