"""Artifact data and API models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


class ArtifactStatus(str, Enum):
    """Review status of a generated artifact."""

    DRAFT = "draft"
    PENDING_REVIEW = "pending-review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Artifact(BaseModel):
    """Generated deliverable awaiting review."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Artifact ID")
    conversation_id: str = Field(description="Owning conversation ID")
    owner_key: Optional[str] = Field(None, description="Sender to notify on review")
    title: str = Field(description="Title / subject line")
    body: str = Field(description="Body content (Markdown)")
    created_by: str = Field(description="Creator worker ID")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    status: ArtifactStatus = Field(default=ArtifactStatus.PENDING_REVIEW)
    feedback: Optional[str] = Field(None, description="Rejection feedback")


class StoreArtifactRequest(BaseModel):
    """Request model for storing an externally produced artifact."""

    id: str = Field(description="Artifact ID", min_length=1)
    conversation_id: str = Field(description="Owning conversation ID", min_length=1)
    owner_key: Optional[str] = None
    title: str = Field(description="Title / subject line", min_length=1)
    body: str = Field(description="Body content", min_length=1)
    created_by: str = Field(default="external", description="Creator identity")
    status: ArtifactStatus = Field(default=ArtifactStatus.PENDING_REVIEW)

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        """Review outcomes are reached through approve/reject only."""
        if v not in (ArtifactStatus.DRAFT, ArtifactStatus.PENDING_REVIEW):
            raise ValueError(f"Artifacts are stored as draft or pending-review, not {v.value}")
        return v


class RejectArtifactRequest(BaseModel):
    """Request model for rejecting an artifact."""

    feedback: str = Field(description="Reviewer feedback", max_length=4000)

    @field_validator('feedback')
    @classmethod
    def validate_feedback(cls, v):
        """Feedback must carry text."""
        if not v or not v.strip():
            raise ValueError("Feedback must not be empty")
        return v.strip()


class ArtifactResponse(BaseModel):
    """Response model for artifact information."""

    id: str
    conversation_id: str
    owner_key: Optional[str] = None
    title: str
    body: str
    created_by: str
    created_at: datetime
    status: ArtifactStatus
    feedback: Optional[str] = None

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }


class ArtifactListResponse(BaseModel):
    """Response model for listing artifacts."""

    artifacts: List[ArtifactResponse]
    total: int
