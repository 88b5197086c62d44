"""Observer event model."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field


class EventType(str, Enum):
    """Stable event type tags."""

    MESSAGE_RECEIVED = "message:received"
    MESSAGE_SENT = "message:sent"
    PHASE_CHANGED = "conversation:phase"
    WORKER_STATUS = "worker:status"
    ASSIGNMENT_DEFERRED = "assignment:deferred"
    TASK_SETTLED = "task:settled"
    ARTIFACT_READY = "artifact:ready"
    ARTIFACT_APPROVED = "artifact:approved"
    ARTIFACT_REJECTED = "artifact:rejected"


class OfficeEvent(BaseModel):
    """Broadcast payload for UI observers."""

    type: EventType
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    owner_key: Optional[str] = None
    conversation_id: Optional[str] = None
    artifact_id: Optional[str] = None
    worker_id: Optional[str] = None
    task_id: Optional[str] = None
    phase: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict without unset ids."""
        return self.model_dump(mode="json", exclude_none=True)
