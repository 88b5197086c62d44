"""Worker and task models."""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator


# Worker id pattern: alphanumeric, hyphens, underscores, 1-64 chars
WORKER_ID_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9_-]{0,63}$')


class WorkerStatus(str, Enum):
    """Worker availability."""

    IDLE = "idle"
    WORKING = "working"
    AWAITING_APPROVAL = "awaiting-approval"
    OFFLINE = "offline"


class WorkerRole(str, Enum):
    """Worker category."""

    ORCHESTRATOR = "orchestrator"
    DEVELOPER = "developer"
    COPYWRITER = "copywriter"
    ACCOUNTANT = "accountant"
    RESEARCHER = "researcher"
    SALES_AGENT = "sales-agent"
    CONTENT_CREATOR = "content-creator"
    GENERAL = "general"


class TrustLevel(str, Enum):
    """Worker trust tier."""

    APPRENTICE = "apprentice"
    JUNIOR = "junior"
    SENIOR = "senior"
    EXPERT = "expert"


class Worker(BaseModel):
    """Worker directory record."""

    id: str = Field(description="Worker ID")
    name: str = Field(description="Display name")
    role: WorkerRole
    trust_level: TrustLevel = Field(default=TrustLevel.APPRENTICE)
    avatar: str = Field(default="#4CAF50", description="Avatar colour")
    status: WorkerStatus = Field(default=WorkerStatus.IDLE)
    current_task: Optional[str] = Field(None, description="Human-readable task label")
    current_conversation: Optional[str] = Field(None, description="Conversation being worked on")
    completed_tasks: int = Field(default=0, ge=0)
    approval_rate: float = Field(default=1.0, ge=0.0, le=1.0)
    reviewed_tasks: int = Field(default=0, ge=0, description="Reviews counted in approval_rate")
    is_special: bool = Field(default=False, description="Fixed-seat worker (reception/dev)")
    last_assigned_at: Optional[datetime] = None

    @field_validator('id')
    @classmethod
    def validate_id(cls, v):
        """Validate worker id format."""
        if not WORKER_ID_PATTERN.match(v):
            raise ValueError(
                f"Invalid worker id '{v}'. Must start with a letter, "
                "contain only alphanumeric characters, hyphens, or underscores, "
                "and be 1-64 characters long."
            )
        return v


class WorkerResponse(BaseModel):
    """Response model for worker information."""

    id: str
    name: str
    role: WorkerRole
    trust_level: TrustLevel
    avatar: str
    status: WorkerStatus
    current_task: Optional[str] = None
    current_conversation: Optional[str] = None
    completed_tasks: int
    approval_rate: float


class WorkerListResponse(BaseModel):
    """Response model for listing workers."""

    workers: List[WorkerResponse]
    total: int


class UpdateWorkerStatusRequest(BaseModel):
    """Administrative status change."""

    status: WorkerStatus

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        """Only idle/offline can be set by hand."""
        if v not in (WorkerStatus.IDLE, WorkerStatus.OFFLINE):
            raise ValueError(f"Status '{v.value}' cannot be set manually. Use 'idle' or 'offline'.")
        return v


class TaskStatus(str, Enum):
    """Audit-trail task status."""

    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    AWAITING_APPROVAL = "awaiting-approval"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class Task(BaseModel):
    """Audit record for one assignment."""

    id: str = Field(default_factory=lambda: f"task-{uuid.uuid4().hex[:12]}")
    title: str
    description: str
    status: TaskStatus = Field(default=TaskStatus.IN_PROGRESS)
    assigned_to: str
    conversation_id: str
    source_message_id: Optional[str] = None
    artifact_id: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }


class TaskListResponse(BaseModel):
    """Response model for listing tasks."""

    tasks: List[Task]
    total: int
