"""Data and API models."""

from .artifact import Artifact, ArtifactStatus
from .conversation import (
    Conversation,
    ConversationPhase,
    IntentType,
    InboundMessage,
    IngestResult,
    MessageKind,
    SpeakerRole,
    TranscriptEntry,
    REQUIRED_FIELDS,
)
from .worker import Worker, WorkerRole, WorkerStatus, TrustLevel, Task, TaskStatus
from .event import OfficeEvent, EventType

__all__ = [
    "Artifact",
    "ArtifactStatus",
    "Conversation",
    "ConversationPhase",
    "IntentType",
    "InboundMessage",
    "IngestResult",
    "MessageKind",
    "SpeakerRole",
    "TranscriptEntry",
    "REQUIRED_FIELDS",
    "Worker",
    "WorkerRole",
    "WorkerStatus",
    "TrustLevel",
    "Task",
    "TaskStatus",
    "OfficeEvent",
    "EventType",
]
