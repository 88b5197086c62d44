"""Conversation data and API models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List
from pydantic import BaseModel, Field, field_validator

from .artifact import Artifact


class ConversationPhase(str, Enum):
    """Conversation state machine phases."""

    GATHERING = "gathering"
    PROCESSING = "processing"
    GENERATING = "generating"
    REVIEW = "review"
    COMPLETE = "complete"


class IntentType(str, Enum):
    """Classified purpose of a conversation."""

    GREETING = "greeting"
    HELP = "help"
    NEWSLETTER = "newsletter"
    RESEARCH = "research"
    UNKNOWN = "unknown"


# Intents that bypass field gathering entirely
CONVERSATIONAL_INTENTS = frozenset({IntentType.GREETING, IntentType.HELP})

REQUIRED_FIELDS: Dict[IntentType, List[str]] = {
    IntentType.NEWSLETTER: ["topic", "audience", "tone"],
    IntentType.RESEARCH: ["topic", "scope"],
}


class SpeakerRole(str, Enum):
    """Transcript speaker."""

    USER = "user"
    ASSISTANT = "assistant"


class TranscriptEntry(BaseModel):
    """Single transcript line."""

    role: SpeakerRole = Field(description="Who said it")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(default_factory=datetime.utcnow, description="When it was said")


class Conversation(BaseModel):
    """Conversation ledger record."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Conversation ID")
    owner_key: str = Field(description="Originating sender key (chat id)")
    phase: ConversationPhase = Field(default=ConversationPhase.GATHERING)
    intent: IntentType = Field(default=IntentType.UNKNOWN)
    required_fields: List[str] = Field(default_factory=list)
    collected_fields: Dict[str, str] = Field(default_factory=dict)
    assigned_to: Optional[str] = Field(None, description="Assigned worker ID")
    result: Optional[Artifact] = Field(None, description="Mirror of the latest artifact")
    messages: List[TranscriptEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    def touch(self) -> None:
        self.updated_at = datetime.utcnow()

    @property
    def topic(self) -> str:
        return self.collected_fields.get("topic", "")

    @property
    def missing_fields(self) -> List[str]:
        return [f for f in self.required_fields if not self.collected_fields.get(f)]


class MessageKind(str, Enum):
    """Inbound chat message kinds."""

    TEXT = "text"
    VOICE = "voice"
    PHOTO = "photo"
    VIDEO = "video"
    DOCUMENT = "document"


class InboundMessage(BaseModel):
    """Inbound event contract."""

    type: str = Field(default="message", description="Event type")
    owner_key: str = Field(description="Sender/chat key", min_length=1)
    sender_display_name: str = Field(default="User", description="Sender display name")
    text: str = Field(default="", description="Message text")
    message_kind: MessageKind = Field(default=MessageKind.TEXT)
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    message_id: str = Field(default_factory=lambda: f"tg-{uuid.uuid4().hex[:12]}")

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        """Only message events are ingested."""
        if v != "message":
            raise ValueError(f"Unsupported event type '{v}'. Expected 'message'.")
        return v


class IngestResult(BaseModel):
    """Outcome of ingesting one inbound message."""

    conversation_id: Optional[str] = None
    owner_key: str
    phase: ConversationPhase
    intent: IntentType
    replies: List[str] = Field(default_factory=list)
    assigned_to: Optional[str] = None
    artifact_id: Optional[str] = None


class ConversationResponse(BaseModel):
    """Response model for conversation information."""

    id: str = Field(description="Conversation ID")
    owner_key: str = Field(description="Sender/chat key")
    phase: ConversationPhase
    intent: IntentType
    required_fields: List[str]
    collected_fields: Dict[str, str]
    assigned_to: Optional[str] = None
    result: Optional[Artifact] = None
    messages: List[TranscriptEntry] = Field(default_factory=list)
    is_active: bool = Field(default=False, description="Whether this is the owner's active conversation")
    created_at: datetime
    updated_at: datetime

    class Config:
        json_encoders = {
            datetime: lambda v: v.isoformat()
        }


class ConversationListResponse(BaseModel):
    """Response model for listing conversations."""

    conversations: List[ConversationResponse] = Field(description="List of conversations")
    total: int = Field(description="Total number of conversations")
