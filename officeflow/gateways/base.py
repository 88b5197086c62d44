"""Capability gateway abstract base class."""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..models.capability import CompletenessCheck, GeneratedArtifact, IntentAnalysis
from ..models.conversation import IntentType, TranscriptEntry


class BaseCapabilityGateway(ABC):
    """
    Classification / extraction / generation capability.

    Every call is independent and stateless from the engine's point of
    view. Implementations raise on failure; the engine owns the fallback.
    """

    @abstractmethod
    async def classify_intent(self, text: str) -> IntentAnalysis:
        """
        Classify what the sender wants.

        Args:
            text: Inbound message text

        Returns:
            Intent and confidence
        """
        pass

    @abstractmethod
    async def extract_fields(
        self,
        text: str,
        existing_fields: Dict[str, str],
        intent: IntentType = IntentType.UNKNOWN
    ) -> Dict[str, str]:
        """
        Extract structured fields from free text.

        Args:
            text: Inbound message text
            existing_fields: Fields collected so far, as context
            intent: Conversation intent, if known

        Returns:
            Partial field map (only what this message mentions)
        """
        pass

    @abstractmethod
    async def check_completeness(
        self,
        collected_fields: Dict[str, str],
        transcript: List[TranscriptEntry],
        required_fields: Optional[List[str]] = None
    ) -> CompletenessCheck:
        """
        Judge whether enough is known to generate the artifact.

        Args:
            collected_fields: Accumulated fields
            transcript: Full conversation transcript
            required_fields: Fields the intent needs

        Returns:
            Completeness verdict with missing fields and suggested questions
        """
        pass

    @abstractmethod
    async def generate_artifact(
        self,
        topic: str,
        fields: Dict[str, str],
        intent: IntentType = IntentType.NEWSLETTER
    ) -> GeneratedArtifact:
        """
        Produce the artifact title and body.

        Args:
            topic: Primary topic field
            fields: Full collected-field context
            intent: Conversation intent

        Returns:
            Title and Markdown body
        """
        pass

    @abstractmethod
    async def generate_clarifying_question(
        self,
        transcript: List[TranscriptEntry],
        missing_fields: Optional[List[str]] = None
    ) -> str:
        """
        Produce one friendly question for the sender.

        Args:
            transcript: Full conversation transcript
            missing_fields: Fields still needed

        Returns:
            Question text
        """
        pass

    async def close(self) -> None:
        """Release network resources (no-op by default)."""
        return None

    def get_gateway_type(self) -> str:
        return self.__class__.__name__.replace("Gateway", "").lower()
