"""Capability gateway result models.

Gateways validate raw model output against these, so a malformed response
surfaces as a ``ValidationError`` instead of leaking into the ledgers.
"""

from typing import List
from pydantic import AliasChoices, BaseModel, Field, field_validator

from .conversation import IntentType


class IntentAnalysis(BaseModel):
    """Result of intent classification."""

    intent: IntentType = IntentType.UNKNOWN
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    @field_validator('intent', mode='before')
    @classmethod
    def normalize_intent(cls, v):
        """Map unrecognized labels to unknown."""
        if isinstance(v, str):
            v = v.strip().lower()
            if v not in {i.value for i in IntentType}:
                return IntentType.UNKNOWN
        return v


class CompletenessCheck(BaseModel):
    """Result of the completeness judgment."""

    complete: bool
    missing_fields: List[str] = Field(default_factory=list, alias="missingFields")
    clarifying_questions: List[str] = Field(default_factory=list, alias="clarifyingQuestions")

    model_config = {"populate_by_name": True}


class GeneratedArtifact(BaseModel):
    """Result of artifact generation."""

    title: str = Field(min_length=1, validation_alias=AliasChoices("title", "subject"))
    body: str = Field(min_length=1)
