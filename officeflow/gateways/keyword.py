"""Keyword gateway - deterministic, offline capability implementation.

Used directly when no model provider is configured, and as the degrade
path of the model-backed gateway.
"""

import re
from typing import Dict, List, Optional

from .base import BaseCapabilityGateway
from ..models.capability import CompletenessCheck, GeneratedArtifact, IntentAnalysis
from ..models.conversation import IntentType, TranscriptEntry, REQUIRED_FIELDS


GREETINGS = (
    "hi", "hello", "hey", "hola", "ciao", "good morning", "good afternoon",
    "good evening", "howdy", "sup", "yo",
)
HELP_PHRASES = ("help", "what can you do", "how does this work")

TONE_WORDS = (
    "professional", "casual", "friendly", "formal", "playful", "humorous",
    "informative", "inspirational", "witty", "serious", "conversational", "upbeat",
)
SCOPE_WORDS = {
    "brief": "brief", "short": "brief", "quick": "brief", "overview": "brief",
    "detailed": "in-depth", "in-depth": "in-depth", "deep": "in-depth",
    "comprehensive": "in-depth", "thorough": "in-depth",
}
FILLER_WORDS = {"a", "an", "the", "of", "with", "in", "my", "that", "this", "any"}

# Field phrase patterns; each stops at the next field cue or punctuation
_STOP = r"(?=\s+(?:about|for|aimed at|targeting|targeted at|with|in an?|using|and make|and keep)\b|[.,;!?]|$)"
TOPIC_RE = re.compile(r"\b(?:about|on the topic of|covering|topic(?: is|:))\s+(.+?)" + _STOP, re.IGNORECASE)
AUDIENCE_RE = re.compile(
    r"\b(?:for|aimed at|targeting|targeted at|audience(?: is|:))\s+(.+?)" + _STOP, re.IGNORECASE
)
TONE_BEFORE_RE = re.compile(r"\b([\w-]+)\s+tone\b", re.IGNORECASE)
TONE_AFTER_RE = re.compile(r"\btone(?: is|:| should be)\s+([\w-]+)", re.IGNORECASE)
CONTEXT_RE = re.compile(r"\binclud(?:e|ing)\s+(.+?)(?=[.;!?]|$)", re.IGNORECASE)

FIELD_QUESTIONS = {
    "topic": "What topic should it cover?",
    "audience": "Who is the audience you're writing for?",
    "tone": "What tone would you like: professional, casual, or something else?",
    "scope": "Do you want a quick overview or an in-depth report?",
}
DEFAULT_QUESTION = "What topics would you like the newsletter to cover? And who is your target audience?"
UNKNOWN_QUESTION = "What would you like me to create? I can write a newsletter or put together some research."


def _clean(value: str) -> str:
    return value.strip().strip("\"'").strip()


def _names_intent(text: str) -> bool:
    lowered = text.lower()
    return "newsletter" in lowered or "research" in lowered


class KeywordGateway(BaseCapabilityGateway):
    """Pattern-matched keywords and canned templates."""

    async def classify_intent(self, text: str) -> IntentAnalysis:
        msg = text.strip().lower()

        if "newsletter" in msg:
            return IntentAnalysis(intent=IntentType.NEWSLETTER, confidence=0.95)
        if "research" in msg:
            return IntentAnalysis(intent=IntentType.RESEARCH, confidence=0.9)
        if any(p in msg for p in HELP_PHRASES):
            return IntentAnalysis(intent=IntentType.HELP, confidence=0.9)
        if any(
            msg == g or msg.startswith(g + " ") or msg.startswith(g + "!") or msg.startswith(g + ",")
            for g in GREETINGS
        ):
            return IntentAnalysis(intent=IntentType.GREETING, confidence=0.95)
        return IntentAnalysis(intent=IntentType.UNKNOWN, confidence=0.3)

    async def extract_fields(
        self,
        text: str,
        existing_fields: Dict[str, str],
        intent: IntentType = IntentType.UNKNOWN
    ) -> Dict[str, str]:
        fields: Dict[str, str] = {}

        match = TOPIC_RE.search(text)
        if match:
            fields["topic"] = _clean(match.group(1))

        match = AUDIENCE_RE.search(text)
        if match:
            fields["audience"] = _clean(match.group(1))

        tone = self._extract_tone(text)
        if tone:
            fields["tone"] = tone

        if intent == IntentType.RESEARCH:
            lowered = text.lower()
            for word, scope in SCOPE_WORDS.items():
                if re.search(rf"\b{re.escape(word)}\b", lowered):
                    fields["scope"] = scope
                    break

        match = CONTEXT_RE.search(text)
        if match:
            fields["additionalContext"] = _clean(match.group(1))

        # A bare answer fills the first field still missing
        if not fields:
            missing = [f for f in REQUIRED_FIELDS.get(intent, []) if not existing_fields.get(f)]
            answer = _clean(text.rstrip(".!"))
            if missing and answer and "?" not in answer and len(answer) <= 80 and not _names_intent(answer):
                fields[missing[0]] = answer

        return {k: v for k, v in fields.items() if v}

    async def check_completeness(
        self,
        collected_fields: Dict[str, str],
        transcript: List[TranscriptEntry],
        required_fields: Optional[List[str]] = None
    ) -> CompletenessCheck:
        if not required_fields:
            return CompletenessCheck(
                complete=False,
                missing_fields=[],
                clarifying_questions=[UNKNOWN_QUESTION]
            )

        missing = [f for f in required_fields if not collected_fields.get(f)]
        return CompletenessCheck(
            complete=not missing,
            missing_fields=missing,
            clarifying_questions=[FIELD_QUESTIONS.get(f, DEFAULT_QUESTION) for f in missing[:2]]
        )

    async def generate_artifact(
        self,
        topic: str,
        fields: Dict[str, str],
        intent: IntentType = IntentType.NEWSLETTER
    ) -> GeneratedArtifact:
        topic = topic or "General Topic"
        audience = fields.get("audience", "readers")
        extra = fields.get("additionalContext")

        if intent == IntentType.RESEARCH:
            scope = fields.get("scope", "brief")
            body = (
                f"# Research Brief: {topic}\n\n"
                f"**Scope:** {scope}\n\n"
                "## Summary\n\n"
                f"An overview of the current state of {topic}.\n\n"
                "## Key Findings\n\n"
                "- Finding one\n- Finding two\n- Finding three\n\n"
                "## Sources to Review\n\n"
                "- Primary literature\n- Industry reports\n"
            )
            if extra:
                body += f"\n## Notes\n\n{extra}\n"
            return GeneratedArtifact(title=f"Research: {topic}"[:60], body=body)

        tone = fields.get("tone", "professional")
        body = (
            f"# {topic}\n\n"
            f"Dear {audience},\n\n"
            f"Welcome to this edition of our newsletter on {topic}. "
            f"We've kept it {tone}.\n\n"
            "## Highlights\n\n"
            "- Important update number one\n"
            "- Key insight from the week\n"
            "- Upcoming events to watch\n\n"
            "## Deep Dive\n\n"
            f"This week we're exploring recent developments in {topic}.\n\n"
        )
        if extra:
            body += f"## Also Included\n\n{extra}\n\n"
        body += (
            "## What's Next\n\n"
            "Reply to this email and tell us what you'd like to read about next.\n\n"
            "Best regards,\nYour Newsletter Team"
        )
        return GeneratedArtifact(title=f"Newsletter: {topic}"[:60], body=body)

    async def generate_clarifying_question(
        self,
        transcript: List[TranscriptEntry],
        missing_fields: Optional[List[str]] = None
    ) -> str:
        if missing_fields:
            return FIELD_QUESTIONS.get(missing_fields[0], DEFAULT_QUESTION)
        return DEFAULT_QUESTION

    @staticmethod
    def _extract_tone(text: str) -> Optional[str]:
        for pattern in (TONE_AFTER_RE, TONE_BEFORE_RE):
            match = pattern.search(text)
            if match and match.group(1).lower() not in FILLER_WORDS:
                return match.group(1).lower()
        lowered = text.lower()
        for word in TONE_WORDS:
            if re.search(rf"\b{word}\b", lowered):
                return word
        return None
