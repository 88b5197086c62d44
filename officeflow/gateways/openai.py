"""OpenAI-compatible gateway over httpx.

Transport errors and malformed replies degrade to the keyword gateway for
the same call, so the engine always gets a well-formed answer.
"""

import json
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .base import BaseCapabilityGateway
from .keyword import KeywordGateway
from . import prompts
from ..models.capability import CompletenessCheck, GeneratedArtifact, IntentAnalysis
from ..models.conversation import IntentType, TranscriptEntry, REQUIRED_FIELDS
from ..services.errors import CapabilityError
from ..utils.logger import get_app_logger


def _history(transcript: List[TranscriptEntry]) -> str:
    return "\n".join(f"{m.role.value}: {m.content}" for m in transcript)


def _parse_json(content: str) -> Any:
    """Parse a JSON reply, tolerating a fenced code block."""
    text = content.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[4:]
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise CapabilityError(f"Unparseable model reply: {e}") from e


class OpenAIGateway(BaseCapabilityGateway):
    """Chat-completions backed capability gateway."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        fallback: Optional[BaseCapabilityGateway] = None
    ):
        self.api_key = api_key
        self.model = model
        self.fallback = fallback or KeywordGateway()
        self.logger = get_app_logger("gateway")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=api_base.rstrip("/"), timeout=timeout)

    async def _chat(self, system: str, user: str, temperature: float = 0.3) -> str:
        if not self.api_key:
            raise CapabilityError("Model API key not set")

        try:
            response = await self.client.post(
                "/chat/completions",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "model": self.model,
                    "messages": [
                        {"role": "system", "content": system},
                        {"role": "user", "content": user},
                    ],
                    "temperature": temperature,
                    "max_tokens": 1000,
                },
            )
            response.raise_for_status()
            data = response.json()
            return data["choices"][0]["message"]["content"] or ""
        except httpx.HTTPError as e:
            raise CapabilityError(f"Model request failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise CapabilityError(f"Unexpected model response shape: {e}") from e

    async def classify_intent(self, text: str) -> IntentAnalysis:
        try:
            reply = await self._chat(prompts.INTENT_PROMPT, text)
            return IntentAnalysis.model_validate(_parse_json(reply))
        except (CapabilityError, ValidationError) as e:
            self.logger.warning(f"classify_intent degraded to keywords: {e}")
            return await self.fallback.classify_intent(text)

    async def extract_fields(
        self,
        text: str,
        existing_fields: Dict[str, str],
        intent: IntentType = IntentType.UNKNOWN
    ) -> Dict[str, str]:
        wanted = REQUIRED_FIELDS.get(intent) or ["topic", "audience", "tone"]
        field_list = "\n".join(f"- {f}: {prompts.FIELD_DESCRIPTIONS.get(f, f)}" for f in wanted)
        system = prompts.EXTRACT_PROMPT.format(
            intent=intent.value if intent != IntentType.UNKNOWN else "newsletter",
            context=json.dumps(existing_fields),
            field_list=field_list,
        )
        try:
            data = _parse_json(await self._chat(system, text))
            if not isinstance(data, dict):
                raise CapabilityError("Extraction reply is not an object")
            return {
                str(k): str(v).strip()
                for k, v in data.items()
                if isinstance(v, (str, int, float)) and str(v).strip()
            }
        except CapabilityError as e:
            self.logger.warning(f"extract_fields degraded to keywords: {e}")
            return await self.fallback.extract_fields(text, existing_fields, intent)

    async def check_completeness(
        self,
        collected_fields: Dict[str, str],
        transcript: List[TranscriptEntry],
        required_fields: Optional[List[str]] = None
    ) -> CompletenessCheck:
        system = prompts.COMPLETENESS_PROMPT.format(
            required=", ".join(required_fields or ["a topic or subject matter"]),
            collected=json.dumps(collected_fields),
            history=_history(transcript),
        )
        try:
            reply = await self._chat(system, "Check if we have enough information to proceed.")
            return CompletenessCheck.model_validate(_parse_json(reply))
        except (CapabilityError, ValidationError) as e:
            self.logger.warning(f"check_completeness degraded to keywords: {e}")
            return await self.fallback.check_completeness(collected_fields, transcript, required_fields)

    async def generate_artifact(
        self,
        topic: str,
        fields: Dict[str, str],
        intent: IntentType = IntentType.NEWSLETTER
    ) -> GeneratedArtifact:
        system = prompts.RESEARCH_PROMPT if intent == IntentType.RESEARCH else prompts.NEWSLETTER_PROMPT
        try:
            reply = await self._chat(system, f"Topic: {topic}\n\nContext: {json.dumps(fields)}", temperature=0.8)
            return GeneratedArtifact.model_validate(_parse_json(reply))
        except (CapabilityError, ValidationError) as e:
            self.logger.warning(f"generate_artifact degraded to template: {e}")
            return await self.fallback.generate_artifact(topic, fields, intent)

    async def generate_clarifying_question(
        self,
        transcript: List[TranscriptEntry],
        missing_fields: Optional[List[str]] = None
    ) -> str:
        focus = (
            f"Ask about: {', '.join(missing_fields)}."
            if missing_fields else "Ask about topics, audience, tone, or specific content they'd like included."
        )
        system = prompts.CLARIFY_PROMPT.format(focus=focus, history=_history(transcript))
        try:
            reply = (await self._chat(system, "Generate a clarifying question.", temperature=0.7)).strip()
            if reply:
                return reply
        except CapabilityError as e:
            self.logger.warning(f"generate_clarifying_question degraded to template: {e}")
        return await self.fallback.generate_clarifying_question(transcript, missing_fields)

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()
