"""Conversation ledger - in-memory conversation state machines.

Conversations are keyed by id, with a secondary index from owner key to the
owner's single active conversation. All mutation goes through this class so
the phase graph and the field-merge rules are enforced in one place.

Callers serialize work on one owner key with ``owner_lock()``; the ledger
itself never awaits, so each method is atomic with respect to the event loop.
"""

import asyncio
from datetime import datetime
from typing import Dict, List, Optional

from ..models.artifact import Artifact
from ..models.conversation import (
    Conversation,
    ConversationPhase,
    IntentType,
    SpeakerRole,
    TranscriptEntry,
    REQUIRED_FIELDS,
)
from ..utils.logger import get_app_logger
from .errors import ConversationNotFoundError, InvalidTransitionError


Phase = ConversationPhase

TRANSITIONS = {
    Phase.GATHERING: {Phase.PROCESSING},
    Phase.PROCESSING: {Phase.GENERATING, Phase.GATHERING},
    Phase.GENERATING: {Phase.REVIEW},
    Phase.REVIEW: {Phase.COMPLETE, Phase.GATHERING},
    Phase.COMPLETE: set(),
}


class ConversationLedger:
    """Owned collection of conversations plus the owner-key index."""

    def __init__(self):
        self.conversations: Dict[str, Conversation] = {}
        self._active_by_owner: Dict[str, str] = {}
        self._owner_locks: Dict[str, asyncio.Lock] = {}
        self.logger = get_app_logger("conversations")

    # === Lookup ===

    def get(self, conversation_id: str) -> Conversation:
        conversation = self.conversations.get(conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(f"Conversation not found: {conversation_id}")
        return conversation

    def find(self, conversation_id: str) -> Optional[Conversation]:
        return self.conversations.get(conversation_id)

    def get_active(self, owner_key: str) -> Optional[Conversation]:
        """Return the owner's non-complete conversation, if any."""
        conversation_id = self._active_by_owner.get(owner_key)
        if conversation_id is None:
            return None
        return self.conversations.get(conversation_id)

    def is_active(self, conversation: Conversation) -> bool:
        return self._active_by_owner.get(conversation.owner_key) == conversation.id

    def list(
        self,
        owner_key: Optional[str] = None,
        phase: Optional[ConversationPhase] = None
    ) -> List[Conversation]:
        conversations = [
            c for c in self.conversations.values()
            if (owner_key is None or c.owner_key == owner_key)
            and (phase is None or c.phase == phase)
        ]
        conversations.sort(key=lambda c: c.updated_at, reverse=True)
        return conversations

    def owner_lock(self, owner_key: str) -> asyncio.Lock:
        """Lock serializing every step that touches this owner's conversation."""
        lock = self._owner_locks.get(owner_key)
        if lock is None:
            lock = asyncio.Lock()
            self._owner_locks[owner_key] = lock
        return lock

    # === Mutation ===

    def start(self, owner_key: str, initial_message: str) -> Conversation:
        """Create the owner's active conversation with its first transcript entry."""
        existing = self.get_active(owner_key)
        if existing is not None:
            raise InvalidTransitionError(
                f"Owner {owner_key} already has active conversation {existing.id}"
            )

        conversation = Conversation(
            owner_key=owner_key,
            messages=[TranscriptEntry(role=SpeakerRole.USER, content=initial_message)]
        )
        self.conversations[conversation.id] = conversation
        self._active_by_owner[owner_key] = conversation.id

        self.logger.info(f"Conversation started: {conversation.id} (owner: {owner_key})")
        return conversation

    def release(self, conversation: Conversation) -> None:
        """Drop the conversation from the owner index; the record is kept."""
        if self._active_by_owner.get(conversation.owner_key) == conversation.id:
            del self._active_by_owner[conversation.owner_key]
            self.logger.debug(f"Conversation released: {conversation.id}")

    def add_message(self, conversation: Conversation, role: SpeakerRole, content: str) -> TranscriptEntry:
        self._ensure_mutable(conversation)
        entry = TranscriptEntry(role=role, content=content)
        conversation.messages.append(entry)
        conversation.touch()
        return entry

    def set_intent(self, conversation: Conversation, intent: IntentType) -> bool:
        """
        Record the classified intent.

        Required fields are fixed the first time a recognized intent lands and
        never change afterwards.

        Returns:
            True if the intent was updated
        """
        self._ensure_mutable(conversation)
        if conversation.intent != IntentType.UNKNOWN:
            return False
        if intent == IntentType.UNKNOWN:
            return False

        conversation.intent = intent
        if not conversation.required_fields:
            conversation.required_fields = list(REQUIRED_FIELDS.get(intent, []))
        conversation.touch()
        self.logger.info(
            f"Conversation {conversation.id} intent: {intent.value} "
            f"(required: {conversation.required_fields})"
        )
        return True

    def merge_fields(self, conversation: Conversation, extracted: Dict[str, object]) -> Dict[str, str]:
        """
        Merge extracted values into collected fields.

        Non-empty values overwrite same-named keys; empty values and keys not
        mentioned leave existing data alone. Nothing is ever deleted.

        Returns:
            The subset of fields that changed
        """
        self._ensure_mutable(conversation)
        changed: Dict[str, str] = {}
        for key, value in (extracted or {}).items():
            if not isinstance(key, str) or not key.strip():
                continue
            if value is None:
                continue
            text = str(value).strip()
            if not text:
                continue
            if conversation.collected_fields.get(key) != text:
                conversation.collected_fields[key] = text
                changed[key] = text

        if changed:
            conversation.touch()
        return changed

    def set_phase(self, conversation: Conversation, phase: ConversationPhase) -> None:
        current = conversation.phase
        if phase not in TRANSITIONS[current]:
            raise InvalidTransitionError(
                f"Conversation {conversation.id}: {current.value} -> {phase.value} not allowed"
            )
        conversation.phase = phase
        conversation.touch()
        self.logger.info(f"Conversation {conversation.id}: {current.value} -> {phase.value}")

        if phase == Phase.COMPLETE:
            self.release(conversation)

    def assign(self, conversation: Conversation, worker_id: str) -> None:
        """Bind the conversation to its worker; rebinding to a different worker is refused."""
        self._ensure_mutable(conversation)
        if conversation.phase != Phase.GENERATING:
            raise InvalidTransitionError(
                f"Conversation {conversation.id} must be generating to assign, is {conversation.phase.value}"
            )
        if conversation.assigned_to is not None and conversation.assigned_to != worker_id:
            raise InvalidTransitionError(
                f"Conversation {conversation.id} already assigned to {conversation.assigned_to}"
            )
        conversation.assigned_to = worker_id
        conversation.touch()

    def attach_result(self, conversation: Conversation, artifact: Artifact) -> None:
        """Point the conversation at its newest artifact and move it to review."""
        if conversation.phase != Phase.GENERATING:
            raise InvalidTransitionError(
                f"Conversation {conversation.id} must be generating to attach a result"
            )
        conversation.result = artifact.model_copy()
        self.set_phase(conversation, Phase.REVIEW)

    def mirror_result(self, conversation: Conversation, artifact: Artifact) -> None:
        """Echo the artifact's review status onto the embedded result."""
        if conversation.result is None or conversation.result.id != artifact.id:
            return
        conversation.result = artifact.model_copy()
        conversation.touch()

    def _ensure_mutable(self, conversation: Conversation) -> None:
        if conversation.phase == Phase.COMPLETE:
            raise InvalidTransitionError(f"Conversation {conversation.id} is complete")
