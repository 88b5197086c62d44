"""Orchestration engine - drives conversations from first message to reviewed artifact."""

import asyncio
from typing import Dict, List, Optional

from ..gateways.base import BaseCapabilityGateway
from ..gateways.keyword import UNKNOWN_QUESTION
from ..models.artifact import Artifact, ArtifactStatus
from ..models.capability import CompletenessCheck, GeneratedArtifact, IntentAnalysis
from ..models.conversation import (
    CONVERSATIONAL_INTENTS,
    Conversation,
    ConversationPhase as Phase,
    InboundMessage,
    IngestResult,
    IntentType,
    MessageKind,
    SpeakerRole,
)
from ..models.event import EventType, OfficeEvent
from ..models.worker import TaskStatus, Worker
from ..utils.logger import get_app_logger
from .artifact_ledger import ArtifactLedger
from .conversation_ledger import ConversationLedger
from .errors import ArtifactStateError, InvalidTransitionError, WorkerNotFoundError
from .events import EventBroadcaster
from .notifier import (
    BaseNotifier,
    HELP_MESSAGE,
    TEXT_ONLY_MESSAGE,
    WELCOME_MESSAGE,
    approval_message,
    busy_message,
    preview_message,
    revision_message,
    started_message,
    waiting_review_message,
    working_message,
)
from .settlement import SettlementScheduler
from .worker_directory import WorkerDirectory, task_label


FALLBACK_QUESTION = "Could you tell me a bit more about what you need?"


class OrchestrationEngine:
    """
    Coordinates the ledgers, the worker pool and the capability gateway.

    Every step touching one owner's conversation runs under that owner's
    lock, so messages from one sender are applied strictly in arrival order
    while different senders proceed concurrently.
    """

    def __init__(
        self,
        conversations: ConversationLedger,
        artifacts: ArtifactLedger,
        directory: WorkerDirectory,
        gateway: BaseCapabilityGateway,
        notifier: BaseNotifier,
        broadcaster: Optional[EventBroadcaster] = None,
        scheduler: Optional[SettlementScheduler] = None,
        assignment_wait_seconds: float = 30.0,
        review_base_url: str = "http://localhost:3001/review"
    ):
        self.conversations = conversations
        self.artifacts = artifacts
        self.directory = directory
        self.gateway = gateway
        self.notifier = notifier
        self.broadcaster = broadcaster or EventBroadcaster()
        self.scheduler = scheduler or SettlementScheduler()
        self.assignment_wait_seconds = assignment_wait_seconds
        self.review_base_url = review_base_url.rstrip("/")
        self.logger = get_app_logger("engine")

        self.directory.on_change = self._worker_changed

    @classmethod
    def from_settings(
        cls,
        settings,
        gateway: BaseCapabilityGateway,
        notifier: BaseNotifier
    ) -> "OrchestrationEngine":
        return cls(
            conversations=ConversationLedger(),
            artifacts=ArtifactLedger(),
            directory=WorkerDirectory(),
            gateway=gateway,
            notifier=notifier,
            broadcaster=EventBroadcaster(
                history_size=settings.event_history_size,
                queue_size=settings.event_queue_size
            ),
            scheduler=SettlementScheduler(settings.settlement_min_seconds, settings.settlement_max_seconds),
            assignment_wait_seconds=settings.assignment_wait_seconds,
            review_base_url=settings.review_base_url,
        )

    def review_url(self, artifact_id: str) -> str:
        return f"{self.review_base_url}/{artifact_id}"

    # === Ingest ===

    async def ingest(self, message: InboundMessage) -> IngestResult:
        """
        Process one inbound message.

        Args:
            message: Validated inbound event

        Returns:
            Conversation state after the message was applied plus any replies sent
        """
        self.directory.orchestrator_busy(message.text or message.message_kind.value)
        try:
            async with self.conversations.owner_lock(message.owner_key):
                return await self._ingest(message)
        finally:
            self.directory.orchestrator_idle()

    async def _ingest(self, message: InboundMessage) -> IngestResult:
        owner_key = message.owner_key
        text = message.text.strip()
        self._publish(
            EventType.MESSAGE_RECEIVED,
            owner_key=owner_key,
            data={
                "message_id": message.message_id,
                "sender": message.sender_display_name,
                "kind": message.message_kind.value,
                "text": text,
            }
        )

        if message.message_kind != MessageKind.TEXT and not text:
            await self._send(owner_key, TEXT_ONLY_MESSAGE)
            return IngestResult(
                owner_key=owner_key,
                phase=Phase.GATHERING,
                intent=IntentType.UNKNOWN,
                replies=[TEXT_ONLY_MESSAGE]
            )

        conversation = self.conversations.get_active(owner_key)
        if conversation is None:
            conversation = self.conversations.start(owner_key, text)
        else:
            self.conversations.add_message(conversation, SpeakerRole.USER, text)

        if conversation.phase == Phase.GENERATING:
            return await self._while_generating(conversation, message)
        if conversation.phase == Phase.REVIEW:
            return await self._while_review(conversation)

        if conversation.intent == IntentType.UNKNOWN:
            analysis = await self._classify(text)
            self.conversations.set_intent(conversation, analysis.intent)
            if analysis.intent in CONVERSATIONAL_INTENTS:
                reply = HELP_MESSAGE if analysis.intent == IntentType.HELP else WELCOME_MESSAGE
                self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
                self.conversations.release(conversation)
                await self._send(owner_key, reply, conversation)
                return self._result(conversation, [reply])

        extracted = await self._extract(conversation, text)
        changed = self.conversations.merge_fields(conversation, extracted)
        if changed:
            self.logger.info(f"Conversation {conversation.id} collected: {changed}")

        self._move(conversation, Phase.PROCESSING)
        check = await self._check(conversation)
        role = self.directory.role_for_intent(conversation.intent)

        if check.complete and role is not None:
            self._move(conversation, Phase.GENERATING)
            reply = started_message()
            self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
            self._dispatch(conversation, message.message_id)
            await self._send(owner_key, reply, conversation)
            return self._result(conversation, [reply])

        question = await self._clarify(conversation, check)
        self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, question)
        self._move(conversation, Phase.GATHERING)
        await self._send(owner_key, question, conversation)
        return self._result(conversation, [question])

    async def _while_generating(self, conversation: Conversation, message: InboundMessage) -> IngestResult:
        if not self.scheduler.is_pending(conversation.id):
            # Earlier assignment was deferred: try again now
            self._dispatch(conversation, message.message_id)

        worker = self.directory.working_on(conversation.id)
        reply = working_message(worker.name if worker else None)
        self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
        await self._send(conversation.owner_key, reply, conversation)
        return self._result(conversation, [reply])

    async def _while_review(self, conversation: Conversation) -> IngestResult:
        reply = waiting_review_message(self.review_url(conversation.result.id))
        self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
        await self._send(conversation.owner_key, reply, conversation)
        return self._result(conversation, [reply])

    # === Dispatch and settlement ===

    def _dispatch(self, conversation: Conversation, source_message_id: Optional[str]) -> None:
        conversation_id = conversation.id
        self.scheduler.schedule(
            conversation_id,
            lambda: self._run_assignment(conversation_id, source_message_id)
        )

    async def _run_assignment(self, conversation_id: str, source_message_id: Optional[str]) -> None:
        conversation = self.conversations.get(conversation_id)
        role = self.directory.role_for_intent(conversation.intent)
        description = conversation.topic or conversation.messages[0].content
        label = task_label(description, 50)

        worker = await self.directory.acquire(
            role,
            conversation_id,
            label,
            preferred_id=conversation.assigned_to,
            timeout=self.assignment_wait_seconds
        )

        async with self.conversations.owner_lock(conversation.owner_key):
            if conversation.phase != Phase.GENERATING:
                if worker is not None:
                    self.directory.release(worker.id)
                self.logger.info(f"Conversation {conversation_id} left generating before assignment")
                return

            if worker is None:
                self.logger.warning(f"No {role.value} available for conversation {conversation_id}")
                reply = busy_message()
                self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
                self._publish(
                    EventType.ASSIGNMENT_DEFERRED,
                    conversation=conversation,
                    data={"role": role.value, "waited_seconds": self.assignment_wait_seconds}
                )
                await self._send(conversation.owner_key, reply, conversation)
                return

            try:
                self.conversations.assign(conversation, worker.id)
            except InvalidTransitionError as e:
                self.directory.release(worker.id)
                self.logger.error(f"Assignment refused: {e}")
                return

            task = self.directory.open_task(worker.id, conversation_id, description, source_message_id)

        delay = self.scheduler.delay()
        self.logger.info(
            f"Worker {worker.id} settling conversation {conversation_id} in {delay:.1f}s (task: {task.id})"
        )
        await asyncio.sleep(delay)
        await self._settle(conversation_id, worker.id, task.id)

    async def _settle(self, conversation_id: str, worker_id: str, task_id: str) -> None:
        conversation = self.conversations.get(conversation_id)
        async with self.conversations.owner_lock(conversation.owner_key):
            if conversation.phase != Phase.GENERATING or conversation.assigned_to != worker_id:
                # State moved on while the worker was busy; nothing to apply
                self.directory.close_task(task_id, TaskStatus.CANCELLED)
                self.directory.release(worker_id)
                self.logger.info(f"Settlement for {conversation_id} skipped (phase {conversation.phase.value})")
                return

            try:
                generated = await self._generate(conversation)
                artifact = self.artifacts.store(
                    Artifact(
                        conversation_id=conversation.id,
                        owner_key=conversation.owner_key,
                        title=generated.title,
                        body=generated.body,
                        created_by=worker_id,
                        status=ArtifactStatus.PENDING_REVIEW
                    )
                )
                self.conversations.attach_result(conversation, artifact)
            except Exception:
                self.directory.close_task(task_id, TaskStatus.CANCELLED)
                self.directory.release(worker_id)
                raise

            self.directory.release(worker_id, completed=True)
            task = self.directory.close_task(task_id, TaskStatus.COMPLETED, artifact.id)
            self._publish(EventType.PHASE_CHANGED, conversation=conversation, phase=conversation.phase.value)
            self._publish(
                EventType.TASK_SETTLED,
                conversation=conversation,
                worker_id=worker_id,
                task_id=task_id,
                artifact_id=artifact.id,
                data={"title": task.title if task else artifact.title}
            )
            self._publish(
                EventType.ARTIFACT_READY,
                conversation=conversation,
                artifact_id=artifact.id,
                worker_id=worker_id,
                data={"title": artifact.title, "review_url": self.review_url(artifact.id)}
            )

            reply = preview_message(artifact.title, self.review_url(artifact.id))
            self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
            await self._send(conversation.owner_key, reply, conversation)

    # === Review ===

    def store_external(self, artifact: Artifact) -> Artifact:
        """
        Store an artifact produced outside the engine.

        Conversations the engine tracks only ever point at artifacts it
        generated, so an outside artifact may not name one of them.

        Raises:
            ArtifactStateError: Conversation is engine-owned, or the id may not be overwritten
        """
        if self.conversations.find(artifact.conversation_id) is not None:
            raise ArtifactStateError(
                f"Conversation {artifact.conversation_id} is managed by the engine; "
                f"its artifacts cannot be stored from outside"
            )
        stored = self.artifacts.store(artifact)
        self._publish(
            EventType.ARTIFACT_READY,
            owner_key=stored.owner_key,
            conversation_id=stored.conversation_id,
            artifact_id=stored.id,
            data={"title": stored.title, "review_url": self.review_url(stored.id), "external": True}
        )
        return stored

    async def approve(self, artifact_id: str) -> Artifact:
        """
        Approve an artifact and close its conversation.

        Approving twice is a no-op; approving a rejected artifact raises.
        """
        artifact = self.artifacts.fetch(artifact_id)
        conversation = self.conversations.find(artifact.conversation_id)
        if conversation is None:
            if self.artifacts.approve(artifact_id):
                self._publish(EventType.ARTIFACT_APPROVED, owner_key=artifact.owner_key, artifact_id=artifact_id)
            return artifact

        async with self.conversations.owner_lock(conversation.owner_key):
            if not self.artifacts.approve(artifact_id):
                return artifact

            if self._is_current(conversation, artifact):
                self.conversations.mirror_result(conversation, artifact)
                self._move(conversation, Phase.COMPLETE)
            self._record_review(artifact.created_by, approved=True)
            self._publish(EventType.ARTIFACT_APPROVED, conversation=conversation, artifact_id=artifact_id)
            await self._send(conversation.owner_key, approval_message(), conversation)
        return artifact

    async def reject(self, artifact_id: str, feedback: str) -> Artifact:
        """
        Reject an artifact and reopen its conversation for more gathering.

        Collected fields are kept; the next complete generation produces a
        new artifact under a new id.

        Raises:
            ValueError: Empty feedback
        """
        if not feedback or not feedback.strip():
            raise ValueError("Feedback must not be empty")

        artifact = self.artifacts.fetch(artifact_id)
        conversation = self.conversations.find(artifact.conversation_id)
        if conversation is None:
            self.artifacts.reject(artifact_id, feedback)
            self._publish(
                EventType.ARTIFACT_REJECTED,
                owner_key=artifact.owner_key,
                artifact_id=artifact_id,
                data={"feedback": artifact.feedback}
            )
            return artifact

        async with self.conversations.owner_lock(conversation.owner_key):
            self.artifacts.reject(artifact_id, feedback)

            if self._is_current(conversation, artifact):
                self._move(conversation, Phase.GATHERING)
                self.conversations.mirror_result(conversation, artifact)
            self._record_review(artifact.created_by, approved=False)
            self._mark_task(conversation.id, artifact_id, TaskStatus.REJECTED)
            self._publish(
                EventType.ARTIFACT_REJECTED,
                conversation=conversation,
                artifact_id=artifact_id,
                data={"feedback": artifact.feedback}
            )

            reply = revision_message(artifact.feedback)
            if conversation.phase != Phase.COMPLETE:
                self.conversations.add_message(conversation, SpeakerRole.ASSISTANT, reply)
            await self._send(conversation.owner_key, reply, conversation)
        return artifact

    # === Lifecycle ===

    async def wait_settled(self) -> None:
        """Block until no dispatch or settlement is pending."""
        await self.scheduler.drain()

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
        await self.gateway.close()
        await self.notifier.close()
        await self.broadcaster.close()
        self.logger.info("Orchestration engine stopped")

    # === Capability calls (degrade instead of failing the step) ===

    async def _classify(self, text: str) -> IntentAnalysis:
        try:
            return await self.gateway.classify_intent(text)
        except Exception as e:
            self.logger.warning(f"Intent classification failed, treating as unknown: {e}")
            return IntentAnalysis(intent=IntentType.UNKNOWN, confidence=0.0)

    async def _extract(self, conversation: Conversation, text: str) -> Dict[str, str]:
        try:
            extracted = await self.gateway.extract_fields(
                text, dict(conversation.collected_fields), conversation.intent
            )
        except Exception as e:
            self.logger.warning(f"Field extraction failed, keeping fields unchanged: {e}")
            return {}
        return extracted if isinstance(extracted, dict) else {}

    async def _check(self, conversation: Conversation) -> CompletenessCheck:
        try:
            return await self.gateway.check_completeness(
                dict(conversation.collected_fields),
                list(conversation.messages),
                list(conversation.required_fields)
            )
        except Exception as e:
            self.logger.warning(f"Completeness check failed, using collected fields: {e}")
            return CompletenessCheck(complete=bool(conversation.collected_fields))

    async def _clarify(self, conversation: Conversation, check: CompletenessCheck) -> str:
        if conversation.intent == IntentType.UNKNOWN:
            return check.clarifying_questions[0] if check.clarifying_questions else UNKNOWN_QUESTION

        missing = check.missing_fields or conversation.missing_fields
        try:
            question = await self.gateway.generate_clarifying_question(list(conversation.messages), missing)
        except Exception as e:
            self.logger.warning(f"Clarifying question failed, using canned question: {e}")
            question = None

        if question and question.strip():
            return question.strip()
        if check.clarifying_questions:
            return check.clarifying_questions[0]
        return FALLBACK_QUESTION

    async def _generate(self, conversation: Conversation) -> GeneratedArtifact:
        fields = dict(conversation.collected_fields)
        previous = conversation.result
        if previous is not None and previous.status == ArtifactStatus.REJECTED and previous.feedback:
            fields["revisionFeedback"] = previous.feedback

        topic = conversation.topic
        try:
            return await self.gateway.generate_artifact(topic, fields, conversation.intent)
        except Exception as e:
            self.logger.warning(f"Generation failed for {conversation.id}, using template: {e}")
            label = "Research" if conversation.intent == IntentType.RESEARCH else "Newsletter"
            return GeneratedArtifact(
                title=f"{label}: {topic or 'Update'}"[:60],
                body=(
                    f"# {topic or 'Update'}\n\n"
                    "We weren't able to generate full content this time.\n\n"
                    f"Collected details:\n\n"
                    + "\n".join(f"- **{k}:** {v}" for k, v in conversation.collected_fields.items())
                )
            )

    # === Helpers ===

    def _move(self, conversation: Conversation, phase: Phase) -> None:
        self.conversations.set_phase(conversation, phase)
        self._publish(EventType.PHASE_CHANGED, conversation=conversation, phase=phase.value)

    def _is_current(self, conversation: Conversation, artifact: Artifact) -> bool:
        return (
            conversation.phase == Phase.REVIEW
            and conversation.result is not None
            and conversation.result.id == artifact.id
        )

    def _record_review(self, worker_id: str, approved: bool) -> None:
        try:
            self.directory.record_review(worker_id, approved)
        except WorkerNotFoundError:
            self.logger.debug(f"Review outcome for non-roster creator {worker_id} not recorded")

    def _mark_task(self, conversation_id: str, artifact_id: str, status: TaskStatus) -> None:
        for task in self.directory.list_tasks(conversation_id=conversation_id):
            if task.artifact_id == artifact_id:
                task.status = status

    async def _send(self, owner_key: str, text: str, conversation: Optional[Conversation] = None) -> bool:
        try:
            delivered = await self.notifier.notify(owner_key, text)
        except Exception as e:
            self.logger.error(f"Notification to {owner_key} failed: {e}")
            delivered = False

        self._publish(
            EventType.MESSAGE_SENT,
            owner_key=owner_key,
            conversation=conversation,
            data={"text": text, "delivered": delivered}
        )
        return delivered

    def _publish(
        self,
        event_type: EventType,
        conversation: Optional[Conversation] = None,
        owner_key: Optional[str] = None,
        **fields
    ) -> None:
        if conversation is not None:
            fields.setdefault("conversation_id", conversation.id)
            owner_key = owner_key or conversation.owner_key
        self.broadcaster.publish(OfficeEvent(type=event_type, owner_key=owner_key, **fields))

    def _worker_changed(self, worker: Worker) -> None:
        self._publish(
            EventType.WORKER_STATUS,
            worker_id=worker.id,
            data={
                "status": worker.status.value,
                "current_task": worker.current_task,
                "conversation_id": worker.current_conversation,
            }
        )

    def _result(self, conversation: Conversation, replies: List[str]) -> IngestResult:
        return IngestResult(
            conversation_id=conversation.id,
            owner_key=conversation.owner_key,
            phase=conversation.phase,
            intent=conversation.intent,
            replies=replies,
            assigned_to=conversation.assigned_to,
            artifact_id=conversation.result.id if conversation.result else None
        )
