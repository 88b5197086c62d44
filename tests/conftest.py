"""Shared fixtures: an engine wired with in-process collaborators."""

from typing import List, Tuple

import pytest

from officeflow.gateways.keyword import KeywordGateway
from officeflow.models.conversation import InboundMessage, MessageKind
from officeflow.services.artifact_ledger import ArtifactLedger
from officeflow.services.conversation_ledger import ConversationLedger
from officeflow.services.events import EventBroadcaster
from officeflow.services.notifier import BaseNotifier
from officeflow.services.orchestrator import OrchestrationEngine
from officeflow.services.settlement import SettlementScheduler
from officeflow.services.worker_directory import WorkerDirectory


REVIEW_BASE_URL = "http://review.test/review"


class RecordingNotifier(BaseNotifier):
    """Keeps every outbound message instead of sending it."""

    def __init__(self):
        self.sent: List[Tuple[str, str]] = []

    async def notify(self, owner_key: str, text: str) -> bool:
        self.sent.append((owner_key, text))
        return True

    def texts(self, owner_key: str) -> List[str]:
        return [text for owner, text in self.sent if owner == owner_key]


@pytest.fixture
def message():
    """Factory for inbound text messages."""
    def _make(owner_key: str, text: str, kind: MessageKind = MessageKind.TEXT) -> InboundMessage:
        return InboundMessage(
            owner_key=owner_key,
            text=text,
            sender_display_name="Tester",
            message_kind=kind
        )
    return _make


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
async def engine_factory(notifier):
    """Build engines with an instant settlement window; shut them all down afterwards."""
    engines: List[OrchestrationEngine] = []

    def _build(gateway=None, assignment_wait_seconds: float = 0.2, directory=None) -> OrchestrationEngine:
        eng = OrchestrationEngine(
            conversations=ConversationLedger(),
            artifacts=ArtifactLedger(),
            directory=directory or WorkerDirectory(),
            gateway=gateway or KeywordGateway(),
            notifier=notifier,
            broadcaster=EventBroadcaster(history_size=500),
            scheduler=SettlementScheduler(0, 0),
            assignment_wait_seconds=assignment_wait_seconds,
            review_base_url=REVIEW_BASE_URL
        )
        engines.append(eng)
        return eng

    yield _build

    for eng in engines:
        await eng.shutdown()


@pytest.fixture
async def engine(engine_factory):
    return engine_factory()
