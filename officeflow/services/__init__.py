"""Services package."""

from .artifact_ledger import ArtifactLedger
from .conversation_ledger import ConversationLedger
from .events import EventBroadcaster
from .notifier import BaseNotifier, TelegramNotifier
from .orchestrator import OrchestrationEngine
from .settlement import SettlementScheduler
from .worker_directory import WorkerDirectory

__all__ = [
    "ArtifactLedger",
    "ConversationLedger",
    "EventBroadcaster",
    "BaseNotifier",
    "TelegramNotifier",
    "OrchestrationEngine",
    "SettlementScheduler",
    "WorkerDirectory",
]
