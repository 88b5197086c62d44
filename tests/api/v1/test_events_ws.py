"""WebSocket observer tests."""

import pytest
from fastapi.testclient import TestClient

from officeflow.api.v1 import deps
from officeflow.main import app
from officeflow.models.event import EventType, OfficeEvent
from officeflow.services.artifact_ledger import ArtifactLedger
from officeflow.services.conversation_ledger import ConversationLedger
from officeflow.services.events import EventBroadcaster
from officeflow.services.notifier import BaseNotifier
from officeflow.services.orchestrator import OrchestrationEngine
from officeflow.services.worker_directory import WorkerDirectory
from officeflow.gateways.keyword import KeywordGateway


class SilentNotifier(BaseNotifier):
    async def notify(self, owner_key: str, text: str) -> bool:
        return True


@pytest.fixture
def ws_client():
    """Sync test client; the app lifespan is not started."""
    engine = OrchestrationEngine(
        conversations=ConversationLedger(),
        artifacts=ArtifactLedger(),
        directory=WorkerDirectory(),
        gateway=KeywordGateway(),
        notifier=SilentNotifier(),
        broadcaster=EventBroadcaster()
    )
    deps.engine = engine
    yield TestClient(app), engine
    deps.engine = None


class TestEventsSocket:
    """SUT: events_endpoint"""

    def test_connected_then_history(self, ws_client):
        client, engine = ws_client
        engine.broadcaster.publish(OfficeEvent(type=EventType.ARTIFACT_READY, artifact_id="a1"))

        with client.websocket_connect("/ws/events") as ws:
            connected = ws.receive_json()
            assert connected["type"] == "connected"
            assert len(connected["workers"]) == 5

            history = ws.receive_json()
            assert history["type"] == "history"
            assert history["events"][-1]["artifact_id"] == "a1"

    def test_ping_pong(self, ws_client):
        client, _ = ws_client
        with client.websocket_connect("/ws/events") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_text('{"type": "ping"}')
            assert ws.receive_json() == {"type": "pong"}

    def test_invalid_json(self, ws_client):
        client, _ = ws_client
        with client.websocket_connect("/ws/events") as ws:
            ws.receive_json()
            ws.receive_json()
            ws.send_text("not json")
            assert ws.receive_json()["type"] == "error"
