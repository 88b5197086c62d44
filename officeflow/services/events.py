"""Observer event fan-out to WebSocket clients.

Each connection gets its own bounded queue drained by a single pump task, so
an observer sees events in exactly the order they were published. An
observer that falls a full queue behind is disconnected; it can reconnect
and pick up the recent history.
"""

import asyncio
from collections import deque
from typing import Any, Deque, Dict, List

from fastapi import WebSocket

from ..models.event import OfficeEvent
from ..utils.logger import get_app_logger


# Queued in place of the backlog of a dropped observer
_DISCONNECT = object()

# "Try again later"
SLOW_OBSERVER_CLOSE_CODE = 1013


class EventBroadcaster:
    """Publishes UI state events and keeps a bounded recent history."""

    def __init__(self, history_size: int = 200, queue_size: int = 256):
        if queue_size < 1:
            raise ValueError(f"Observer queue size must be positive, got {queue_size}")
        self.history: Deque[Dict[str, Any]] = deque(maxlen=history_size)
        self.queue_size = queue_size
        self.connections: Dict[WebSocket, asyncio.Queue] = {}
        self.logger = get_app_logger("events")

    def publish(self, event: OfficeEvent) -> Dict[str, Any]:
        """Record an event and queue it for every connected observer."""
        payload = event.to_wire()
        self.history.append(payload)
        self.logger.debug(f"Event {payload['type']}: {payload}")

        for websocket in list(self.connections):
            self.send(websocket, payload)
        return payload

    def send(self, websocket: WebSocket, payload: Dict[str, Any]) -> bool:
        """
        Queue one frame for a single observer.

        Returns:
            False if the observer is gone or was dropped for falling behind
        """
        queue = self.connections.get(websocket)
        if queue is None:
            return False
        try:
            queue.put_nowait(payload)
        except asyncio.QueueFull:
            self._drop(websocket, queue)
            return False
        return True

    def recent(self, limit: int = 20) -> List[Dict[str, Any]]:
        if limit <= 0:
            return []
        return list(self.history)[-limit:]

    def register(self, websocket: WebSocket) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self.queue_size)
        self.connections[websocket] = queue
        self.logger.info(f"Observer connected. Total: {len(self.connections)}")
        return queue

    def unregister(self, websocket: WebSocket) -> None:
        if self.connections.pop(websocket, None) is not None:
            self.logger.info(f"Observer disconnected. Total: {len(self.connections)}")

    async def pump(self, websocket: WebSocket, queue: asyncio.Queue) -> None:
        """Forward queued events to one socket until it fails, is dropped or is cancelled."""
        try:
            while True:
                payload = await queue.get()
                if payload is _DISCONNECT:
                    await websocket.close(code=SLOW_OBSERVER_CLOSE_CODE)
                    return
                await websocket.send_json(payload)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.logger.error(f"Error sending to WebSocket: {e}")
            self.unregister(websocket)

    async def close(self) -> None:
        for ws in list(self.connections):
            try:
                await ws.close()
            except Exception as e:
                self.logger.debug(f"Error closing observer socket: {e}")
        self.connections.clear()

    def _drop(self, websocket: WebSocket, queue: asyncio.Queue) -> None:
        self.logger.warning(f"Observer fell {queue.maxsize} events behind; disconnecting it")
        self.unregister(websocket)
        while not queue.empty():
            queue.get_nowait()
        queue.put_nowait(_DISCONNECT)
