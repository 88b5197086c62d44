"""WebSocket API for live office events."""

import asyncio
import json

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ...utils.logger import get_app_logger
from . import deps

router = APIRouter(tags=["websocket"])
logger = get_app_logger("api")


@router.websocket("/ws/events")
async def events_endpoint(websocket: WebSocket):
    """
    Stream office events to an observer.

    Sends a ``connected`` frame, then recent history, then live events.
    Clients may send ``{"type": "ping"}`` and get ``{"type": "pong"}`` back.
    """
    await websocket.accept()
    engine = deps.engine
    if engine is None:
        await websocket.send_json({"type": "error", "content": "Orchestration engine not initialized"})
        await websocket.close()
        return

    broadcaster = engine.broadcaster
    await websocket.send_json({
        "type": "connected",
        "workers": [w.model_dump(mode="json") for w in engine.directory.list()]
    })
    await websocket.send_json({"type": "history", "events": broadcaster.recent()})

    queue = broadcaster.register(websocket)
    pump = asyncio.create_task(broadcaster.pump(websocket, queue))
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                reply = {"type": "error", "content": "Invalid JSON message"}
            else:
                if isinstance(message, dict) and message.get("type") == "ping":
                    reply = {"type": "pong"}
                else:
                    reply = {"type": "error", "content": f"Unknown message type: {message!r}"}

            if not broadcaster.send(websocket, reply):
                logger.info("Observer dropped; ending session")
                await pump
                break

    except WebSocketDisconnect:
        logger.info("Observer WebSocket disconnected")

    except Exception as e:
        logger.error(f"Observer WebSocket error: {e}")

    finally:
        pump.cancel()
        broadcaster.unregister(websocket)
