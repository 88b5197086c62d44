"""API v1 package."""

from .messages import router as messages_router
from .conversations import router as conversations_router
from .artifacts import router as artifacts_router
from .workers import router as workers_router
from .events import router as events_router

__all__ = [
    "messages_router",
    "conversations_router",
    "artifacts_router",
    "workers_router",
    "events_router",
]
