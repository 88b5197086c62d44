"""Shared engine dependency for the v1 routers."""

from fastapi import HTTPException

from ...services.orchestrator import OrchestrationEngine

# Global engine instance (will be set by main.py)
engine: OrchestrationEngine = None


def get_engine() -> OrchestrationEngine:
    """Dependency to get the orchestration engine."""
    if engine is None:
        raise HTTPException(status_code=500, detail="Orchestration engine not initialized")
    return engine
