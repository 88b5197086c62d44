"""Worker directory API routes - V1"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from ...models.worker import (
    TaskListResponse,
    UpdateWorkerStatusRequest,
    Worker,
    WorkerListResponse,
    WorkerResponse,
    WorkerRole,
)
from ...services.errors import AssignmentConflictError, WorkerNotFoundError
from ...services.orchestrator import OrchestrationEngine
from .deps import get_engine

router = APIRouter(prefix="/api/v1", tags=["workers-v1"])


def _to_response(worker: Worker) -> WorkerResponse:
    return WorkerResponse(
        id=worker.id,
        name=worker.name,
        role=worker.role,
        trust_level=worker.trust_level,
        avatar=worker.avatar,
        status=worker.status,
        current_task=worker.current_task,
        current_conversation=worker.current_conversation,
        completed_tasks=worker.completed_tasks,
        approval_rate=worker.approval_rate
    )


# === Worker Endpoints ===

@router.get("/workers", response_model=WorkerListResponse)
async def list_workers(
    role: Optional[WorkerRole] = None,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    List all workers.

    Args:
        role: Only workers with this role
    """
    workers = engine.directory.list(role)
    return WorkerListResponse(workers=[_to_response(w) for w in workers], total=len(workers))


@router.get("/workers/{worker_id}", response_model=WorkerResponse)
async def get_worker(
    worker_id: str,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Get worker details.

    Raises:
        HTTPException: If worker not found
    """
    try:
        return _to_response(engine.directory.get(worker_id))
    except WorkerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.patch("/workers/{worker_id}", response_model=WorkerResponse)
async def update_worker_status(
    worker_id: str,
    request: UpdateWorkerStatusRequest,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """
    Take a worker offline or bring it back.

    Raises:
        HTTPException: 404 if not found, 409 while the worker is busy
    """
    try:
        worker = engine.directory.set_status(worker_id, request.status)
    except WorkerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except AssignmentConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(worker)


# === Task Endpoints ===

@router.get("/tasks", response_model=TaskListResponse)
async def list_tasks(
    worker_id: Optional[str] = None,
    conversation_id: Optional[str] = None,
    engine: OrchestrationEngine = Depends(get_engine)
):
    """List assignment records, newest first."""
    tasks = engine.directory.list_tasks(worker_id=worker_id, conversation_id=conversation_id)
    return TaskListResponse(tasks=tasks, total=len(tasks))
