"""Worker directory - the worker pool and its assignment bookkeeping.

A worker is ``working`` for at most one conversation at a time. ``acquire``
checks and sets status in one step (no await in between), and waiters park
on a condition that ``release`` notifies.
"""

import asyncio
from datetime import datetime
from typing import Callable, Dict, List, Optional, Set

from ..models.conversation import IntentType
from ..models.worker import (
    Task,
    TaskStatus,
    TrustLevel,
    Worker,
    WorkerRole,
    WorkerStatus,
)
from ..utils.logger import get_app_logger
from .errors import AssignmentConflictError, WorkerNotFoundError


ORCHESTRATOR_ID = "orchestrator"

# Intent -> worker category
INTENT_ROLES: Dict[IntentType, WorkerRole] = {
    IntentType.NEWSLETTER: WorkerRole.COPYWRITER,
    IntentType.RESEARCH: WorkerRole.RESEARCHER,
}


def default_roster() -> List[Worker]:
    """The office's standing crew."""
    return [
        Worker(
            id=ORCHESTRATOR_ID, name="Alex", role=WorkerRole.ORCHESTRATOR,
            trust_level=TrustLevel.EXPERT, avatar="#9C27B0",
            completed_tasks=0, approval_rate=1.0, is_special=True
        ),
        Worker(
            id="developer-mark", name="Mark", role=WorkerRole.DEVELOPER,
            trust_level=TrustLevel.EXPERT, avatar="#E91E63",
            completed_tasks=127, approval_rate=0.98, reviewed_tasks=127, is_special=True
        ),
        Worker(
            id="copywriter-1", name="Max", role=WorkerRole.COPYWRITER,
            trust_level=TrustLevel.JUNIOR, avatar="#4CAF50",
            completed_tasks=12, approval_rate=0.85, reviewed_tasks=12
        ),
        Worker(
            id="accountant-1", name="Lisa", role=WorkerRole.ACCOUNTANT,
            trust_level=TrustLevel.SENIOR, avatar="#2196F3",
            completed_tasks=45, approval_rate=0.95, reviewed_tasks=45
        ),
        Worker(
            id="researcher-1", name="Sam", role=WorkerRole.RESEARCHER,
            trust_level=TrustLevel.APPRENTICE, avatar="#FF9800",
            completed_tasks=3, approval_rate=0.67, reviewed_tasks=3
        ),
    ]


def task_label(text: str, limit: int) -> str:
    """Short human-readable label: first `limit` chars, ellipsis when cut."""
    text = " ".join(text.split())
    return text if len(text) <= limit else f"{text[:limit]}..."


class WorkerDirectory:
    """Worker pool plus the audit trail of assignments."""

    def __init__(
        self,
        workers: Optional[List[Worker]] = None,
        on_change: Optional[Callable[[Worker], None]] = None
    ):
        self.workers: Dict[str, Worker] = {}
        self.tasks: Dict[str, Task] = {}
        self.on_change = on_change
        self.logger = get_app_logger("workers")
        self._available = asyncio.Condition()
        self._inflight = 0
        self._pending_wakeups: Set[asyncio.Task] = set()

        for worker in workers if workers is not None else default_roster():
            self.workers[worker.id] = worker

    # === Lookup ===

    def get(self, worker_id: str) -> Worker:
        worker = self.workers.get(worker_id)
        if worker is None:
            raise WorkerNotFoundError(f"Worker not found: {worker_id}")
        return worker

    def list(self, role: Optional[WorkerRole] = None) -> List[Worker]:
        return [w for w in self.workers.values() if role is None or w.role == role]

    def role_for_intent(self, intent: IntentType) -> Optional[WorkerRole]:
        return INTENT_ROLES.get(intent)

    def working_on(self, conversation_id: str) -> Optional[Worker]:
        for worker in self.workers.values():
            if worker.status == WorkerStatus.WORKING and worker.current_conversation == conversation_id:
                return worker
        return None

    # === Assignment ===

    def try_acquire(
        self,
        role: WorkerRole,
        conversation_id: str,
        label: str,
        preferred_id: Optional[str] = None
    ) -> Optional[Worker]:
        """
        Claim an idle worker in a single step.

        With ``preferred_id`` only that worker is considered; otherwise the
        least recently assigned idle worker of the role wins.

        Returns:
            The claimed worker, or None if every candidate is busy/offline
        """
        if preferred_id is not None:
            candidates = [self.get(preferred_id)]
        else:
            candidates = [w for w in self.workers.values() if w.role == role]

        idle = [w for w in candidates if w.status == WorkerStatus.IDLE]
        if not idle:
            return None

        idle.sort(key=lambda w: w.last_assigned_at or datetime.min)
        worker = idle[0]
        self._claim(worker, conversation_id, label)
        return worker

    async def acquire(
        self,
        role: WorkerRole,
        conversation_id: str,
        label: str,
        preferred_id: Optional[str] = None,
        timeout: float = 0.0
    ) -> Optional[Worker]:
        """
        Claim a worker, waiting up to ``timeout`` seconds for one to free up.

        Returns:
            The claimed worker, or None when the wait expires
        """
        worker = self.try_acquire(role, conversation_id, label, preferred_id)
        if worker is not None or timeout <= 0:
            return worker

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        async with self._available:
            while True:
                worker = self.try_acquire(role, conversation_id, label, preferred_id)
                if worker is not None:
                    return worker
                remaining = deadline - loop.time()
                if remaining <= 0:
                    return None
                try:
                    await asyncio.wait_for(self._available.wait(), timeout=remaining)
                except asyncio.TimeoutError:
                    pass

    def release(self, worker_id: str, completed: bool = False) -> Worker:
        """Return a worker to idle, optionally counting the finished task."""
        worker = self.get(worker_id)
        if worker.status != WorkerStatus.WORKING:
            self.logger.warning(f"Release of worker {worker_id} in status {worker.status.value}")
            return worker

        worker.status = WorkerStatus.IDLE
        worker.current_task = None
        worker.current_conversation = None
        if completed:
            worker.completed_tasks += 1
        self.logger.info(f"Worker {worker_id} idle (completed: {worker.completed_tasks})")
        self._changed(worker)
        self._wake_waiters()
        return worker

    def record_review(self, worker_id: str, approved: bool) -> Worker:
        """Fold one review outcome into the worker's approval ratio."""
        worker = self.get(worker_id)
        reviewed = worker.reviewed_tasks
        worker.approval_rate = round(
            (worker.approval_rate * reviewed + (1.0 if approved else 0.0)) / (reviewed + 1), 4
        )
        worker.reviewed_tasks = reviewed + 1
        self._changed(worker)
        return worker

    def set_status(self, worker_id: str, status: WorkerStatus) -> Worker:
        """Administrative status change (idle/offline)."""
        worker = self.get(worker_id)
        if worker.status == WorkerStatus.WORKING:
            raise AssignmentConflictError(
                f"Worker {worker_id} is working on {worker.current_conversation}"
            )
        if status not in (WorkerStatus.IDLE, WorkerStatus.OFFLINE):
            raise ValueError(f"Status '{status.value}' cannot be set manually")

        worker.status = status
        self.logger.info(f"Worker {worker_id} set to {status.value}")
        self._changed(worker)
        if status == WorkerStatus.IDLE:
            self._wake_waiters()
        return worker

    # === Orchestrator presence ===

    def orchestrator_busy(self, text: str) -> None:
        """Mark the reception desk as handling an inbound message."""
        self._inflight += 1
        orchestrator = self.workers.get(ORCHESTRATOR_ID)
        if orchestrator is None:
            return
        orchestrator.status = WorkerStatus.WORKING
        orchestrator.current_task = f"Processing: {task_label(text, 30)}"
        self._changed(orchestrator)

    def orchestrator_idle(self) -> None:
        self._inflight = max(0, self._inflight - 1)
        orchestrator = self.workers.get(ORCHESTRATOR_ID)
        if orchestrator is None or self._inflight:
            return
        orchestrator.status = WorkerStatus.IDLE
        orchestrator.current_task = None
        self._changed(orchestrator)

    # === Task records ===

    def open_task(
        self,
        worker_id: str,
        conversation_id: str,
        description: str,
        source_message_id: Optional[str] = None
    ) -> Task:
        task = Task(
            title=f"Process: {task_label(description, 30)}",
            description=description,
            assigned_to=worker_id,
            conversation_id=conversation_id,
            source_message_id=source_message_id
        )
        self.tasks[task.id] = task
        return task

    def close_task(self, task_id: str, status: TaskStatus, artifact_id: Optional[str] = None) -> Optional[Task]:
        """Move an open task to a final status; closed tasks are left untouched."""
        task = self.tasks.get(task_id)
        if task is None or task.status not in (TaskStatus.PENDING, TaskStatus.IN_PROGRESS):
            return None
        task.status = status
        task.completed_at = datetime.utcnow()
        if artifact_id:
            task.artifact_id = artifact_id
        return task

    def list_tasks(
        self,
        worker_id: Optional[str] = None,
        conversation_id: Optional[str] = None
    ) -> List[Task]:
        tasks = [
            t for t in self.tasks.values()
            if (worker_id is None or t.assigned_to == worker_id)
            and (conversation_id is None or t.conversation_id == conversation_id)
        ]
        tasks.sort(key=lambda t: t.created_at, reverse=True)
        return tasks

    # === Internal ===

    def _claim(self, worker: Worker, conversation_id: str, label: str) -> None:
        if worker.status != WorkerStatus.IDLE:
            raise AssignmentConflictError(f"Worker {worker.id} is {worker.status.value}")
        worker.status = WorkerStatus.WORKING
        worker.current_task = label
        worker.current_conversation = conversation_id
        worker.last_assigned_at = datetime.utcnow()
        self.logger.info(f"Worker {worker.id} assigned to conversation {conversation_id}")
        self._changed(worker)

    def _changed(self, worker: Worker) -> None:
        if self.on_change is not None:
            try:
                self.on_change(worker)
            except Exception as e:
                self.logger.error(f"Worker change callback failed: {e}")

    def _wake_waiters(self) -> None:
        async def _notify():
            async with self._available:
                self._available.notify_all()

        try:
            task = asyncio.get_running_loop().create_task(_notify())
        except RuntimeError:
            # No running loop: nobody can be waiting
            return
        self._pending_wakeups.add(task)
        task.add_done_callback(self._pending_wakeups.discard)
