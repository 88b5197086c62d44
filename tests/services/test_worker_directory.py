"""Tests for WorkerDirectory service."""

import asyncio

import pytest

from officeflow.models.conversation import IntentType
from officeflow.models.worker import TaskStatus, Worker, WorkerRole, WorkerStatus
from officeflow.services.errors import AssignmentConflictError, WorkerNotFoundError
from officeflow.services.worker_directory import (
    ORCHESTRATOR_ID,
    WorkerDirectory,
    default_roster,
    task_label,
)


@pytest.fixture
def directory():
    return WorkerDirectory()


@pytest.fixture
def writers():
    """Two copywriters and nobody else."""
    return WorkerDirectory(workers=[
        Worker(id="max", name="Max", role=WorkerRole.COPYWRITER),
        Worker(id="mia", name="Mia", role=WorkerRole.COPYWRITER),
    ])


class TestRoster:
    """SUT: default_roster"""

    def test_roles_present(self):
        roles = {w.role for w in default_roster()}
        assert {WorkerRole.ORCHESTRATOR, WorkerRole.COPYWRITER, WorkerRole.RESEARCHER} <= roles

    def test_all_idle(self):
        assert all(w.status == WorkerStatus.IDLE for w in default_roster())

    def test_role_for_intent(self, directory):
        assert directory.role_for_intent(IntentType.NEWSLETTER) == WorkerRole.COPYWRITER
        assert directory.role_for_intent(IntentType.RESEARCH) == WorkerRole.RESEARCHER
        assert directory.role_for_intent(IntentType.GREETING) is None

    def test_get_unknown(self, directory):
        with pytest.raises(WorkerNotFoundError):
            directory.get("ghost")


class TestTaskLabel:
    """SUT: task_label"""

    def test_short_text_unchanged(self):
        assert task_label("AI trends", 50) == "AI trends"

    def test_long_text_cut(self):
        assert task_label("x" * 60, 50) == "x" * 50 + "..."


class TestTryAcquire:
    """SUT: WorkerDirectory.try_acquire"""

    def test_claims_idle_worker(self, writers):
        worker = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "AI trends")
        assert worker.status == WorkerStatus.WORKING
        assert worker.current_conversation == "conv-1"
        assert worker.current_task == "AI trends"

    def test_single_assignment(self, writers):
        """A worker never holds two conversations at once."""
        first = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        second = writers.try_acquire(WorkerRole.COPYWRITER, "conv-2", "b")
        third = writers.try_acquire(WorkerRole.COPYWRITER, "conv-3", "c")
        assert first.id != second.id
        assert third is None

    def test_preferred_worker_only(self, writers):
        """With a preferred worker nobody else is considered."""
        writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a", preferred_id="max")
        assert writers.try_acquire(WorkerRole.COPYWRITER, "conv-2", "b", preferred_id="max") is None

    def test_offline_skipped(self, writers):
        writers.set_status("max", WorkerStatus.OFFLINE)
        worker = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        assert worker.id == "mia"

    def test_least_recently_assigned_first(self, writers):
        first = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.release(first.id)
        second = writers.try_acquire(WorkerRole.COPYWRITER, "conv-2", "b")
        assert second.id != first.id


class TestAcquire:
    """SUT: WorkerDirectory.acquire"""

    async def test_times_out(self, writers):
        writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.try_acquire(WorkerRole.COPYWRITER, "conv-2", "b")
        worker = await writers.acquire(WorkerRole.COPYWRITER, "conv-3", "c", timeout=0.05)
        assert worker is None

    async def test_waits_for_release(self, writers):
        busy = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.try_acquire(WorkerRole.COPYWRITER, "conv-2", "b")

        waiter = asyncio.create_task(writers.acquire(WorkerRole.COPYWRITER, "conv-3", "c", timeout=2.0))
        await asyncio.sleep(0.01)
        writers.release(busy.id, completed=True)
        worker = await waiter

        assert worker is not None
        assert worker.current_conversation == "conv-3"

    async def test_wakeup_held_until_done(self, writers):
        """The wake-up sent on release stays referenced until it has run."""
        busy = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.release(busy.id)

        wakeups = set(writers._pending_wakeups)
        assert len(wakeups) == 1
        await asyncio.gather(*wakeups)
        await asyncio.sleep(0)
        assert not writers._pending_wakeups

    def test_release_without_loop(self, writers):
        busy = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.release(busy.id)
        assert writers.get(busy.id).status == WorkerStatus.IDLE
        assert not writers._pending_wakeups

    async def test_contention_never_double_books(self, writers):
        """Concurrent claims for one pool hand each worker to one conversation."""
        results = await asyncio.gather(*[
            writers.acquire(WorkerRole.COPYWRITER, f"conv-{i}", "x", timeout=0.05)
            for i in range(5)
        ])
        claimed = [w.id for w in results if w is not None]
        assert len(claimed) == 2
        assert len(set(claimed)) == 2


class TestReleaseAndReview:
    """SUT: WorkerDirectory.release / record_review / set_status"""

    def test_release_counts_completion(self, writers):
        worker = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.release(worker.id, completed=True)
        assert worker.status == WorkerStatus.IDLE
        assert worker.current_conversation is None
        assert worker.completed_tasks == 1

    def test_release_without_completion(self, writers):
        worker = writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a")
        writers.release(worker.id)
        assert worker.completed_tasks == 0

    def test_record_review_running_average(self, writers):
        writers.record_review("max", approved=True)
        writers.record_review("max", approved=False)
        worker = writers.get("max")
        assert worker.reviewed_tasks == 2
        assert worker.approval_rate == 0.5

    def test_cannot_offline_busy_worker(self, writers):
        writers.try_acquire(WorkerRole.COPYWRITER, "conv-1", "a", preferred_id="max")
        with pytest.raises(AssignmentConflictError):
            writers.set_status("max", WorkerStatus.OFFLINE)

    def test_change_callback(self):
        seen = []
        directory = WorkerDirectory(on_change=lambda w: seen.append((w.id, w.status)))
        worker = directory.try_acquire(WorkerRole.RESEARCHER, "conv-1", "a")
        directory.release(worker.id)
        assert seen == [(worker.id, WorkerStatus.WORKING), (worker.id, WorkerStatus.IDLE)]


class TestOrchestratorPresence:
    """SUT: WorkerDirectory.orchestrator_busy / orchestrator_idle"""

    def test_busy_until_last_message_done(self, directory):
        directory.orchestrator_busy("first")
        directory.orchestrator_busy("second")
        directory.orchestrator_idle()
        assert directory.get(ORCHESTRATOR_ID).status == WorkerStatus.WORKING
        directory.orchestrator_idle()
        assert directory.get(ORCHESTRATOR_ID).status == WorkerStatus.IDLE

    def test_label(self, directory):
        directory.orchestrator_busy("Create a newsletter")
        assert directory.get(ORCHESTRATOR_ID).current_task == "Processing: Create a newsletter"


class TestTasks:
    """SUT: WorkerDirectory.open_task / close_task"""

    def test_lifecycle(self, directory):
        task = directory.open_task("copywriter", "conv-1", "AI trends", "tg-1")
        assert task.status == TaskStatus.IN_PROGRESS
        directory.close_task(task.id, TaskStatus.AWAITING_APPROVAL, "art-1")
        assert task.artifact_id == "art-1"
        assert task.completed_at is not None

    def test_closed_task_untouched(self, directory):
        task = directory.open_task("copywriter", "conv-1", "AI trends")
        directory.close_task(task.id, TaskStatus.CANCELLED)
        assert directory.close_task(task.id, TaskStatus.COMPLETED) is None
        assert task.status == TaskStatus.CANCELLED

    def test_list_filters(self, directory):
        directory.open_task("copywriter", "conv-1", "a")
        directory.open_task("researcher", "conv-2", "b")
        assert len(directory.list_tasks(worker_id="researcher")) == 1
        assert len(directory.list_tasks(conversation_id="conv-1")) == 1
