"""
Unit tests for TaskQueue.
"""

import pytest
from datetime import datetime, timedelta

from agent_foreman.models.core import TaskListDocument, TaskStatus, VerificationStatus
from agent_foreman.orchestration.queue import FailureTransition, TaskQueue
from agent_foreman.utils.config import OrchestratorConfig


@pytest.fixture
def queue():
    return TaskQueue(default_max_retries=2)


def _enqueue(queue, to_agent_id="agent-worker", title="Fix X", **overrides):
    data = dict(
        from_agent_id="agent-architect",
        requested_to_agent_id=to_agent_id,
        to_agent_id=to_agent_id,
        title=title,
        content="details",
    )
    data.update(overrides)
    return queue.enqueue(**data)


class TestEnqueue:
    """Test cases for task creation."""

    def test_new_task_is_queued(self, queue):
        task = _enqueue(queue)

        assert task.status == TaskStatus.QUEUED
        assert task.id.startswith("task-")
        assert task.retry_count == 0
        assert task.max_retries == 2
        assert task.content.startswith("[task-contract]")
        assert task.routing_rationale is None
        assert queue.get_task(task.id) is task

    def test_blank_title_gets_default(self, queue):
        assert _enqueue(queue, title="   ").title == "Task"

    def test_explicit_max_retries(self, queue):
        assert _enqueue(queue, max_retries=0).max_retries == 0

    def test_routing_fields_only_when_rerouted(self, queue):
        task = _enqueue(
            queue,
            requested_to_agent_id="agent-a",
            to_agent_id="agent-b",
            routing_rationale="better fit",
            routing_confidence=0.9,
        )

        assert task.requested_to_agent_id == "agent-a"
        assert task.routing_rationale == "better fit"
        assert task.routing_confidence == 0.9


class TestQueries:
    """Test cases for ordering and lookups."""

    def test_list_is_newest_first(self, queue):
        first = _enqueue(queue, title="first")
        second = _enqueue(queue, title="second")
        first.created_at = datetime.now() - timedelta(minutes=5)

        assert [t.id for t in queue.list_tasks()] == [second.id, first.id]

    def test_next_queued_is_fifo(self, queue):
        newer = _enqueue(queue, title="newer")
        older = _enqueue(queue, title="older")
        older.created_at = newer.created_at - timedelta(seconds=10)

        assert queue.next_queued_for("agent-worker") is older
        assert queue.next_queued_for("agent-nobody") is None

    def test_stats_and_agent_listing(self, queue):
        _enqueue(queue)
        done = _enqueue(queue)
        queue.mark_running(done, "run-1")
        queue.mark_done(done, "ok")
        _enqueue(queue, to_agent_id="agent-other")

        stats = queue.stats_for_agent("agent-worker")
        assert (stats.queued, stats.running, stats.done, stats.failed) == (1, 0, 1, 0)
        assert len(queue.list_tasks_for_agent("agent-architect")) == 3
        assert queue.agents_with_active_work() == {"agent-worker", "agent-other"}


class TestExecutionTransitions:
    """Test cases for running, done and failure transitions."""

    def test_mark_running_and_done(self, queue):
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")

        assert task.status == TaskStatus.RUNNING
        assert task.run_id == "run-1"
        assert task.started_at is not None
        assert queue.running_for("agent-worker") is task

        queue.mark_done(task, "Implemented it")

        assert task.status == TaskStatus.DONE
        assert task.result_summary == "Implemented it"
        assert task.verification_status == VerificationStatus.UNVERIFIED
        assert task.awaiting_verification_since is not None
        assert queue.awaiting_verification() == [task]

    def test_recoverable_failure_requeues(self, queue):
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")

        transition = queue.apply_failure(task, "build failed: exit code 1", recoverable=True)

        assert transition == FailureTransition.RETRY
        assert task.status == TaskStatus.QUEUED
        assert task.retry_count == 1
        assert task.started_at is None
        assert task.error is None
        assert "[retry-attempt 1/2]" in task.content
        assert "previous-error: build failed: exit code 1" in task.content

    def test_retries_are_bounded(self, queue):
        task = _enqueue(queue)
        transitions = []
        for _ in range(3):
            queue.mark_running(task, "run")
            transitions.append(queue.apply_failure(task, "tests failed", recoverable=True))

        assert transitions == [FailureTransition.RETRY, FailureTransition.RETRY, FailureTransition.FAILED]
        assert task.status == TaskStatus.FAILED
        assert task.retry_count == 2
        assert task.error == "tests failed"
        assert task.content.count("[retry-attempt") == 2

    def test_permanent_failure_fails_immediately(self, queue):
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")

        assert queue.apply_failure(task, "permission denied", recoverable=False) == FailureTransition.FAILED
        assert task.retry_count == 0
        assert task.finished_at is not None


class TestReviewWorkflow:
    """Test cases for verify and recall."""

    def _done(self, queue):
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")
        queue.mark_done(task, "Added endpoint")
        return task

    def test_verify_done_task(self, queue):
        task = self._done(queue)

        result = queue.verify(task, "agent-architect", VerificationStatus.VERIFIED, "  looks good ")

        assert result is task
        assert task.verification_status == VerificationStatus.VERIFIED
        assert task.verification_notes == "looks good"
        assert task.verified_by_agent_id == "agent-architect"
        assert task.awaiting_verification_since is None
        assert queue.awaiting_verification() == []

    def test_verify_rejects_unfinished_or_unverified(self, queue):
        queued = _enqueue(queue)
        done = self._done(queue)

        assert queue.verify(queued, "agent-architect", VerificationStatus.VERIFIED, None) is None
        assert queue.verify(done, "agent-architect", VerificationStatus.UNVERIFIED, None) is None

    def test_recall_creates_linked_follow_up(self, queue):
        source = self._done(queue)

        follow_up = queue.recall(source, "agent-architect", "Missing validation")

        assert source.verification_status == VerificationStatus.CHANGES_REQUESTED
        assert source.verification_notes == "Missing validation"
        assert source.recall_count == 1
        assert follow_up.recall_of_task_id == source.id
        assert follow_up.to_agent_id == source.to_agent_id
        assert follow_up.status == TaskStatus.QUEUED
        assert follow_up.title == "Follow-up: Fix X"
        assert f"[recall-of {source.id}]" in follow_up.content
        assert "Added endpoint" in follow_up.content

    def test_recall_requires_finished_task_and_reason(self, queue):
        queued = _enqueue(queue)
        done = self._done(queue)

        assert queue.recall(queued, "agent-architect", "why") is None
        assert queue.recall(done, "agent-architect", "   ") is None
        assert done.recall_count == 0


class TestRemoval:
    """Test cases for cascading removal."""

    def test_remove_for_agent(self, queue):
        _enqueue(queue)
        _enqueue(queue, from_agent_id="agent-worker", to_agent_id="agent-other")
        keep = _enqueue(queue, to_agent_id="agent-other")

        removed = queue.remove_for_agent("agent-worker")

        assert len(removed) == 2
        assert queue.tasks == [keep]

    def test_remove_queued_keeps_running(self, queue):
        running = _enqueue(queue)
        queue.mark_running(running, "run-1")
        _enqueue(queue)
        _enqueue(queue)

        assert queue.remove_queued_for("agent-worker") == 2
        assert queue.tasks == [running]


class TestMaintenance:
    """Test cases for staleness and reminders."""

    def test_queued_task_goes_stale(self, queue):
        config = OrchestratorConfig(queued_stall_seconds=60)
        task = _enqueue(queue)
        task.created_at = datetime.now() - timedelta(minutes=5)

        stalled, recovered, refreshed = queue.evaluate_staleness(datetime.now(), config)

        assert stalled == [task]
        assert recovered == []
        assert refreshed == []
        assert task.stalled_at is not None
        assert "queued for 5m" in task.stale_reason

    def test_running_task_goes_stale_once(self, queue):
        config = OrchestratorConfig(running_stall_seconds=60)
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")
        task.started_at = datetime.now() - timedelta(hours=2)

        stalled, _, _ = queue.evaluate_staleness(datetime.now(), config)
        again, _, _ = queue.evaluate_staleness(datetime.now(), config)

        assert stalled == [task]
        assert again == []
        assert task.stale_reason.startswith("running for 2h")

    def test_growing_stale_reason_is_reported(self, queue):
        config = OrchestratorConfig(queued_stall_seconds=60)
        task = _enqueue(queue)
        task.created_at = datetime.now() - timedelta(minutes=5)
        queue.evaluate_staleness(datetime.now(), config)
        stalled_at = task.stalled_at

        task.created_at = datetime.now() - timedelta(minutes=7)
        stalled, _, refreshed = queue.evaluate_staleness(datetime.now(), config)

        assert stalled == []
        assert refreshed == [task]
        assert task.stalled_at == stalled_at
        assert "queued for 7m" in task.stale_reason

    def test_stamp_clears_when_condition_ends(self, queue):
        config = OrchestratorConfig(queued_stall_seconds=60)
        task = _enqueue(queue)
        task.stalled_at = datetime.now()
        task.stale_reason = "queued for 2m without being picked up"

        stalled, recovered, _ = queue.evaluate_staleness(datetime.now(), config)

        assert stalled == []
        assert recovered == [task]
        assert task.stalled_at is None
        assert task.stale_reason is None

    def test_verification_reminder_cooldown(self, queue):
        config = OrchestratorConfig(verification_pending_seconds=60, verification_reminder_cooldown_seconds=600)
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")
        queue.mark_done(task, "ok")
        task.awaiting_verification_since = datetime.now() - timedelta(minutes=10)
        now = datetime.now()

        assert queue.due_verification_reminders(now, config) == [task]
        assert task.last_verification_reminder_at == now
        assert queue.due_verification_reminders(now + timedelta(minutes=5), config) == []
        assert queue.due_verification_reminders(now + timedelta(minutes=11), config) == [task]

    def test_no_reminder_before_threshold(self, queue):
        config = OrchestratorConfig(verification_pending_seconds=3600)
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")
        queue.mark_done(task, "ok")

        assert queue.due_verification_reminders(datetime.now(), config) == []


class TestLoad:
    """Test cases for adopting persisted documents."""

    def test_keep_preserves_executing_objects(self, queue):
        task = _enqueue(queue)
        queue.mark_running(task, "run-1")
        persisted = TaskListDocument.model_validate(queue.document.model_dump(mode='json'))

        queue.load(persisted, keep={task.id: task})

        assert queue.tasks[0] is task

    def test_keep_readds_missing_tasks(self, queue):
        task = _enqueue(queue)

        queue.load(TaskListDocument(), keep={task.id: task})

        assert queue.tasks == [task]
