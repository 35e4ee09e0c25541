"""
Task queue for Agent Foreman.

Owns the AgentTask set and its status machine:

    queued -> running -> done | failed
    running -> queued                  (recoverable failure, retries left)

plus verification, recall and staleness bookkeeping. This module never
awaits; callers persist and publish after each transition.
"""

import uuid
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

from ..models.core import (
    AgentTask, AgentTaskStats, TaskListDocument, TaskStatus, VerificationStatus
)
from ..utils.config import OrchestratorConfig
from ..utils.logging import LoggerMixin
from .contracts import append_retry_block, build_recall_brief, build_task_contract

DEFAULT_TITLE = "Task"


class FailureTransition(str, Enum):
    """What a failed attempt did to its task."""
    RETRY = "retry"
    FAILED = "failed"


def _elapsed_label(delta: timedelta) -> str:
    minutes = int(delta.total_seconds() // 60)
    if minutes < 60:
        return f"{minutes}m"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h{minutes:02d}m"


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:12]}"


class TaskQueue(LoggerMixin):
    """In-memory task set backed by a TaskListDocument."""

    def __init__(self, default_max_retries: int = 2):
        self.default_max_retries = default_max_retries
        self._document = TaskListDocument()

    @property
    def document(self) -> TaskListDocument:
        return self._document

    @property
    def tasks(self) -> List[AgentTask]:
        return self._document.tasks

    def load(self, document: TaskListDocument, keep: Optional[Dict[str, AgentTask]] = None) -> None:
        """
        Adopt a persisted task list.

        Args:
            document: Freshly loaded task list
            keep: In-memory tasks that must survive the reload (executing ones)
        """
        if keep:
            merged = [keep.get(task.id, task) for task in document.tasks]
            loaded_ids = {task.id for task in document.tasks}
            merged.extend(task for task_id, task in keep.items() if task_id not in loaded_ids)
            document.tasks = merged
        self._document = document

    # Queries

    def get_task(self, task_id: str) -> Optional[AgentTask]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def list_tasks(self) -> List[AgentTask]:
        """All tasks, newest first."""
        return sorted(self.tasks, key=lambda t: t.created_at, reverse=True)

    def list_tasks_for_agent(self, agent_id: str) -> List[AgentTask]:
        return [t for t in self.list_tasks() if t.to_agent_id == agent_id or t.from_agent_id == agent_id]

    def stats_for_agent(self, agent_id: str) -> AgentTaskStats:
        stats = AgentTaskStats()
        for task in self.tasks:
            if task.to_agent_id == agent_id:
                setattr(stats, task.status.value, getattr(stats, task.status.value) + 1)
        return stats

    def next_queued_for(self, agent_id: str) -> Optional[AgentTask]:
        """Oldest queued task addressed to the agent."""
        queued = [t for t in self.tasks if t.to_agent_id == agent_id and t.status == TaskStatus.QUEUED]
        if not queued:
            return None
        return min(queued, key=lambda t: t.created_at)

    def running_for(self, agent_id: str) -> Optional[AgentTask]:
        return next(
            (t for t in self.tasks if t.to_agent_id == agent_id and t.status == TaskStatus.RUNNING),
            None,
        )

    def agents_with_active_work(self) -> Set[str]:
        return {
            t.to_agent_id for t in self.tasks
            if t.status in (TaskStatus.QUEUED, TaskStatus.RUNNING)
        }

    def awaiting_verification(self) -> List[AgentTask]:
        return [
            t for t in self.tasks
            if t.status == TaskStatus.DONE
            and t.verification_status in (None, VerificationStatus.UNVERIFIED)
        ]

    # Creation

    def enqueue(
        self,
        *,
        from_agent_id: str,
        requested_to_agent_id: str,
        to_agent_id: str,
        title: str,
        content: str,
        max_retries: Optional[int] = None,
        routing_rationale: Optional[str] = None,
        routing_confidence: Optional[float] = None,
        task_brief: Optional[str] = None,
        recall_of_task_id: Optional[str] = None,
    ) -> AgentTask:
        """Render the contract and append a new queued task."""
        clean_title = title.strip() or DEFAULT_TITLE
        now = datetime.now()
        rerouted = to_agent_id != requested_to_agent_id
        task = AgentTask(
            id=new_task_id(),
            from_agent_id=from_agent_id,
            to_agent_id=to_agent_id,
            title=clean_title,
            content=build_task_contract(
                from_agent_id=from_agent_id,
                requested_to_agent_id=requested_to_agent_id,
                assigned_to_agent_id=to_agent_id,
                title=clean_title,
                content=content,
                routing_rationale=routing_rationale,
                routing_confidence=routing_confidence,
                task_brief=task_brief,
            ),
            status=TaskStatus.QUEUED,
            max_retries=self.default_max_retries if max_retries is None else max_retries,
            created_at=now,
            updated_at=now,
            recall_of_task_id=recall_of_task_id,
            requested_to_agent_id=requested_to_agent_id,
            routing_rationale=routing_rationale if rerouted else None,
            routing_confidence=routing_confidence if rerouted else None,
        )
        self.tasks.append(task)
        self.log_transition("task", task.id, task.status.value, to_agent_id=to_agent_id, rerouted=rerouted)
        return task

    # Execution transitions

    def mark_running(self, task: AgentTask, run_id: str) -> None:
        now = datetime.now()
        task.status = TaskStatus.RUNNING
        task.run_id = run_id
        task.started_at = now
        task.finished_at = None
        task.updated_at = now
        task.last_heartbeat_at = now
        task.stalled_at = None
        task.stale_reason = None
        self.log_transition("task", task.id, task.status.value, run_id=run_id)

    def mark_done(self, task: AgentTask, summary: str) -> None:
        now = datetime.now()
        task.status = TaskStatus.DONE
        task.result_summary = summary
        task.error = None
        task.finished_at = now
        task.updated_at = now
        task.stalled_at = None
        task.stale_reason = None
        task.verification_status = VerificationStatus.UNVERIFIED
        task.awaiting_verification_since = now
        task.last_verification_reminder_at = None
        self.log_transition("task", task.id, task.status.value)

    def apply_failure(self, task: AgentTask, error: str, recoverable: bool) -> FailureTransition:
        """
        Requeue a recoverable failure while retries remain, otherwise fail it.
        """
        now = datetime.now()
        task.updated_at = now
        task.stalled_at = None
        task.stale_reason = None

        if recoverable and task.retry_count < task.max_retries:
            task.retry_count += 1
            task.content = append_retry_block(task.content, task.retry_count, task.max_retries, error)
            task.status = TaskStatus.QUEUED
            task.started_at = None
            task.finished_at = None
            task.error = None
            self.log_transition(
                "task", task.id, task.status.value,
                retry=f"{task.retry_count}/{task.max_retries}", error=error,
            )
            return FailureTransition.RETRY

        task.status = TaskStatus.FAILED
        task.error = error
        task.finished_at = now
        self.log_transition("task", task.id, task.status.value, error=error, retry_count=task.retry_count)
        return FailureTransition.FAILED

    # Review workflow

    def verify(self, task: AgentTask, verifier_agent_id: str, status: VerificationStatus,
               notes: Optional[str]) -> Optional[AgentTask]:
        if task.status != TaskStatus.DONE or status == VerificationStatus.UNVERIFIED:
            return None
        now = datetime.now()
        task.verification_status = status
        task.verification_notes = (notes or "").strip() or None
        task.verified_by_agent_id = verifier_agent_id
        task.verified_at = now
        task.updated_at = now
        task.awaiting_verification_since = None
        task.last_verification_reminder_at = None
        task.stalled_at = None
        task.stale_reason = None
        self.log_transition("task", task.id, status.value, verifier=verifier_agent_id)
        return task

    def recall(self, source: AgentTask, from_agent_id: str, reason: str) -> Optional[AgentTask]:
        """Flag a finished task for changes and queue its linked follow-up."""
        if source.status not in (TaskStatus.DONE, TaskStatus.FAILED) or not reason.strip():
            return None

        now = datetime.now()
        source.verification_status = VerificationStatus.CHANGES_REQUESTED
        source.verification_notes = reason.strip()
        source.verified_by_agent_id = from_agent_id
        source.verified_at = now
        source.recall_count += 1
        source.updated_at = now
        source.awaiting_verification_since = None
        source.last_verification_reminder_at = None

        return self.enqueue(
            from_agent_id=from_agent_id,
            requested_to_agent_id=source.to_agent_id,
            to_agent_id=source.to_agent_id,
            title=f"Follow-up: {source.title}",
            content=build_recall_brief(source, reason),
            max_retries=source.max_retries,
            recall_of_task_id=source.id,
        )

    # Removal

    def remove_for_agent(self, agent_id: str) -> List[AgentTask]:
        removed = [t for t in self.tasks if t.from_agent_id == agent_id or t.to_agent_id == agent_id]
        if removed:
            removed_ids = {t.id for t in removed}
            self._document.tasks = [t for t in self.tasks if t.id not in removed_ids]
        return removed

    def remove_queued_for(self, agent_id: str) -> int:
        before = len(self.tasks)
        self._document.tasks = [
            t for t in self.tasks
            if not (t.to_agent_id == agent_id and t.status == TaskStatus.QUEUED)
        ]
        return before - len(self.tasks)

    # Maintenance

    def evaluate_staleness(
        self, now: datetime, config: OrchestratorConfig
    ) -> Tuple[List[AgentTask], List[AgentTask], List[AgentTask]]:
        """
        Stamp tasks stuck in queued/running past their threshold.

        Returns:
            (newly stalled tasks, tasks whose stale stamp was cleared,
            already stalled tasks whose reason text changed)
        """
        newly_stalled: List[AgentTask] = []
        recovered: List[AgentTask] = []
        refreshed: List[AgentTask] = []
        running_limit = timedelta(seconds=config.running_stall_seconds)
        queued_limit = timedelta(seconds=config.queued_stall_seconds)

        for task in self.tasks:
            reason = None
            if task.status == TaskStatus.RUNNING:
                elapsed = now - (task.started_at or task.updated_at)
                if elapsed > running_limit:
                    reason = f"running for {_elapsed_label(elapsed)} without finishing"
            elif task.status == TaskStatus.QUEUED:
                elapsed = now - task.created_at
                if elapsed > queued_limit:
                    reason = f"queued for {_elapsed_label(elapsed)} without being picked up"

            if reason:
                if task.stalled_at is None:
                    task.stalled_at = now
                    task.stale_reason = reason
                    newly_stalled.append(task)
                elif task.stale_reason != reason:
                    task.stale_reason = reason
                    refreshed.append(task)
            elif task.stalled_at is not None or task.stale_reason is not None:
                task.stalled_at = None
                task.stale_reason = None
                recovered.append(task)

        return newly_stalled, recovered, refreshed

    def due_verification_reminders(self, now: datetime, config: OrchestratorConfig) -> List[AgentTask]:
        """Stamp and return done tasks left unverified past the threshold."""
        pending_limit = timedelta(seconds=config.verification_pending_seconds)
        cooldown = timedelta(seconds=config.verification_reminder_cooldown_seconds)
        due: List[AgentTask] = []

        for task in self.awaiting_verification():
            since = task.awaiting_verification_since or task.finished_at or task.updated_at
            if now - since <= pending_limit:
                continue
            last = task.last_verification_reminder_at
            if last is not None and now - last < cooldown:
                continue
            task.last_verification_reminder_at = now
            due.append(task)

        return due
