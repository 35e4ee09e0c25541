"""
Run ledger for Agent Foreman.

One AgentRunRecord per execution attempt. Settled runs carry an
``archived_at`` deadline; a sweep archives them once it passes and the
retention cap evicts the oldest settled runs.
"""

import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Set

from ..models.core import (
    AgentProfile, AgentRunRecord, AgentTask, RunHistoryDocument, RunStatus, TaskStatus
)
from ..utils.logging import LoggerMixin

ORPHANED_RUN_ERROR = "orphaned: task no longer exists"

_BACKFILL_STATUS = {
    TaskStatus.RUNNING: RunStatus.RUNNING,
    TaskStatus.DONE: RunStatus.DONE,
    TaskStatus.FAILED: RunStatus.FAILED,
    # A queued task that already has a run was requeued after a failed attempt.
    TaskStatus.QUEUED: RunStatus.FAILED,
}


def new_run_id() -> str:
    return f"run-{uuid.uuid4().hex[:12]}"


class RunLedger(LoggerMixin):
    """In-memory run history backed by a RunHistoryDocument."""

    def __init__(self, archive_ttl_seconds: int = 3600, max_history: int = 500):
        self.archive_ttl = timedelta(seconds=archive_ttl_seconds)
        self.max_history = max_history
        self._document = RunHistoryDocument()

    @property
    def document(self) -> RunHistoryDocument:
        return self._document

    @property
    def runs(self) -> List[AgentRunRecord]:
        return self._document.runs

    def load(self, document: RunHistoryDocument, keep: Optional[Dict[str, AgentRunRecord]] = None) -> None:
        if keep:
            merged = [keep.get(run.run_id, run) for run in document.runs]
            loaded_ids = {run.run_id for run in document.runs}
            merged.extend(run for run_id, run in keep.items() if run_id not in loaded_ids)
            document.runs = merged
        self._document = document

    def get_run(self, run_id: Optional[str]) -> Optional[AgentRunRecord]:
        if not run_id:
            return None
        return next((r for r in self.runs if r.run_id == run_id), None)

    def list_runs(self, include_archived: bool = True, limit: Optional[int] = None) -> List[AgentRunRecord]:
        """Runs newest first."""
        runs = sorted(self.runs, key=lambda r: r.created_at, reverse=True)
        if not include_archived:
            runs = [r for r in runs if r.status != RunStatus.ARCHIVED]
        return runs[:limit] if limit is not None else runs

    def active_runs(self) -> List[AgentRunRecord]:
        return [r for r in self.runs if r.is_active]

    def archived_count(self) -> int:
        return sum(1 for r in self.runs if r.status == RunStatus.ARCHIVED)

    def attempts_for(self, task_id: str) -> int:
        return sum(1 for r in self.runs if r.task_id == task_id)

    def start_run(self, task: AgentTask, agent: AgentProfile) -> AgentRunRecord:
        now = datetime.now()
        run = AgentRunRecord(
            run_id=new_run_id(),
            task_id=task.id,
            agent_id=agent.id,
            from_agent_id=task.from_agent_id,
            status=RunStatus.RUNNING,
            label=task.title,
            attempt=self.attempts_for(task.id) + 1,
            created_at=now,
            updated_at=now,
            started_at=now,
        )
        self.runs.append(run)
        self.log_transition("run", run.run_id, run.status.value, task_id=task.id, attempt=run.attempt)
        return run

    def settle(self, run: AgentRunRecord, status: RunStatus, summary: Optional[str] = None,
               error: Optional[str] = None) -> AgentRunRecord:
        """Finish a run and stamp its archival deadline."""
        now = datetime.now()
        run.status = status
        run.finished_at = now
        run.updated_at = now
        if summary is not None:
            run.summary = summary
        if error is not None:
            run.error = error
        run.archived_at = now + self.archive_ttl
        self.log_transition("run", run.run_id, status.value, task_id=run.task_id)
        return run

    def mark_stalled(self, run: AgentRunRecord, reason: Optional[str] = None) -> bool:
        if run.status != RunStatus.RUNNING:
            return False
        run.status = RunStatus.STALLED
        run.updated_at = datetime.now()
        if reason:
            run.error = reason
        self.log_transition("run", run.run_id, run.status.value, task_id=run.task_id)
        return True

    def touch(self, run: AgentRunRecord, now: datetime) -> None:
        run.updated_at = now

    def archive_due(self, now: datetime) -> int:
        """Archive settled runs whose deadline has passed."""
        archived = 0
        for run in self.runs:
            if run.is_active or run.status == RunStatus.ARCHIVED:
                continue
            if run.archived_at is not None and run.archived_at <= now:
                run.status = RunStatus.ARCHIVED
                run.updated_at = now
                archived += 1
        return archived

    def trim(self) -> int:
        """Evict the oldest settled runs beyond the retention cap."""
        overflow = len(self.runs) - self.max_history
        if overflow <= 0:
            return 0
        evictable = sorted((r for r in self.runs if not r.is_active), key=lambda r: r.created_at)
        evicted = {r.run_id for r in evictable[:overflow]}
        self._document.runs = [r for r in self.runs if r.run_id not in evicted]
        return len(evicted)

    def discard(self, run_ids: Set[str]) -> None:
        """Drop runs that were never persisted."""
        self._document.runs = [r for r in self.runs if r.run_id not in run_ids]

    def remove_for_agent(self, agent_id: str) -> int:
        before = len(self.runs)
        self._document.runs = [r for r in self.runs if r.agent_id != agent_id and r.from_agent_id != agent_id]
        return before - len(self.runs)

    def reconcile(self, tasks: List[AgentTask]) -> Dict[str, int]:
        """
        Repair drift between run history and tasks after a restart.

        Active runs whose task is gone are failed as orphaned; tasks pointing
        at a missing run get a record synthesized from their own fields.
        """
        tasks_by_id = {t.id: t for t in tasks}
        orphaned = 0
        for run in self.runs:
            if run.is_active and run.task_id not in tasks_by_id:
                self.settle(run, RunStatus.FAILED, error=ORPHANED_RUN_ERROR)
                orphaned += 1

        backfilled = 0
        known = {r.run_id for r in self.runs}
        for task in tasks:
            if not task.run_id or task.run_id in known:
                continue
            status = _BACKFILL_STATUS[task.status]
            settled_at = task.finished_at or task.updated_at
            run = AgentRunRecord(
                run_id=task.run_id,
                task_id=task.id,
                agent_id=task.to_agent_id,
                from_agent_id=task.from_agent_id,
                status=status,
                label=task.title,
                attempt=task.retry_count + 1,
                created_at=task.started_at or task.created_at,
                updated_at=task.updated_at,
                started_at=task.started_at,
                finished_at=None if status == RunStatus.RUNNING else settled_at,
                summary=task.result_summary,
                error=task.error,
                archived_at=None if status == RunStatus.RUNNING else settled_at + self.archive_ttl,
            )
            self.runs.append(run)
            known.add(run.run_id)
            backfilled += 1

        if orphaned or backfilled:
            self.logger.warning("Reconciled run history", orphaned=orphaned, backfilled=backfilled)
        return {"orphaned": orphaned, "backfilled": backfilled}
