"""
Agent Orchestration System for Agent Foreman.

This module wires the agent registry, task queue and run ledger to the
document store and the event bus, and drives the two background loops:

- dispatch: reload, maintain, then launch the oldest queued task of every
  idle auto-poll agent concurrently
- maintenance: staleness stamping, verification reminders, heartbeats,
  run archival and retention
"""

import asyncio
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple, Union

from pydantic import BaseModel

from ..events.bus import AgentEventType, EventBus
from ..models.core import (
    AbandonResult, AgentKind, AgentOrchestratorSummary, AgentPatch, AgentProfile,
    AgentRunRecord, AgentStatusSnapshot, AgentTask, AgentTaskStats, CreateAgentInput,
    MaintenanceReport, RecallTaskInput, RouteRequest, RunStatus, SendTaskInput,
    TaskRunResult, TaskStatus, VerifyTaskInput
)
from ..models.errors import ValidationError
from ..persistence.document_store import DocumentStore
from ..utils.config import OrchestratorConfig, SystemConfig
from ..utils.logging import LoggerMixin
from .classification import OutcomeClass, classify_outcome
from .ledger import RunLedger
from .queue import FailureTransition, TaskQueue
from .registry import AgentRegistry
from .routing import TaskRouter, resolve_route
from .workspace import WorkspaceLayout, ensure_workspace, remove_workspace

STATE_DIR = ".agents"
DEFAULT_ABANDON_REASON = "jobs abandoned by operator"

TaskExecutor = Callable[[AgentProfile, AgentTask], Awaitable[Any]]
StartedRun = Tuple[AgentProfile, AgentTask, AgentRunRecord]


def _summary_from_result(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, TaskRunResult):
        return raw.summary
    if isinstance(raw, dict):
        return TaskRunResult.model_validate(raw).summary
    return str(raw)


def _restore(target: BaseModel, snapshot: BaseModel) -> None:
    for name in type(target).model_fields:
        setattr(target, name, getattr(snapshot, name))


class AgentOrchestrator(LoggerMixin):
    """
    Facade over agents, tasks and runs of one work directory.

    Executor, router and event bus are instance fields; nothing here is
    process-global.
    """

    def __init__(
        self,
        config: Optional[Union[SystemConfig, OrchestratorConfig]] = None,
        work_dir: Optional[str] = None,
        event_bus: Optional[EventBus] = None,
    ):
        if isinstance(config, SystemConfig):
            self.settings = config.orchestrator
            work_dir = work_dir or config.work_dir
        else:
            self.settings = config or OrchestratorConfig()

        self.work_dir = Path(work_dir or ".")
        self.store = DocumentStore(str(self.work_dir / STATE_DIR))
        self.events = event_bus or EventBus()
        self.registry = AgentRegistry(WorkspaceLayout(self.store.root_dir))
        self.queue = TaskQueue(default_max_retries=self.settings.default_max_retries)
        self.ledger = RunLedger(
            archive_ttl_seconds=self.settings.run_archive_ttl_seconds,
            max_history=self.settings.max_run_history,
        )

        self._executors: Dict[Optional[AgentKind], TaskExecutor] = {}
        self._router: Optional[TaskRouter] = None
        self._in_flight: Set[str] = set()
        self._executing_tasks: Dict[str, AgentTask] = {}
        self._executing_runs: Dict[str, AgentRunRecord] = {}
        self._loop_tasks: List[asyncio.Task] = []
        self._stop_event: Optional[asyncio.Event] = None
        self._last_heartbeat_at: Optional[datetime] = None
        self._initialized = False
        # Guards every reload and every mutate-then-persist section; never held across an executor await.
        self._state_lock = asyncio.Lock()

    # Lifecycle

    async def init(self) -> None:
        """Load persisted state, bootstrap the architect and reconcile runs."""
        await self.store.initialize()

        async with self._state_lock:
            agents_changed = self.registry.load(await self.store.load_agents())
            self.queue.load(await self.store.load_tasks())
            self.ledger.load(await self.store.load_runs())
            reconciled = self.ledger.reconcile(self.queue.tasks)

            for agent in self.registry.list_agents():
                await self._provision(agent)

            if agents_changed or not self.store.agents_path.exists():
                await self.store.save_agents(self.registry.document)
            if reconciled["orphaned"] or reconciled["backfilled"]:
                await self.store.save_runs(self.ledger.document)

        self._initialized = True
        self.logger.info(
            "Orchestrator initialized",
            work_dir=str(self.work_dir),
            agents=len(self.registry.document.agents),
            tasks=len(self.queue.tasks),
            runs=len(self.ledger.runs),
        )

    def start(self) -> None:
        """Launch the dispatch and maintenance loops on the running event loop."""
        if self._loop_tasks:
            return
        self._stop_event = asyncio.Event()
        self._loop_tasks = [
            asyncio.create_task(self._dispatch_loop()),
            asyncio.create_task(self._maintenance_loop()),
        ]
        self.logger.info(
            "Started orchestrator loops",
            poll_interval=self.settings.poll_interval_seconds,
            maintenance_interval=self.settings.maintenance_interval_seconds,
        )

    async def stop(self) -> None:
        """Signal both loops and wait for them; in-flight executions finish."""
        if not self._loop_tasks:
            return
        self._stop_event.set()
        await asyncio.gather(*self._loop_tasks, return_exceptions=True)
        self._loop_tasks = []
        self.logger.info("Stopped orchestrator loops")

    @property
    def polling(self) -> bool:
        return bool(self._loop_tasks)

    async def _wait_for_stop(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    async def _dispatch_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await self.poll()
            except Exception as e:
                self.log_operation_error("dispatch_pass", e)
            await self._wait_for_stop(self.settings.poll_interval_seconds)

    async def _maintenance_loop(self) -> None:
        while not self._stop_event.is_set():
            await self._wait_for_stop(self.settings.maintenance_interval_seconds)
            if self._stop_event.is_set():
                break
            try:
                await self.run_maintenance()
            except Exception as e:
                self.log_operation_error("maintenance_pass", e)

    # Collaborators

    def set_task_executor(self, executor: Optional[TaskExecutor], kind: Optional[AgentKind] = None) -> None:
        """
        Register the executor for one agent kind, or the default one.

        Passing None as executor removes the registration.
        """
        key = AgentKind(kind) if kind is not None else None
        if executor is None:
            self._executors.pop(key, None)
        else:
            self._executors[key] = executor

    def set_task_router(self, router: Optional[TaskRouter]) -> None:
        self._router = router

    def _executor_for(self, agent: AgentProfile) -> Optional[TaskExecutor]:
        return self._executors.get(agent.kind) or self._executors.get(None)

    # Agents

    def list_agents(self) -> List[AgentProfile]:
        return self.registry.list_agents()

    def get_agent(self, agent_id: str) -> Optional[AgentProfile]:
        return self.registry.get_agent(agent_id)

    def resolve_agent_id(self, name_or_id: str) -> Optional[str]:
        return self.registry.resolve_agent_id(name_or_id)

    def get_active_agent_id(self) -> Optional[str]:
        return self.registry.active_agent_id

    async def create_agent(self, data: CreateAgentInput) -> AgentProfile:
        async with self._state_lock:
            agent = self.registry.add_agent(data)
            await self.store.save_agents(self.registry.document)
            await self._provision(agent)
        self.log_transition("agent", agent.id, "created", kind=agent.kind.value)
        self._emit_updated()
        return agent

    async def ensure_connector_agent(self, connector_id: str, label: Optional[str] = None) -> Optional[AgentProfile]:
        async with self._state_lock:
            agent, changed = self.registry.upsert_connector(connector_id, label)
            if agent is None:
                return None
            if changed:
                await self.store.save_agents(self.registry.document)
                await self._provision(agent)
        if changed:
            self.log_transition("agent", agent.id, "connector_synced", connector=connector_id)
            self._emit_updated()
        return agent

    async def update_agent(self, agent_id: str, patch: AgentPatch) -> Optional[AgentProfile]:
        async with self._state_lock:
            agent = self.registry.get_agent(agent_id)
            if agent is None:
                return None
            self.registry.apply_patch(agent, patch)
            await self.store.save_agents(self.registry.document)
        self._emit_updated()
        return agent

    async def set_active_agent(self, agent_id: str) -> bool:
        async with self._state_lock:
            if not self.registry.set_active(agent_id):
                return False
            await self.store.save_agents(self.registry.document)
        self._emit_updated()
        return True

    async def delete_agent(self, agent_id: str) -> bool:
        """Remove a deletable agent together with its tasks, runs and workspace."""
        async with self._state_lock:
            agent = self.registry.remove(agent_id)
            if agent is None:
                return False

            removed_tasks = self.queue.remove_for_agent(agent_id)
            removed_runs = self.ledger.remove_for_agent(agent_id)
            for task in removed_tasks:
                self._executing_tasks.pop(task.id, None)
                if task.run_id:
                    self._executing_runs.pop(task.run_id, None)

            await self._persist(agents=True, tasks=True, runs=True)
        remove_workspace(self.registry.base_dir(agent_id))
        self.log_transition(
            "agent", agent_id, "deleted", tasks_removed=len(removed_tasks), runs_removed=removed_runs
        )
        self._emit_updated()
        return True

    async def _provision(self, agent: AgentProfile) -> None:
        try:
            await ensure_workspace(agent)
        except OSError as e:
            self.logger.warning("Could not provision agent workspace", agent_id=agent.id, error=str(e))

    # Tasks

    def list_tasks(self) -> List[AgentTask]:
        return self.queue.list_tasks()

    def list_tasks_for_agent(self, agent_id: str) -> List[AgentTask]:
        return self.queue.list_tasks_for_agent(agent_id)

    def get_task(self, task_id: str) -> Optional[AgentTask]:
        return self.queue.get_task(task_id)

    def get_task_stats_for_agent(self, agent_id: str) -> AgentTaskStats:
        return self.queue.stats_for_agent(agent_id)

    def list_runs(self, include_archived: bool = True, limit: Optional[int] = None) -> List[AgentRunRecord]:
        return self.ledger.list_runs(include_archived=include_archived, limit=limit)

    async def send_task(self, data: SendTaskInput) -> AgentTask:
        """
        Queue a task for an agent, letting the router reassign it.

        Unknown targets are kept verbatim; the task simply waits until an
        agent with that id exists.
        """
        requested = self.registry.resolve_agent_id(data.to_agent_id) or data.to_agent_id.strip()
        if not requested:
            raise ValidationError("Task target is required", field="to_agent_id")
        from_agent_id = self.registry.resolve_agent_id(data.from_agent_id) or data.from_agent_id.strip()

        roster = self.registry.enabled_agents()
        route = await resolve_route(
            self._router,
            RouteRequest(
                from_agent_id=from_agent_id,
                requested_to_agent_id=requested,
                title=data.title,
                content=data.content,
                agents=roster,
            ),
            roster,
        )

        async with self._state_lock:
            task = self.queue.enqueue(
                from_agent_id=from_agent_id,
                requested_to_agent_id=route.requested_to_agent_id,
                to_agent_id=route.to_agent_id,
                title=data.title,
                content=data.content,
                max_retries=data.max_retries,
                routing_rationale=route.rationale,
                routing_confidence=route.confidence,
                task_brief=route.task_brief,
            )
            await self.store.save_tasks(self.queue.document)

        self._publish(AgentEventType.TASK_QUEUED, agent_id=task.to_agent_id, task=task)
        if route.rerouted:
            self._publish(
                AgentEventType.TASK_REROUTED,
                agent_id=task.to_agent_id,
                task=task,
                payload={
                    "requested_to_agent_id": route.requested_to_agent_id,
                    "to_agent_id": route.to_agent_id,
                    "rationale": route.rationale,
                    "confidence": route.confidence,
                },
            )
        return task

    async def verify_task(self, data: VerifyTaskInput) -> Optional[AgentTask]:
        async with self._state_lock:
            task = self.queue.get_task(data.task_id)
            verifier = self.registry.resolve_agent_id(data.verifier_agent_id)
            if task is None or verifier is None:
                return None
            if self.queue.verify(task, verifier, data.status, data.notes) is None:
                return None
            await self.store.save_tasks(self.queue.document)

        self._publish(AgentEventType.TASK_VERIFIED, agent_id=task.to_agent_id, task=task)
        return task

    async def recall_task(self, data: RecallTaskInput) -> Optional[AgentTask]:
        """Reopen a finished task as a linked follow-up for the same agent."""
        async with self._state_lock:
            source = self.queue.get_task(data.task_id)
            requester = self.registry.resolve_agent_id(data.from_agent_id)
            if source is None or requester is None:
                return None
            if self.registry.get_agent(source.to_agent_id) is None:
                return None

            follow_up = self.queue.recall(source, requester, data.reason)
            if follow_up is None:
                return None
            await self.store.save_tasks(self.queue.document)

        self._publish(
            AgentEventType.TASK_RECALLED,
            agent_id=source.to_agent_id,
            task=source,
            payload={"follow_up_task_id": follow_up.id, "reason": data.reason.strip()},
        )
        self._publish(AgentEventType.TASK_QUEUED, agent_id=follow_up.to_agent_id, task=follow_up)
        return follow_up

    async def abandon_jobs_for_agent(self, agent_id: str, reason: Optional[str] = None) -> Optional[AbandonResult]:
        """
        Drop an agent's queued tasks and flag its running runs as stalled.

        Running executions are not cancelled.
        """
        async with self._state_lock:
            agent = self.registry.get_agent(agent_id)
            if agent is None:
                return None
            reason = (reason or "").strip() or DEFAULT_ABANDON_REASON

            removed = self.queue.remove_queued_for(agent_id)
            running = [t for t in self.queue.tasks if t.to_agent_id == agent_id and t.status == TaskStatus.RUNNING]
            for task in running:
                run = self.ledger.get_run(task.run_id)
                if run is not None:
                    self.ledger.mark_stalled(run, reason)
            if running:
                agent.last_error = reason
                agent.updated_at = datetime.now()

            await self._persist(agents=bool(running), tasks=bool(removed), runs=bool(running))

        result = AbandonResult(agent_id=agent_id, queued_removed=removed, running_count=len(running), reason=reason)
        self.logger.warning("Abandoned agent jobs", **result.model_dump())
        self._publish(AgentEventType.JOBS_ABANDONED, agent_id=agent_id, payload=result.model_dump())
        self._emit_updated()
        return result

    # Dispatch

    async def poll(self) -> int:
        """
        One dispatch pass.

        Returns:
            Number of tasks launched
        """
        async with self._state_lock:
            await self._reload()
            await self._maintain()

            claimed: List[Tuple[AgentProfile, AgentTask]] = []
            for agent in self.registry.enabled_agents():
                if not agent.auto_poll:
                    continue
                claim = self._claim(agent)
                if claim is not None:
                    claimed.append(claim)

            if not claimed:
                return 0
            started = await self._start_claimed(claimed)

        await self._run_started(started)
        return len(started)

    async def run_next_for_agent(self, agent_id: str) -> bool:
        """Run the agent's oldest queued task, ignoring its auto-poll flag."""
        async with self._state_lock:
            agent = self.registry.get_agent(agent_id)
            if agent is None or not agent.enabled:
                return False
            claim = self._claim(agent)
            if claim is None:
                return False
            started = await self._start_claimed([claim])

        await self._run_started(started)
        return True

    def _claim(self, agent: AgentProfile) -> Optional[Tuple[AgentProfile, AgentTask]]:
        # Must stay free of awaits: the in-flight set is the per-agent lock.
        if agent.id in self._in_flight or self._executor_for(agent) is None:
            return None
        task = self.queue.next_queued_for(agent.id)
        if task is None:
            return None
        self._in_flight.add(agent.id)
        return agent, task

    async def _start_claimed(self, claimed: List[Tuple[AgentProfile, AgentTask]]) -> List[StartedRun]:
        """Open a run per claim and persist; a failed write restores every claim."""
        started: List[StartedRun] = []
        snapshots = [(agent, agent.model_copy(), task, task.model_copy()) for agent, task in claimed]
        try:
            now = datetime.now()
            for agent, task in claimed:
                run = self.ledger.start_run(task, agent)
                self.queue.mark_running(task, run.run_id)
                agent.last_run_at = now
                agent.last_heartbeat_at = now
                self._executing_tasks[task.id] = task
                self._executing_runs[run.run_id] = run
                started.append((agent, task, run))
            await self._persist(agents=True, tasks=True, runs=True)
        except Exception:
            for agent, task, run in started:
                self._release(agent, task, run)
            self.ledger.discard({run.run_id for _, _, run in started})
            for agent, agent_before, task, task_before in snapshots:
                _restore(agent, agent_before)
                _restore(task, task_before)
                self._in_flight.discard(agent.id)
            try:
                await self._persist(agents=True, tasks=True, runs=True)
            except Exception as e:
                self.log_operation_error("restore_claims", e)
            raise

        for agent, task, run in started:
            self._publish(AgentEventType.TASK_RUNNING, agent_id=agent.id, task=task)
            self._publish(AgentEventType.RUN_STARTED, agent_id=agent.id, run=run)
        return started

    async def _run_started(self, started: List[StartedRun]) -> None:
        results = await asyncio.gather(
            *(self._run_task(agent, task, run) for agent, task, run in started),
            return_exceptions=True,
        )
        for (agent, task, _), result in zip(started, results):
            if isinstance(result, Exception):
                self.log_operation_error("run_task", result, agent_id=agent.id, task_id=task.id)

    async def _run_task(self, agent: AgentProfile, task: AgentTask, run: AgentRunRecord) -> None:
        try:
            executor = self._executor_for(agent)
            try:
                summary = _summary_from_result(await executor(agent, task))
            except Exception as e:
                text = str(e) or type(e).__name__
                succeeded = False
                recoverable = classify_outcome(error=text).recoverable
            else:
                assessment = classify_outcome(summary=summary)
                text = summary
                succeeded = assessment.outcome == OutcomeClass.PASSED
                recoverable = True
                if not succeeded:
                    self.logger.warning(
                        "Completed task reports failure, retrying",
                        task_id=task.id,
                        matched=assessment.matched,
                    )

            async with self._state_lock:
                if succeeded:
                    self._settle_success(agent, task, run, text)
                else:
                    self._settle_failure(agent, task, run, text, recoverable)
                await self._persist(agents=True, tasks=True, runs=True)
        finally:
            self._release(agent, task, run)
            self._in_flight.discard(agent.id)

        self._publish(AgentEventType.RUN_FINISHED, agent_id=agent.id, run=run)

    def _settle_success(self, agent: AgentProfile, task: AgentTask, run: AgentRunRecord, summary: str) -> None:
        self.queue.mark_done(task, summary)
        self.ledger.settle(run, RunStatus.DONE, summary=summary)
        agent.last_error = None
        agent.updated_at = datetime.now()
        self._publish(AgentEventType.TASK_DONE, agent_id=agent.id, task=task)

    def _settle_failure(self, agent: AgentProfile, task: AgentTask, run: AgentRunRecord,
                        error: str, recoverable: bool) -> None:
        transition = self.queue.apply_failure(task, error, recoverable)
        self.ledger.settle(run, RunStatus.FAILED, error=error)
        agent.last_error = error
        agent.updated_at = datetime.now()
        if transition == FailureTransition.RETRY:
            self._publish(
                AgentEventType.TASK_RETRY,
                agent_id=agent.id,
                task=task,
                payload={"attempt": task.retry_count, "max_retries": task.max_retries, "error": error},
            )
        else:
            self._publish(AgentEventType.TASK_FAILED, agent_id=agent.id, task=task, payload={"error": error})

    def _release(self, agent: AgentProfile, task: AgentTask, run: AgentRunRecord) -> None:
        self._executing_tasks.pop(task.id, None)
        self._executing_runs.pop(run.run_id, None)

    async def _reload(self) -> None:
        """Re-read tasks and runs, keeping the objects of executing tasks.

        Caller holds the state lock.
        """
        self.queue.load(await self.store.load_tasks(), keep=dict(self._executing_tasks))
        self.ledger.load(await self.store.load_runs(), keep=dict(self._executing_runs))

    # Maintenance

    async def run_maintenance(self) -> MaintenanceReport:
        """Stamp stale work, send reminders and heartbeats, archive and trim runs."""
        async with self._state_lock:
            return await self._maintain()

    async def _maintain(self) -> MaintenanceReport:
        now = datetime.now()
        report = MaintenanceReport()

        stalled, recovered, refreshed = self.queue.evaluate_staleness(now, self.settings)
        runs_changed = False
        for task in stalled:
            if task.status == TaskStatus.RUNNING:
                run = self.ledger.get_run(task.run_id)
                if run is not None and self.ledger.mark_stalled(run, task.stale_reason):
                    runs_changed = True
        report.stalled = [t.id for t in stalled]
        report.recovered = [t.id for t in recovered]

        reminders = self.queue.due_verification_reminders(now, self.settings)
        report.verification_reminders = [t.id for t in reminders]

        report.heartbeats = self._refresh_heartbeats(now)
        report.archived_runs = self.ledger.archive_due(now)
        report.trimmed_runs = self.ledger.trim()

        tasks_changed = bool(stalled or recovered or refreshed or reminders or report.heartbeats)
        runs_changed = runs_changed or bool(report.heartbeats or report.archived_runs or report.trimmed_runs)
        await self._persist(agents=bool(report.heartbeats), tasks=tasks_changed, runs=runs_changed)

        for task in stalled:
            self.logger.warning("Task stalled", task_id=task.id, reason=task.stale_reason)
            self._publish(
                AgentEventType.TASK_STALLED,
                agent_id=task.to_agent_id,
                task=task,
                payload={"reason": task.stale_reason},
            )
        for task in reminders:
            self._publish(AgentEventType.TASK_VERIFICATION_PENDING, agent_id=task.from_agent_id, task=task)
        if report.heartbeats:
            self._publish(AgentEventType.HEARTBEAT, payload={"agent_ids": report.heartbeats})

        if report.changed:
            self.logger.info("Maintenance pass", **report.model_dump())
        self._publish(AgentEventType.SUMMARY, summary=self.get_summary())
        return report

    def _refresh_heartbeats(self, now: datetime) -> List[str]:
        interval = timedelta(seconds=self.settings.heartbeat_interval_seconds)
        refreshed: List[str] = []
        for agent_id in sorted(self.queue.agents_with_active_work() | self._in_flight):
            agent = self.registry.get_agent(agent_id)
            if agent is None:
                continue
            if agent.last_heartbeat_at is not None and now - agent.last_heartbeat_at < interval:
                continue
            agent.last_heartbeat_at = now
            running = self.queue.running_for(agent_id)
            if running is not None:
                running.last_heartbeat_at = now
                run = self.ledger.get_run(running.run_id)
                if run is not None and run.is_active:
                    self.ledger.touch(run, now)
            refreshed.append(agent_id)
        if refreshed:
            self._last_heartbeat_at = now
        return refreshed

    # Projections

    def get_summary(self) -> AgentOrchestratorSummary:
        agents = self.registry.document.agents
        summary = AgentOrchestratorSummary(
            active_agent_id=self.registry.active_agent_id,
            total_agents=len(agents),
            enabled_agents=sum(1 for a in agents if a.enabled),
            in_flight_agents=len(self._in_flight),
            stalled=sum(1 for t in self.queue.tasks if t.stalled_at is not None),
            awaiting_verification=len(self.queue.awaiting_verification()),
            active_runs=len(self.ledger.active_runs()),
            archived_runs=self.ledger.archived_count(),
            polling=self.polling,
            last_heartbeat_at=self._last_heartbeat_at,
        )
        for task in self.queue.tasks:
            setattr(summary, task.status.value, getattr(summary, task.status.value) + 1)
        return summary

    def get_agent_statuses(self) -> List[AgentStatusSnapshot]:
        snapshots = []
        for agent in self.registry.list_agents():
            running = self.queue.running_for(agent.id)
            snapshots.append(AgentStatusSnapshot(
                agent_id=agent.id,
                name=agent.name,
                kind=agent.kind,
                enabled=agent.enabled,
                auto_poll=agent.auto_poll,
                in_flight=agent.id in self._in_flight,
                current_task_id=running.id if running else None,
                stats=self.queue.stats_for_agent(agent.id),
                stalled=sum(1 for t in self.queue.tasks if t.to_agent_id == agent.id and t.stalled_at is not None),
                last_run_at=agent.last_run_at,
                last_error=agent.last_error,
                last_heartbeat_at=agent.last_heartbeat_at,
            ))
        return snapshots

    # Plumbing

    async def _persist(self, agents: bool = False, tasks: bool = False, runs: bool = False) -> None:
        if agents:
            await self.store.save_agents(self.registry.document)
        if tasks:
            await self.store.save_tasks(self.queue.document)
        if runs:
            await self.store.save_runs(self.ledger.document)

    def _publish(self, event_type: AgentEventType, task: Optional[AgentTask] = None,
                 run: Optional[AgentRunRecord] = None, **fields: Any) -> None:
        self.events.publish(
            event_type,
            task=task.model_copy() if task is not None else None,
            run=run.model_copy() if run is not None else None,
            **fields,
        )

    def _emit_updated(self) -> None:
        self._publish(
            AgentEventType.UPDATED,
            summary=self.get_summary(),
            payload={"agents": [s.model_dump(mode='json') for s in self.get_agent_statuses()]},
        )
