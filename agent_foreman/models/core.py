"""
Core Pydantic data models for Agent Foreman.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum


DOCUMENT_VERSION = 1


class AgentKind(str, Enum):
    """Role of a registered agent."""
    ARCHITECT = "architect"
    WORKER = "worker"
    REVIEWER = "reviewer"
    CONNECTOR = "connector"
    CUSTOM = "custom"


class TaskStatus(str, Enum):
    """Status of a delegated task."""
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class VerificationStatus(str, Enum):
    """Review outcome of a completed task."""
    UNVERIFIED = "unverified"
    VERIFIED = "verified"
    CHANGES_REQUESTED = "changes_requested"


class RunStatus(str, Enum):
    """Status of one execution attempt."""
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"
    STALLED = "stalled"
    ARCHIVED = "archived"


class AgentProfile(BaseModel):
    """A registered worker actor."""
    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    kind: AgentKind = AgentKind.CUSTOM
    responsibility: str = ""
    system_prompt: str = ""
    session_id: str = ""
    workspace_dir: str = ""
    agent_dir: str = ""
    enabled: bool = True
    auto_poll: bool = True
    removable: bool = True
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_heartbeat_at: Optional[datetime] = None


class AgentTask(BaseModel):
    """One unit of delegated work between two agents."""
    id: str = Field(..., min_length=1)
    from_agent_id: str
    to_agent_id: str
    title: str = Field(..., min_length=1)
    content: str = ""
    status: TaskStatus = TaskStatus.QUEUED
    retry_count: int = Field(default=0, ge=0)
    max_retries: int = Field(default=2, ge=0)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    result_summary: Optional[str] = None
    error: Optional[str] = None
    verification_status: Optional[VerificationStatus] = None
    verification_notes: Optional[str] = None
    verified_by_agent_id: Optional[str] = None
    verified_at: Optional[datetime] = None
    recall_of_task_id: Optional[str] = None
    recall_count: int = Field(default=0, ge=0)
    run_id: Optional[str] = None
    stalled_at: Optional[datetime] = None
    stale_reason: Optional[str] = None
    awaiting_verification_since: Optional[datetime] = None
    last_heartbeat_at: Optional[datetime] = None
    last_verification_reminder_at: Optional[datetime] = None
    requested_to_agent_id: Optional[str] = None
    routing_rationale: Optional[str] = None
    routing_confidence: Optional[float] = None


class AgentRunRecord(BaseModel):
    """One execution attempt of a task."""
    run_id: str = Field(..., min_length=1)
    task_id: str
    agent_id: str
    from_agent_id: str
    status: RunStatus = RunStatus.RUNNING
    label: str = ""
    attempt: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=datetime.now)
    updated_at: datetime = Field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    summary: Optional[str] = None
    error: Optional[str] = None
    archived_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status in (RunStatus.RUNNING, RunStatus.STALLED)


class AgentRegistryDocument(BaseModel):
    """Persisted agent registry."""
    version: int = DOCUMENT_VERSION
    active_agent_id: Optional[str] = None
    agents: List[AgentProfile] = Field(default_factory=list)


class TaskListDocument(BaseModel):
    """Persisted task list."""
    version: int = DOCUMENT_VERSION
    tasks: List[AgentTask] = Field(default_factory=list)


class RunHistoryDocument(BaseModel):
    """Persisted run history."""
    version: int = DOCUMENT_VERSION
    runs: List[AgentRunRecord] = Field(default_factory=list)


# Operation inputs

class CreateAgentInput(BaseModel):
    """Parameters for registering a new agent."""
    name: str = ""
    responsibility: Optional[str] = None
    system_prompt: Optional[str] = None
    kind: AgentKind = AgentKind.CUSTOM
    auto_poll: Optional[bool] = None


class AgentPatch(BaseModel):
    """Mutable fields of an agent profile."""
    name: Optional[str] = None
    responsibility: Optional[str] = None
    system_prompt: Optional[str] = None
    enabled: Optional[bool] = None
    auto_poll: Optional[bool] = None


class SendTaskInput(BaseModel):
    """Parameters for delegating a task."""
    from_agent_id: str
    to_agent_id: str
    title: str = ""
    content: str = ""
    max_retries: Optional[int] = Field(default=None, ge=0)


class VerifyTaskInput(BaseModel):
    """Review verdict on a completed task."""
    task_id: str
    verifier_agent_id: str
    status: VerificationStatus = VerificationStatus.VERIFIED
    notes: Optional[str] = None


class RecallTaskInput(BaseModel):
    """Request to reopen a finished task as a linked follow-up."""
    task_id: str
    from_agent_id: str
    reason: str = ""


# Injected collaborator contracts

class TaskRunResult(BaseModel):
    """What an executor reports for a finished attempt."""
    summary: str = ""


class RouteRequest(BaseModel):
    """Input handed to the delegation router."""
    from_agent_id: str
    requested_to_agent_id: str
    title: str
    content: str
    agents: List[AgentProfile] = Field(default_factory=list)


class RouteDecision(BaseModel):
    """Advisory reroute returned by the delegation router."""
    to_agent_id: str
    rationale: Optional[str] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    task_brief: Optional[str] = None


# Projections

class AgentTaskStats(BaseModel):
    """Per-agent task counts by status."""
    queued: int = 0
    running: int = 0
    done: int = 0
    failed: int = 0


class AgentStatusSnapshot(BaseModel):
    """Read-only status view of one agent."""
    agent_id: str
    name: str
    kind: AgentKind
    enabled: bool
    auto_poll: bool
    in_flight: bool
    current_task_id: Optional[str] = None
    stats: AgentTaskStats = Field(default_factory=AgentTaskStats)
    stalled: int = 0
    last_run_at: Optional[datetime] = None
    last_error: Optional[str] = None
    last_heartbeat_at: Optional[datetime] = None


class AgentOrchestratorSummary(BaseModel):
    """Derived counts over agents, tasks and runs."""
    active_agent_id: Optional[str] = None
    total_agents: int = 0
    enabled_agents: int = 0
    in_flight_agents: int = 0
    queued: int = 0
    running: int = 0
    done: int = 0
    failed: int = 0
    stalled: int = 0
    awaiting_verification: int = 0
    active_runs: int = 0
    archived_runs: int = 0
    polling: bool = False
    last_heartbeat_at: Optional[datetime] = None


class AbandonResult(BaseModel):
    """Outcome of force-clearing an agent's work."""
    agent_id: str
    queued_removed: int = 0
    running_count: int = 0
    reason: str = ""


class MaintenanceReport(BaseModel):
    """What one maintenance pass changed."""
    stalled: List[str] = Field(default_factory=list)
    recovered: List[str] = Field(default_factory=list)
    verification_reminders: List[str] = Field(default_factory=list)
    heartbeats: List[str] = Field(default_factory=list)
    archived_runs: int = 0
    trimmed_runs: int = 0

    @property
    def changed(self) -> bool:
        return bool(
            self.stalled or self.recovered or self.verification_reminders
            or self.heartbeats or self.archived_runs or self.trimmed_runs
        )

