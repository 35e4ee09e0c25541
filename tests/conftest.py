"""
Pytest configuration and fixtures for Agent Foreman tests.
"""

import pytest
import pytest_asyncio
from datetime import datetime
from typing import List

from agent_foreman.events.bus import AgentEvent, EventBus
from agent_foreman.models.core import AgentKind, AgentTask, CreateAgentInput, TaskStatus
from agent_foreman.orchestration.orchestrator import AgentOrchestrator
from agent_foreman.utils.config import OrchestratorConfig


@pytest.fixture
def orchestrator_config() -> OrchestratorConfig:
    """Short intervals so loop tests finish quickly."""
    return OrchestratorConfig(
        poll_interval_seconds=0.05,
        maintenance_interval_seconds=0.05,
    )


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorded_events(event_bus: EventBus) -> List[AgentEvent]:
    """Every event published on the bus, in order."""
    events: List[AgentEvent] = []
    event_bus.subscribe("*", events.append)
    return events


@pytest_asyncio.fixture
async def orchestrator(tmp_path, orchestrator_config, event_bus) -> AgentOrchestrator:
    """Initialized orchestrator over a temporary work directory."""
    instance = AgentOrchestrator(orchestrator_config, work_dir=str(tmp_path), event_bus=event_bus)
    await instance.init()
    yield instance
    await instance.stop()


@pytest_asyncio.fixture
async def worker(orchestrator: AgentOrchestrator):
    """A registered auto-poll worker agent."""
    return await orchestrator.create_agent(CreateAgentInput(
        name="Backend Dev",
        responsibility="Own the API service.",
        kind=AgentKind.WORKER,
    ))


def make_task(**overrides) -> AgentTask:
    """Build a task without going through the queue."""
    now = datetime.now()
    data = dict(
        id="task-000000000001",
        from_agent_id="agent-architect",
        to_agent_id="agent-worker",
        title="Fix X",
        content="do it",
        status=TaskStatus.QUEUED,
        created_at=now,
        updated_at=now,
    )
    data.update(overrides)
    return AgentTask(**data)


@pytest.fixture
def task_factory():
    return make_task
