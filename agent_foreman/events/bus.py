"""
In-process publish/subscribe bus for orchestrator lifecycle events.
"""

import asyncio
import inspect
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..models.core import AgentOrchestratorSummary, AgentRunRecord, AgentTask
from ..utils.logging import get_logger

logger = get_logger(__name__)

WILDCARD = "*"


class AgentEventType(str, Enum):
    """Kinds of notifications the orchestrator publishes."""
    TASK_QUEUED = "agents:task-queued"
    TASK_RUNNING = "agents:task-running"
    TASK_DONE = "agents:task-done"
    TASK_FAILED = "agents:task-failed"
    TASK_RETRY = "agents:task-retry"
    TASK_STALLED = "agents:task-stalled"
    TASK_REROUTED = "agents:task-rerouted"
    TASK_VERIFICATION_PENDING = "agents:task-verification-pending"
    TASK_VERIFIED = "agents:task-verified"
    TASK_RECALLED = "agents:task-recalled"
    RUN_STARTED = "agents:run-started"
    RUN_FINISHED = "agents:run-finished"
    JOBS_ABANDONED = "agents:jobs-abandoned"
    SUMMARY = "agents:summary"
    HEARTBEAT = "agents:heartbeat"
    UPDATED = "agents:updated"


class AgentEvent(BaseModel):
    """Notification published on the event bus."""
    type: AgentEventType
    agent_id: Optional[str] = None
    task: Optional[AgentTask] = None
    run: Optional[AgentRunRecord] = None
    summary: Optional[AgentOrchestratorSummary] = None
    payload: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=datetime.now)


EventHandler = Callable[[AgentEvent], Any]


class EventBus:
    """
    Typed fire-and-forget event bus.

    Subscribers are independent: one failing handler is logged and never
    prevents delivery to the others or breaks the publisher. Coroutine
    handlers are scheduled on the running loop.
    """

    def __init__(self):
        self.logger = get_logger(f"{__name__}.EventBus")
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._pending: set = set()

    def subscribe(self, event_type: Any, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for one event type, or for every event with "*".

        Returns:
            A callable that removes the subscription
        """
        key = event_type.value if isinstance(event_type, AgentEventType) else str(event_type)
        self._handlers.setdefault(key, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(key, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def emit(self, event: AgentEvent) -> None:
        """Deliver an event to its subscribers and to wildcard subscribers."""
        handlers = list(self._handlers.get(event.type.value, [])) + list(self._handlers.get(WILDCARD, []))
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event)
            except Exception as e:
                self.logger.error("Event handler failed", event_type=event.type.value, error=str(e))

    def publish(self, event_type: AgentEventType, **fields: Any) -> AgentEvent:
        """Build and emit an event in one call."""
        event = AgentEvent(type=event_type, **fields)
        self.emit(event)
        return event

    def _schedule(self, awaitable: Any, event: AgentEvent) -> None:
        async def _runner():
            try:
                await awaitable
            except Exception as e:
                self.logger.error("Async event handler failed", event_type=event.type.value, error=str(e))

        task = asyncio.ensure_future(_runner())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def subscriber_count(self, event_type: Optional[AgentEventType] = None) -> int:
        if event_type is None:
            return sum(len(handlers) for handlers in self._handlers.values())
        return len(self._handlers.get(event_type.value, []))
