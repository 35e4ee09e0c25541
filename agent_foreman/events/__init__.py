"""
Lifecycle events published by the orchestrator.
"""

from .bus import AgentEvent, AgentEventType, EventBus

__all__ = ['AgentEvent', 'AgentEventType', 'EventBus']
