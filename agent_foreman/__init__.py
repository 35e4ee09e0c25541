"""
Agent Foreman - task orchestration for a team of autonomous agents.
"""

from .events.bus import AgentEvent, AgentEventType, EventBus
from .orchestration.orchestrator import AgentOrchestrator

__version__ = "0.1.0"

__all__ = [
    'AgentEvent',
    'AgentEventType',
    'AgentOrchestrator',
    'EventBus',
    '__version__',
]
