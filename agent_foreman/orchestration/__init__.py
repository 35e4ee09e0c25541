"""
Agent Orchestration System for Agent Foreman.

This package provides:
- The agent registry with architect and connector protection
- The task queue with routing, retry, verification and recall
- The run ledger with archival and reconciliation
- The orchestrator facade with its dispatch and maintenance loops
"""

from .classification import OutcomeClass, classify_outcome
from .ledger import RunLedger
from .orchestrator import AgentOrchestrator, TaskExecutor
from .queue import TaskQueue
from .registry import AgentRegistry
from .routing import RouteOutcome, TaskRouter, resolve_route

__all__ = [
    # Orchestrator components
    'AgentOrchestrator',
    'TaskExecutor',

    # State owners
    'AgentRegistry',
    'TaskQueue',
    'RunLedger',

    # Routing and classification
    'TaskRouter',
    'RouteOutcome',
    'resolve_route',
    'OutcomeClass',
    'classify_outcome',
]
