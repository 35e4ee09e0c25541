"""
Best-effort delegation routing.

The router only advises: any exception, empty answer or unusable target falls
back to the agent the caller asked for.
"""

from typing import Any, Awaitable, Callable, List, Optional

from pydantic import BaseModel

from ..models.core import AgentProfile, RouteDecision, RouteRequest
from ..models.errors import RoutingError
from ..utils.logging import get_logger

logger = get_logger(__name__)

TaskRouter = Callable[[RouteRequest], Awaitable[Any]]


class RouteOutcome(BaseModel):
    """Target chosen for a new task."""
    requested_to_agent_id: str
    to_agent_id: str
    rationale: Optional[str] = None
    confidence: Optional[float] = None
    task_brief: Optional[str] = None

    @property
    def rerouted(self) -> bool:
        return self.to_agent_id != self.requested_to_agent_id


def _coerce_decision(raw: Any) -> Optional[RouteDecision]:
    if raw is None:
        return None
    if isinstance(raw, RouteDecision):
        return raw
    if isinstance(raw, dict):
        return RouteDecision.model_validate(raw)
    raise RoutingError(f"Router returned unsupported type {type(raw).__name__}")


async def resolve_route(
    router: Optional[TaskRouter],
    request: RouteRequest,
    roster: List[AgentProfile],
) -> RouteOutcome:
    """
    Ask the router for a target and validate its answer against the roster.

    Args:
        router: Injected router callback, or None
        request: Routing request for the new task
        roster: Enabled agents eligible to receive work

    Returns:
        RouteOutcome: Router's target when usable, otherwise the requested one
    """
    fallback = RouteOutcome(
        requested_to_agent_id=request.requested_to_agent_id,
        to_agent_id=request.requested_to_agent_id,
    )
    if router is None:
        return fallback

    try:
        decision = _coerce_decision(await router(request))
        if decision is None:
            return fallback

        target = decision.to_agent_id.strip().lower()
        match = next((a for a in roster if a.id.lower() == target or a.name.lower() == target), None)
        if match is None:
            raise RoutingError(f"Router chose unknown or disabled agent {decision.to_agent_id!r}")

        return RouteOutcome(
            requested_to_agent_id=request.requested_to_agent_id,
            to_agent_id=match.id,
            rationale=decision.rationale,
            confidence=decision.confidence,
            task_brief=decision.task_brief,
        )

    except Exception as e:
        logger.warning(
            "Routing failed, keeping requested target",
            requested=request.requested_to_agent_id,
            error=str(e),
        )
        return fallback
