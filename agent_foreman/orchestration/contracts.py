"""
Rendering of the text envelopes agents receive as instructions.

The task contract is the only carrier of delegation semantics: the receiving
agent executes against this text, so every field it needs must be rendered
into it.
"""

from typing import List, Optional

from ..models.core import AgentTask

CONTRACT_OPEN = "[task-contract]"
CONTRACT_CLOSE = "[/task-contract]"

EXECUTION_POLICY = (
    "Work on this task directly with your own tools; do not re-delegate it.",
    "Ask another agent for help only when you are blocked, and name the blocker.",
    "Keep changes minimal and focused on the requested outcome.",
)

DEFINITION_OF_DONE = (
    "The requested change or answer is complete.",
    "Relevant build, test, lint and typecheck commands were run and pass.",
    "The final summary lists what changed and how it was verified.",
    "Anything left unfinished is reported explicitly as blocked or failed.",
)

RETRY_INSTRUCTIONS = (
    "The previous attempt failed. Diagnose the failure above, fix the root cause, "
    "and re-run the relevant checks before reporting done."
)

SUMMARY_EXCERPT_LIMIT = 1200


def _excerpt(text: Optional[str], limit: int = SUMMARY_EXCERPT_LIMIT) -> str:
    cleaned = (text or "").strip()
    if len(cleaned) <= limit:
        return cleaned
    return cleaned[:limit].rstrip() + " …"


def build_task_contract(
    *,
    from_agent_id: str,
    requested_to_agent_id: str,
    assigned_to_agent_id: str,
    title: str,
    content: str,
    routing_rationale: Optional[str] = None,
    routing_confidence: Optional[float] = None,
    task_brief: Optional[str] = None,
) -> str:
    """
    Render the contract envelope followed by the caller's raw content.

    A ``[routing]`` block is included only when the assigned target differs
    from the requested one.
    """
    lines: List[str] = [
        CONTRACT_OPEN,
        f"from: {from_agent_id}",
        f"requested-target: {requested_to_agent_id}",
        f"assigned-target: {assigned_to_agent_id}",
        f"title: {title}",
        "execution-policy:",
    ]
    lines.extend(f"- {rule}" for rule in EXECUTION_POLICY)
    lines.append("definition-of-done:")
    lines.extend(f"- {item}" for item in DEFINITION_OF_DONE)

    if assigned_to_agent_id != requested_to_agent_id:
        lines.append("[routing]")
        lines.append(f"rerouted-from: {requested_to_agent_id}")
        lines.append(f"rationale: {(routing_rationale or 'not provided').strip()}")
        if routing_confidence is not None:
            lines.append(f"confidence: {routing_confidence:.2f}")
        if task_brief and task_brief.strip():
            lines.append("task-brief:")
            lines.append(task_brief.strip())
        lines.append("[/routing]")

    lines.append(CONTRACT_CLOSE)
    body = content.strip()
    if body:
        lines.append("")
        lines.append(body)
    return "\n".join(lines)


def build_retry_block(attempt: int, max_retries: int, error: str) -> str:
    """Render the annotation appended to a task before it is requeued."""
    return "\n".join([
        f"[retry-attempt {attempt}/{max_retries}]",
        f"previous-error: {_excerpt(error)}",
        f"instructions: {RETRY_INSTRUCTIONS}",
        "[/retry-attempt]",
    ])


def append_retry_block(content: str, attempt: int, max_retries: int, error: str) -> str:
    return f"{content.rstrip()}\n\n{build_retry_block(attempt, max_retries, error)}"


def build_recall_brief(source: AgentTask, reason: str) -> str:
    """Context carried by a recall follow-up task."""
    lines = [
        f"[recall-of {source.id}]",
        f"original-title: {source.title}",
        f"previous-status: {source.status.value}",
        f"recall-number: {source.recall_count}",
    ]
    if source.result_summary:
        lines.append("previous-summary:")
        lines.append(_excerpt(source.result_summary))
    if source.error:
        lines.append(f"previous-error: {_excerpt(source.error)}")
    lines.append("follow-up-instructions:")
    lines.append(reason.strip())
    lines.append("[/recall]")
    return "\n".join(lines)
