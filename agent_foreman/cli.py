"""Command-line interface for inspecting and driving an Agent Foreman work directory."""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from pydantic import BaseModel

from .models.core import (
    AgentKind, CreateAgentInput, RecallTaskInput, SendTaskInput, VerificationStatus, VerifyTaskInput
)
from .models.errors import AgentForemanError
from .orchestration.orchestrator import AgentOrchestrator
from .utils.config import SystemConfig, load_config
from .utils.logging import configure_logging


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list, defaults to sys.argv

    Returns:
        Parsed arguments namespace
    """
    parser = argparse.ArgumentParser(
        prog="agent-foreman",
        description="Agent and task orchestration for Agent Foreman",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Show the orchestrator summary
  agent-foreman status

  # Register a worker and hand it a task
  agent-foreman create-agent "Backend Dev" --responsibility "Own the API"
  agent-foreman send --from Architect --to "Backend Dev" --title "Fix login" --content "..."

  # Review finished work
  agent-foreman verify task-0123456789ab --verifier Architect
  agent-foreman recall task-0123456789ab --from Architect --reason "tests still red"
        """
    )
    parser.add_argument("--work-dir", type=Path, help="Work directory holding .agents/ (default: config work_dir)")
    parser.add_argument("--config", type=Path, help="Path to a JSON configuration file")
    parser.add_argument("--log-level", help="Log level override (default: config log_level)")

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("status", help="Print the orchestrator summary and per-agent status")
    commands.add_parser("agents", help="List registered agents")

    tasks = commands.add_parser("tasks", help="List tasks, newest first")
    tasks.add_argument("--agent", help="Only tasks sent by or to this agent (name or id)")

    runs = commands.add_parser("runs", help="List run history, newest first")
    runs.add_argument("--limit", type=int, default=50)
    runs.add_argument("--active", action="store_true", help="Hide archived runs")

    create = commands.add_parser("create-agent", help="Register a new agent")
    create.add_argument("name")
    create.add_argument("--responsibility")
    create.add_argument("--prompt", dest="system_prompt")
    create.add_argument("--kind", choices=[k.value for k in AgentKind], default=AgentKind.CUSTOM.value)
    create.add_argument("--no-auto-poll", action="store_true")

    send = commands.add_parser("send", help="Queue a task for an agent")
    send.add_argument("--from", dest="from_agent", required=True)
    send.add_argument("--to", dest="to_agent", required=True)
    send.add_argument("--title", required=True)
    send.add_argument("--content", default="")
    send.add_argument("--max-retries", type=int)

    verify = commands.add_parser("verify", help="Record a review verdict on a done task")
    verify.add_argument("task_id")
    verify.add_argument("--verifier", required=True)
    verify.add_argument("--changes-requested", action="store_true")
    verify.add_argument("--notes")

    recall = commands.add_parser("recall", help="Reopen a finished task as a linked follow-up")
    recall.add_argument("task_id")
    recall.add_argument("--from", dest="from_agent", required=True)
    recall.add_argument("--reason", required=True)

    commands.add_parser("maintain", help="Run one maintenance pass")

    return parser.parse_args(argv)


def resolve_log_level(args: argparse.Namespace, config: SystemConfig) -> str:
    """An explicit --log-level wins; otherwise debug mode forces DEBUG."""
    if args.log_level:
        return args.log_level
    return "DEBUG" if config.debug else config.log_level


def _dump(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode='json')
    if isinstance(value, list):
        return [_dump(item) for item in value]
    return value


def emit(value: Any) -> None:
    print(json.dumps(_dump(value), indent=2, ensure_ascii=False))


async def run_command(args: argparse.Namespace, orchestrator: AgentOrchestrator) -> int:
    """Run one command against an initialized orchestrator.

    Returns:
        Exit code (0 for success, 1 for rejected input)
    """
    await orchestrator.init()

    if args.command == "status":
        emit({
            "summary": _dump(orchestrator.get_summary()),
            "agents": _dump(orchestrator.get_agent_statuses()),
        })
        return 0

    if args.command == "agents":
        emit(orchestrator.list_agents())
        return 0

    if args.command == "tasks":
        if args.agent:
            agent_id = orchestrator.resolve_agent_id(args.agent)
            if agent_id is None:
                print(f"Unknown agent: {args.agent}", file=sys.stderr)
                return 1
            emit(orchestrator.list_tasks_for_agent(agent_id))
        else:
            emit(orchestrator.list_tasks())
        return 0

    if args.command == "runs":
        emit(orchestrator.list_runs(include_archived=not args.active, limit=args.limit))
        return 0

    if args.command == "create-agent":
        agent = await orchestrator.create_agent(CreateAgentInput(
            name=args.name,
            responsibility=args.responsibility,
            system_prompt=args.system_prompt,
            kind=AgentKind(args.kind),
            auto_poll=False if args.no_auto_poll else None,
        ))
        emit(agent)
        return 0

    if args.command == "send":
        task = await orchestrator.send_task(SendTaskInput(
            from_agent_id=args.from_agent,
            to_agent_id=args.to_agent,
            title=args.title,
            content=args.content,
            max_retries=args.max_retries,
        ))
        emit(task)
        return 0

    if args.command == "verify":
        task = await orchestrator.verify_task(VerifyTaskInput(
            task_id=args.task_id,
            verifier_agent_id=args.verifier,
            status=VerificationStatus.CHANGES_REQUESTED if args.changes_requested else VerificationStatus.VERIFIED,
            notes=args.notes,
        ))
        if task is None:
            print(f"Task {args.task_id} cannot be verified", file=sys.stderr)
            return 1
        emit(task)
        return 0

    if args.command == "recall":
        task = await orchestrator.recall_task(RecallTaskInput(
            task_id=args.task_id,
            from_agent_id=args.from_agent,
            reason=args.reason,
        ))
        if task is None:
            print(f"Task {args.task_id} cannot be recalled", file=sys.stderr)
            return 1
        emit(task)
        return 0

    if args.command == "maintain":
        report = await orchestrator.run_maintenance()
        emit(report)
        return 0

    print(f"Unknown command: {args.command}", file=sys.stderr)
    return 1


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the CLI."""
    args = parse_arguments(argv)
    config = load_config(args.config)
    configure_logging(resolve_log_level(args, config), config.json_logging)

    orchestrator = AgentOrchestrator(config, work_dir=str(args.work_dir) if args.work_dir else None)
    try:
        exit_code = asyncio.run(run_command(args, orchestrator))
    except AgentForemanError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
