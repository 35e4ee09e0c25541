"""
Unit tests for the command-line interface.
"""

import json
import pytest

from agent_foreman.cli import main, parse_arguments, resolve_log_level
from agent_foreman.utils.config import SystemConfig


@pytest.fixture
def work_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def run_cli(capsys, work_dir, *argv):
    with pytest.raises(SystemExit) as exc_info:
        main(["--work-dir", str(work_dir), "--log-level", "WARNING", *argv])
    return exc_info.value.code, capsys.readouterr().out


class TestCli:
    """Test cases for the agent-foreman command line."""

    def test_parse_send(self):
        args = parse_arguments(["send", "--from", "Architect", "--to", "Dev", "--title", "Fix"])

        assert args.command == "send"
        assert args.from_agent == "Architect"
        assert args.content == ""
        assert args.max_retries is None

    def test_debug_forces_debug_log_level(self):
        args = parse_arguments(["status"])
        explicit = parse_arguments(["--log-level", "ERROR", "status"])

        assert resolve_log_level(args, SystemConfig(debug=True, log_level="WARNING")) == "DEBUG"
        assert resolve_log_level(args, SystemConfig(log_level="WARNING")) == "WARNING"
        assert resolve_log_level(explicit, SystemConfig(debug=True)) == "ERROR"

    def test_status(self, capsys, work_dir):
        code, out = run_cli(capsys, work_dir, "status")

        data = json.loads(out)
        assert code == 0
        assert data["summary"]["total_agents"] == 1
        assert data["agents"][0]["agent_id"] == "agent-architect"

    def test_create_send_and_list(self, capsys, work_dir):
        code, out = run_cli(capsys, work_dir, "create-agent", "Backend Dev", "--kind", "worker")
        assert code == 0
        assert json.loads(out)["id"] == "agent-backend-dev"

        code, out = run_cli(
            capsys, work_dir, "send", "--from", "Architect", "--to", "backend dev", "--title", "Fix login",
        )
        task = json.loads(out)
        assert code == 0
        assert task["to_agent_id"] == "agent-backend-dev"
        assert task["status"] == "queued"

        code, out = run_cli(capsys, work_dir, "tasks", "--agent", "Backend Dev")
        assert [t["id"] for t in json.loads(out)] == [task["id"]]

    def test_verify_unknown_task_fails(self, capsys, work_dir):
        code, _ = run_cli(capsys, work_dir, "verify", "task-missing", "--verifier", "Architect")

        assert code == 1

    def test_unknown_agent_filter_fails(self, capsys, work_dir):
        code, _ = run_cli(capsys, work_dir, "tasks", "--agent", "ghost")

        assert code == 1

    def test_maintain_and_runs(self, capsys, work_dir):
        code, out = run_cli(capsys, work_dir, "maintain")
        assert code == 0
        assert json.loads(out)["archived_runs"] == 0

        code, out = run_cli(capsys, work_dir, "runs")
        assert json.loads(out) == []
