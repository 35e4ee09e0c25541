"""
Per-agent workspace layout and bootstrap files.
"""

import shutil
from pathlib import Path
from typing import Dict

import aiofiles

from ..models.core import AgentProfile
from ..utils.logging import get_logger

logger = get_logger(__name__)

WORKSPACE_FILES = (
    "AGENTS.md",
    "SOUL.md",
    "TOOLS.md",
    "IDENTITY.md",
    "USER.md",
    "HEARTBEAT.md",
)
BOOTSTRAP_FILE = "BOOTSTRAP.md"


class WorkspaceLayout:
    """Resolves where an agent's files live under ``<work_dir>/.agents``."""

    def __init__(self, agents_root: Path):
        self.agents_root = agents_root

    def base_dir(self, agent_id: str) -> Path:
        return self.agents_root / agent_id

    def workspace_dir(self, agent_id: str) -> Path:
        return self.base_dir(agent_id) / "workspace"

    def agent_dir(self, agent_id: str) -> Path:
        return self.base_dir(agent_id) / "agent"


def render_workspace_file(file_name: str, agent: AgentProfile) -> str:
    if file_name == "AGENTS.md":
        return "\n".join([
            "# AGENTS.md",
            "",
            f"Agent ID: {agent.id}",
            f"Agent Name: {agent.name}",
            f"Kind: {agent.kind.value}",
            "",
            "## Mission",
            agent.responsibility,
            "",
            "## Operating Rules",
            "- Keep changes minimal and verifiable.",
            "- Delegate to other agents only when blocked.",
            "- Record key decisions in TOOLS.md when helpful.",
            "",
            "## Prompt",
            agent.system_prompt,
            "",
        ])
    if file_name == "SOUL.md":
        return "\n".join(["# SOUL.md", "", f"You are {agent.name}.", "Work deliberately and communicate clearly.", ""])
    if file_name == "TOOLS.md":
        return "\n".join(["# TOOLS.md", "", "- Add local tool notes here.", "- Add conventions for this agent here.", ""])
    if file_name == "IDENTITY.md":
        return "\n".join(["# IDENTITY.md", "", f"- Name: {agent.name}", f"- Role: {agent.kind.value}", ""])
    if file_name == "USER.md":
        return "\n".join(["# USER.md", "", "- Name:", "- Preferred address:", "- Notes:", ""])
    if file_name == "HEARTBEAT.md":
        return "\n".join(["# HEARTBEAT.md", "", "- [ ] Check delegated queue.", "- [ ] Report blockers to the architect.", ""])
    return "\n".join(["# BOOTSTRAP.md", "", f"Welcome {agent.name}.", "This workspace was created automatically.", ""])


async def ensure_workspace(agent: AgentProfile) -> Dict[str, bool]:
    """
    Create the agent's directories and any missing bootstrap files.

    Existing files are never overwritten. BOOTSTRAP.md is written only into a
    brand-new workspace.

    Returns:
        Mapping of file name to whether it was created by this call
    """
    workspace = Path(agent.workspace_dir)
    workspace.mkdir(parents=True, exist_ok=True)
    Path(agent.agent_dir).mkdir(parents=True, exist_ok=True)

    brand_new = not any((workspace / name).exists() for name in WORKSPACE_FILES)
    names = WORKSPACE_FILES + ((BOOTSTRAP_FILE,) if brand_new else ())

    created: Dict[str, bool] = {}
    for name in names:
        path = workspace / name
        if path.exists():
            created[name] = False
            continue
        async with aiofiles.open(path, 'w', encoding='utf-8') as f:
            await f.write(render_workspace_file(name, agent))
        created[name] = True

    if brand_new:
        logger.info("Provisioned agent workspace", agent_id=agent.id, path=str(workspace))
    return created


def remove_workspace(base_dir: Path) -> None:
    """Delete an agent's directory tree, logging instead of raising."""
    try:
        shutil.rmtree(base_dir)
    except FileNotFoundError:
        return
    except OSError as e:
        logger.warning("Could not remove agent workspace", path=str(base_dir), error=str(e))
