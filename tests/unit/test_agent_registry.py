"""
Unit tests for AgentRegistry and workspace scaffolding.
"""

import pytest
from pathlib import Path

from agent_foreman.models.core import (
    AgentKind, AgentPatch, AgentProfile, AgentRegistryDocument, CreateAgentInput
)
from agent_foreman.orchestration.registry import (
    ARCHITECT_ID, AgentRegistry, default_agent_prompt, sanitize_agent_prompt, slugify
)
from agent_foreman.orchestration.workspace import (
    BOOTSTRAP_FILE, WORKSPACE_FILES, WorkspaceLayout, ensure_workspace, remove_workspace
)


@pytest.fixture
def registry(tmp_path):
    registry = AgentRegistry(WorkspaceLayout(tmp_path / ".agents"))
    registry.load(AgentRegistryDocument())
    return registry


class TestHelpers:
    """Test cases for ids and prompts."""

    def test_slugify(self):
        assert slugify("Backend Dev!") == "backend-dev"
        assert slugify("  --  ") == ""

    def test_sanitize_decodes_entities_and_strips_junk(self):
        raw = "\n".join([
            "My core agent prompt for Backend Dev is:",
            "Use &lt;tests&gt; &amp; keep &quot;quiet&quot;",
            "Prompt shared.",
        ])

        assert sanitize_agent_prompt(raw) == 'Use <tests> & keep "quiet"'

    def test_sanitize_blank(self):
        assert sanitize_agent_prompt("   ") == ""

    def test_role_prompts_differ(self):
        architect = default_agent_prompt("Architect", "Coordinate", AgentKind.ARCHITECT)
        connector = default_agent_prompt("Slack Agent", "Relay", AgentKind.CONNECTOR)
        worker = default_agent_prompt("Dev", "Build things", AgentKind.WORKER)

        assert "delegate" in architect.lower()
        assert "architect" in connector.lower()
        assert "build, test and lint" in worker
        assert len({architect, connector, worker}) == 3


class TestBootstrap:
    """Test cases for loading and normalization."""

    def test_empty_registry_gets_architect(self, registry):
        architect = registry.architect()

        assert architect.id == ARCHITECT_ID
        assert architect.kind == AgentKind.ARCHITECT
        assert architect.auto_poll is False
        assert architect.removable is False
        assert architect.session_id == f"agent:{ARCHITECT_ID}"
        assert registry.active_agent_id == ARCHITECT_ID

    def test_duplicate_architects_are_demoted(self, tmp_path):
        registry = AgentRegistry(WorkspaceLayout(tmp_path))
        document = AgentRegistryDocument(agents=[
            AgentProfile(id="agent-architect", name="Architect", kind=AgentKind.ARCHITECT),
            AgentProfile(id="agent-lead", name="Lead", kind=AgentKind.ARCHITECT),
        ])

        assert registry.load(document) is True
        assert registry.get_agent("agent-lead").kind == AgentKind.CUSTOM
        assert [a.id for a in document.agents if a.kind == AgentKind.ARCHITECT] == ["agent-architect"]

    def test_unknown_active_agent_is_reset(self, tmp_path):
        registry = AgentRegistry(WorkspaceLayout(tmp_path))
        registry.load(AgentRegistryDocument(active_agent_id="agent-ghost"))

        assert registry.active_agent_id == ARCHITECT_ID

    def test_normalize_fills_blanks(self, tmp_path):
        registry = AgentRegistry(WorkspaceLayout(tmp_path))
        agent = AgentProfile(id="agent-dev", name="Dev", kind=AgentKind.CONNECTOR)
        registry.load(AgentRegistryDocument(agents=[agent]))

        assert agent.system_prompt
        assert agent.workspace_dir == str(tmp_path / "agent-dev" / "workspace")
        assert agent.auto_poll is False
        assert agent.removable is False

    def test_clean_document_is_unchanged(self, registry):
        assert registry.load(registry.document) is False


class TestAgents:
    """Test cases for creating, resolving and removing agents."""

    def test_add_agent_ids(self, registry):
        first = registry.add_agent(CreateAgentInput(name="Backend Dev"))
        second = registry.add_agent(CreateAgentInput(name="backend dev"))

        assert first.id == "agent-backend-dev"
        assert second.id == "agent-backend-dev-2"
        assert first.auto_poll is True
        assert first.removable is True

    def test_second_architect_is_coerced(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Lead", kind=AgentKind.ARCHITECT))

        assert agent.kind == AgentKind.CUSTOM
        assert agent.removable is True

    def test_connector_flags(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Relay", kind=AgentKind.CONNECTOR, auto_poll=True))

        assert agent.auto_poll is False
        assert agent.removable is False

    def test_resolve_agent_id(self, registry):
        registry.add_agent(CreateAgentInput(name="Backend Dev"))

        assert registry.resolve_agent_id("AGENT-BACKEND-DEV") == "agent-backend-dev"
        assert registry.resolve_agent_id(" backend dev ") == "agent-backend-dev"
        assert registry.resolve_agent_id("nobody") is None
        assert registry.resolve_agent_id("") is None

    def test_upsert_connector(self, registry):
        agent, changed = registry.upsert_connector("slack", "Slack")

        assert changed is True
        assert agent.id == "agent-slackagent"
        assert agent.kind == AgentKind.CONNECTOR
        assert registry.upsert_connector("slack", "Slack") == (agent, False)

    def test_upsert_connector_repairs_drift(self, registry):
        agent, _ = registry.upsert_connector("slack")
        agent.kind = AgentKind.CUSTOM
        agent.auto_poll = True
        agent.removable = True
        agent.name = "Custom Name"

        repaired, changed = registry.upsert_connector("slack")

        assert changed is True
        assert repaired.kind == AgentKind.CONNECTOR
        assert repaired.auto_poll is False
        assert repaired.removable is False
        assert repaired.name == "Custom Name"

    def test_upsert_blank_connector(self, registry):
        assert registry.upsert_connector("  ") == (None, False)

    def test_apply_patch(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Dev"))

        registry.apply_patch(agent, AgentPatch(name="  ", enabled=False, system_prompt="Prompt shared."))

        assert agent.name == "Dev"
        assert agent.enabled is False
        assert agent.system_prompt

    def test_remove_protects_architect_and_connectors(self, registry):
        connector, _ = registry.upsert_connector("slack")

        assert registry.remove(ARCHITECT_ID) is None
        assert registry.remove(connector.id) is None
        assert registry.remove("agent-unknown") is None

    def test_remove_resets_active_agent(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Dev"))
        registry.set_active(agent.id)

        assert registry.remove(agent.id) is agent
        assert registry.active_agent_id == ARCHITECT_ID
        assert registry.get_agent(agent.id) is None


class TestWorkspace:
    """Test cases for workspace scaffolding."""

    @pytest.mark.asyncio
    async def test_fresh_workspace(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Dev"))

        created = await ensure_workspace(agent)

        assert all(created.values())
        assert set(created) == set(WORKSPACE_FILES) | {BOOTSTRAP_FILE}
        workspace = Path(agent.workspace_dir)
        assert (workspace / "HEARTBEAT.md").read_text(encoding="utf-8").startswith("# HEARTBEAT.md")
        assert Path(agent.agent_dir).is_dir()

    @pytest.mark.asyncio
    async def test_existing_files_are_kept(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Dev"))
        workspace = Path(agent.workspace_dir)
        workspace.mkdir(parents=True)
        (workspace / "SOUL.md").write_text("custom soul", encoding="utf-8")

        created = await ensure_workspace(agent)

        assert created["SOUL.md"] is False
        assert created["AGENTS.md"] is True
        assert BOOTSTRAP_FILE not in created
        assert (workspace / "SOUL.md").read_text(encoding="utf-8") == "custom soul"

    @pytest.mark.asyncio
    async def test_remove_workspace(self, registry):
        agent = registry.add_agent(CreateAgentInput(name="Dev"))
        await ensure_workspace(agent)
        base = registry.base_dir(agent.id)

        remove_workspace(base)
        remove_workspace(base)

        assert not base.exists()
