"""
Agent registry for Agent Foreman.

Owns the set of agent profiles: id assignment, role prompts, profile
normalization and the architect/connector protection rules.
"""

import re
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from ..models.core import (
    AgentKind, AgentPatch, AgentProfile, AgentRegistryDocument, CreateAgentInput
)
from ..utils.logging import LoggerMixin
from .workspace import WorkspaceLayout

ARCHITECT_ID = "agent-architect"
ARCHITECT_NAME = "Architect"
ARCHITECT_RESPONSIBILITY = "Architect and coordinator. Break down tasks and delegate to specialist agents."
DEFAULT_RESPONSIBILITY = "Specialist worker. Execute delegated tasks and report results."
MAX_SLUG_LENGTH = 48

_JUNK_PREFIX = re.compile(r"^my core agent prompt .* is:?$", re.IGNORECASE)
_JUNK_SUFFIXES = (
    re.compile(r"^full workspace files are minimal as shown in tool outputs\.?$", re.IGNORECASE),
    re.compile(r"^prompt shared\.?$", re.IGNORECASE),
    re.compile(r"^workspace context loaded\.?$", re.IGNORECASE),
)
_ENTITIES = (("&lt;", "<"), ("&gt;", ">"), ("&quot;", '"'), ("&#39;", "'"), ("&amp;", "&"))


def slugify(value: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].strip("-")


def sanitize_agent_prompt(value: str) -> str:
    """Decode HTML entities and drop echoed preamble/suffix lines."""
    decoded = value
    for entity, char in _ENTITIES:
        decoded = decoded.replace(entity, char)
    decoded = decoded.replace("\r\n", "\n").strip()
    if not decoded:
        return ""

    lines = decoded.split("\n")
    while lines and _JUNK_PREFIX.match(lines[0].strip()):
        lines.pop(0)
    while lines and any(rx.match(lines[-1].strip()) for rx in _JUNK_SUFFIXES):
        lines.pop()
    return "\n".join(lines).strip()


def default_agent_prompt(name: str, responsibility: str, kind: AgentKind) -> str:
    """Role template: architects delegate, connectors relay, everyone else executes."""
    mission = responsibility.strip().rstrip(".")
    header = [f"You are {name}.", f"Responsibility: {mission}."]

    if kind == AgentKind.ARCHITECT:
        policy = [
            "Break incoming requests into concrete tasks and delegate each one to the best-suited specialist.",
            "Do not implement delegated work yourself unless no specialist can take it.",
            "Review every finished task: verify it when the result holds up, recall it with precise follow-up instructions when it does not.",
            "Report progress to the user as a short status of queued, running, done and failed work.",
        ]
    elif kind == AgentKind.CONNECTOR:
        policy = [
            "Relay incoming channel messages faithfully and keep replies short.",
            "Delegate any real work to the architect instead of executing long tasks yourself.",
            "Report task outcomes back to the channel once the architect confirms them.",
        ]
    else:
        policy = [
            "Execute delegated tasks directly; ask for help only when blocked and name the blocker.",
            "Run the relevant build, test and lint checks before reporting done.",
            "Finish with a concise summary of what changed and how it was verified, or state clearly what failed.",
        ]

    footer = ["Read the files in your workspace before acting.", "Keep outputs concise and execution-focused."]
    return "\n".join(header + policy + footer)


class AgentRegistry(LoggerMixin):
    """In-memory agent registry backed by an AgentRegistryDocument."""

    def __init__(self, layout: WorkspaceLayout):
        self.layout = layout
        self._document = AgentRegistryDocument()

    @property
    def document(self) -> AgentRegistryDocument:
        return self._document

    @property
    def active_agent_id(self) -> Optional[str]:
        return self._document.active_agent_id

    def load(self, document: AgentRegistryDocument) -> bool:
        """
        Adopt a persisted registry, normalizing every profile.

        Returns:
            True when normalization changed anything that should be persisted
        """
        self._document = document
        changed = False
        architect_seen = False
        for agent in document.agents:
            changed = self._normalize(agent) or changed
            if agent.kind == AgentKind.ARCHITECT:
                if architect_seen:
                    self.logger.warning("Demoting duplicate architect", agent_id=agent.id)
                    agent.kind = AgentKind.CUSTOM
                    agent.removable = True
                    changed = True
                architect_seen = True

        changed = self.ensure_architect() or changed
        if self.get_agent(document.active_agent_id or "") is None:
            document.active_agent_id = self.architect().id
            changed = True
        return changed

    def _normalize(self, agent: AgentProfile) -> bool:
        before = agent.model_dump()
        agent.name = agent.name.strip() or agent.id
        agent.responsibility = agent.responsibility.strip() or DEFAULT_RESPONSIBILITY
        agent.system_prompt = (
            sanitize_agent_prompt(agent.system_prompt)
            or default_agent_prompt(agent.name, agent.responsibility, agent.kind)
        )
        agent.session_id = agent.session_id.strip() or f"agent:{agent.id}"
        agent.workspace_dir = agent.workspace_dir.strip() or str(self.layout.workspace_dir(agent.id))
        agent.agent_dir = agent.agent_dir.strip() or str(self.layout.agent_dir(agent.id))
        if agent.kind == AgentKind.ARCHITECT:
            agent.removable = False
        if agent.kind == AgentKind.CONNECTOR:
            agent.removable = False
            agent.auto_poll = False
        return agent.model_dump() != before

    def ensure_architect(self) -> bool:
        """Bootstrap the architect when the registry has none."""
        if any(a.kind == AgentKind.ARCHITECT for a in self._document.agents):
            return False

        agent_id = ARCHITECT_ID if self.get_agent(ARCHITECT_ID) is None else self.next_agent_id(ARCHITECT_NAME)
        architect = self._build_profile(
            agent_id=agent_id,
            name=ARCHITECT_NAME,
            kind=AgentKind.ARCHITECT,
            responsibility=ARCHITECT_RESPONSIBILITY,
            system_prompt=default_agent_prompt(ARCHITECT_NAME, ARCHITECT_RESPONSIBILITY, AgentKind.ARCHITECT),
            auto_poll=False,
            removable=False,
        )
        self._document.agents.insert(0, architect)
        if not self._document.active_agent_id:
            self._document.active_agent_id = architect.id
        self.logger.info("Bootstrapped architect agent", agent_id=architect.id)
        return True

    def architect(self) -> AgentProfile:
        return next(a for a in self._document.agents if a.kind == AgentKind.ARCHITECT)

    def list_agents(self) -> List[AgentProfile]:
        return sorted(self._document.agents, key=lambda a: a.created_at)

    def get_agent(self, agent_id: str) -> Optional[AgentProfile]:
        return next((a for a in self._document.agents if a.id == agent_id), None)

    def enabled_agents(self) -> List[AgentProfile]:
        return [a for a in self.list_agents() if a.enabled]

    def resolve_agent_id(self, name_or_id: str) -> Optional[str]:
        """Case-insensitive lookup, by id first and then by name."""
        normalized = (name_or_id or "").strip().lower()
        if not normalized:
            return None
        for agent in self._document.agents:
            if agent.id.lower() == normalized:
                return agent.id
        for agent in self._document.agents:
            if agent.name.lower() == normalized:
                return agent.id
        return None

    def set_active(self, agent_id: str) -> bool:
        if self.get_agent(agent_id) is None:
            return False
        self._document.active_agent_id = agent_id
        return True

    def next_agent_id(self, name: str) -> str:
        base = slugify(name) or "agent"
        prefix = base if base.startswith("agent-") else f"agent-{base}"
        candidate = prefix
        n = 2
        while self.get_agent(candidate) is not None:
            candidate = f"{prefix}-{n}"
            n += 1
        return candidate

    def _build_profile(self, *, agent_id: str, name: str, kind: AgentKind, responsibility: str,
                       system_prompt: str, auto_poll: bool, removable: bool) -> AgentProfile:
        now = datetime.now()
        return AgentProfile(
            id=agent_id,
            name=name,
            kind=kind,
            responsibility=responsibility,
            system_prompt=system_prompt,
            session_id=f"agent:{agent_id}",
            workspace_dir=str(self.layout.workspace_dir(agent_id)),
            agent_dir=str(self.layout.agent_dir(agent_id)),
            enabled=True,
            auto_poll=auto_poll,
            removable=removable,
            created_at=now,
            updated_at=now,
        )

    def add_agent(self, data: CreateAgentInput) -> AgentProfile:
        """Register a new profile. A second architect is coerced to custom."""
        kind = data.kind
        if kind == AgentKind.ARCHITECT:
            self.logger.warning("Architect already exists, creating custom agent instead", name=data.name)
            kind = AgentKind.CUSTOM

        name = data.name.strip() or f"Agent {len(self._document.agents) + 1}"
        responsibility = (data.responsibility or "").strip() or DEFAULT_RESPONSIBILITY
        prompt = sanitize_agent_prompt(data.system_prompt or "") or default_agent_prompt(name, responsibility, kind)
        is_connector = kind == AgentKind.CONNECTOR

        agent = self._build_profile(
            agent_id=self.next_agent_id(name),
            name=name,
            kind=kind,
            responsibility=responsibility,
            system_prompt=prompt,
            auto_poll=False if is_connector else (data.auto_poll if data.auto_poll is not None else True),
            removable=not is_connector,
        )
        self._document.agents.append(agent)
        return agent

    @staticmethod
    def connector_agent_id(connector_id: str) -> Optional[str]:
        compact = re.sub(r"[^a-z0-9]+", "", (connector_id or "").lower())
        if not compact:
            return None
        return f"agent-{compact}agent"

    def upsert_connector(self, connector_id: str, label: Optional[str] = None) -> Tuple[Optional[AgentProfile], bool]:
        """
        Create or repair the agent fronting a connector.

        Returns:
            (agent, changed); agent is None for a blank connector id
        """
        agent_id = self.connector_agent_id(connector_id)
        if agent_id is None:
            return None, False

        display = (label or connector_id).strip() or connector_id
        name = f"{display} Agent"
        responsibility = f"Connector agent for {display}. Relay channel messages and delegate real work to the architect."

        agent = self.get_agent(agent_id)
        if agent is None:
            agent = self._build_profile(
                agent_id=agent_id,
                name=name,
                kind=AgentKind.CONNECTOR,
                responsibility=responsibility,
                system_prompt=default_agent_prompt(name, responsibility, AgentKind.CONNECTOR),
                auto_poll=False,
                removable=False,
            )
            self._document.agents.append(agent)
            return agent, True

        before = agent.model_dump()
        if agent.kind != AgentKind.CONNECTOR:
            agent.kind = AgentKind.CONNECTOR
        agent.auto_poll = False
        agent.removable = False
        if not agent.name.strip():
            agent.name = name
        if not agent.responsibility.strip():
            agent.responsibility = responsibility
        if not agent.system_prompt.strip():
            agent.system_prompt = default_agent_prompt(agent.name, agent.responsibility, AgentKind.CONNECTOR)

        changed = agent.model_dump() != before
        if changed:
            agent.updated_at = datetime.now()
        return agent, changed

    def apply_patch(self, agent: AgentProfile, patch: AgentPatch) -> AgentProfile:
        if patch.name is not None and patch.name.strip():
            agent.name = patch.name.strip()
        if patch.responsibility is not None and patch.responsibility.strip():
            agent.responsibility = patch.responsibility.strip()
        if patch.system_prompt is not None:
            cleaned = sanitize_agent_prompt(patch.system_prompt)
            if cleaned:
                agent.system_prompt = cleaned
        if patch.enabled is not None:
            agent.enabled = patch.enabled
        if patch.auto_poll is not None:
            agent.auto_poll = False if agent.kind == AgentKind.CONNECTOR else patch.auto_poll
        agent.updated_at = datetime.now()
        return agent

    def can_delete(self, agent_id: str) -> bool:
        agent = self.get_agent(agent_id)
        if agent is None or agent.kind == AgentKind.ARCHITECT or not agent.removable:
            return False
        return len(self._document.agents) > 1

    def remove(self, agent_id: str) -> Optional[AgentProfile]:
        """Drop a deletable agent and repoint the active agent if needed."""
        if not self.can_delete(agent_id):
            return None
        agent = self.get_agent(agent_id)
        self._document.agents.remove(agent)
        if self._document.active_agent_id == agent_id:
            self._document.active_agent_id = self.architect().id
        return agent

    def base_dir(self, agent_id: str) -> Path:
        return self.layout.base_dir(agent_id)
