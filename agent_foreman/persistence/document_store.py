"""
Document persistence layer for Agent Foreman.

Saves and loads the three versioned JSON documents (agent registry, task list,
run history) that make up orchestrator state.
"""

import json
import aiofiles
from pathlib import Path
from typing import Type, TypeVar
import asyncio

from pydantic import BaseModel

from ..models.core import (
    DOCUMENT_VERSION, AgentRegistryDocument, TaskListDocument, RunHistoryDocument
)
from ..models.errors import StorageError
from ..utils.logging import get_logger

logger = get_logger(__name__)

DocumentT = TypeVar("DocumentT", bound=BaseModel)

AGENTS_FILE = "agents.json"
TASKS_FILE = "tasks.json"
RUNS_FILE = "runs.json"


class DocumentStore:
    """
    File-backed store for orchestrator documents.

    Reads are forgiving: a missing, unreadable or malformed file yields an
    empty default document. Writes go through a temp file and an atomic
    rename, and raise StorageError on failure.
    """

    def __init__(self, root_dir: str):
        """
        Initialize the document store.

        Args:
            root_dir: Directory holding agents.json, tasks.json and runs.json
        """
        self.root_dir = Path(root_dir)
        self._lock = asyncio.Lock()

    @property
    def agents_path(self) -> Path:
        return self.root_dir / AGENTS_FILE

    @property
    def tasks_path(self) -> Path:
        return self.root_dir / TASKS_FILE

    @property
    def runs_path(self) -> Path:
        return self.root_dir / RUNS_FILE

    async def initialize(self):
        """Create the storage directory."""
        self.root_dir.mkdir(parents=True, exist_ok=True)
        logger.info("Initialized document store", root=str(self.root_dir))

    async def load_agents(self) -> AgentRegistryDocument:
        return await self._load(self.agents_path, AgentRegistryDocument)

    async def load_tasks(self) -> TaskListDocument:
        return await self._load(self.tasks_path, TaskListDocument)

    async def load_runs(self) -> RunHistoryDocument:
        return await self._load(self.runs_path, RunHistoryDocument)

    async def save_agents(self, document: AgentRegistryDocument) -> None:
        await self._save(self.agents_path, document)

    async def save_tasks(self, document: TaskListDocument) -> None:
        await self._save(self.tasks_path, document)

    async def save_runs(self, document: RunHistoryDocument) -> None:
        await self._save(self.runs_path, document)

    async def _load(self, path: Path, model: Type[DocumentT]) -> DocumentT:
        if not path.exists():
            return model()

        try:
            async with aiofiles.open(path, 'r', encoding='utf-8') as f:
                content = await f.read()
            data = json.loads(content)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            version = data.get("version", DOCUMENT_VERSION)
            if version != DOCUMENT_VERSION:
                logger.warning("Unexpected document version", path=str(path), version=version)
            data["version"] = DOCUMENT_VERSION
            return model.model_validate(data)

        except Exception as e:
            logger.error("Error loading document, falling back to defaults", path=str(path), error=str(e))
            return model()

    async def _save(self, path: Path, document: BaseModel) -> None:
        payload = json.dumps(document.model_dump(mode='json'), indent=2, ensure_ascii=False)
        temp_file = path.with_suffix(path.suffix + '.tmp')

        try:
            async with self._lock:
                path.parent.mkdir(parents=True, exist_ok=True)
                async with aiofiles.open(temp_file, 'w', encoding='utf-8') as f:
                    await f.write(payload + "\n")
                temp_file.replace(path)
        except OSError as e:
            raise StorageError(f"Could not write {path.name}: {e}", path=str(path)) from e

        logger.debug("Saved document", path=str(path))

