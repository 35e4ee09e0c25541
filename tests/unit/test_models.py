"""
Unit tests for core data models.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from agent_foreman.models.core import (
    AgentProfile, AgentRunRecord, AgentTask, MaintenanceReport, RouteDecision,
    RunStatus, TaskListDocument, TaskStatus
)
from agent_foreman.models.errors import (
    AgentForemanError, ErrorCategory, ErrorSeverity, StorageError, TaskExecutionError
)


class TestModels:
    """Test cases for the pydantic models."""

    def test_task_defaults(self):
        task = AgentTask(id="task-1", from_agent_id="a", to_agent_id="b", title="T")

        assert task.status == TaskStatus.QUEUED
        assert task.retry_count == 0
        assert task.max_retries == 2
        assert task.verification_status is None

    def test_task_rejects_empty_title(self):
        with pytest.raises(PydanticValidationError):
            AgentTask(id="task-1", from_agent_id="a", to_agent_id="b", title="")

    def test_profile_requires_name(self):
        with pytest.raises(PydanticValidationError):
            AgentProfile(id="agent-x", name="")

    def test_run_activity(self):
        run = AgentRunRecord(run_id="run-1", task_id="t", agent_id="a", from_agent_id="b")

        assert run.is_active
        run.status = RunStatus.STALLED
        assert run.is_active
        run.status = RunStatus.ARCHIVED
        assert not run.is_active

    def test_route_confidence_bounds(self):
        with pytest.raises(PydanticValidationError):
            RouteDecision(to_agent_id="agent-x", confidence=1.5)

    def test_document_round_trip(self, task_factory):
        document = TaskListDocument(tasks=[task_factory(), task_factory(id="task-2", status=TaskStatus.DONE)])

        restored = TaskListDocument.model_validate(document.model_dump(mode='json'))

        assert restored == document

    def test_maintenance_report_changed(self):
        assert not MaintenanceReport().changed
        assert MaintenanceReport(archived_runs=1).changed
        assert MaintenanceReport(stalled=["task-1"]).changed


class TestErrors:
    """Test cases for the exception hierarchy."""

    def test_storage_error(self):
        error = StorageError("could not write", path="/tmp/x")

        assert isinstance(error, AgentForemanError)
        assert error.category == ErrorCategory.STORAGE
        assert error.severity == ErrorSeverity.HIGH
        assert error.context == {"path": "/tmp/x"}
        assert str(error) == "could not write"

    def test_task_execution_error(self):
        error = TaskExecutionError("tests failed")

        assert error.category == ErrorCategory.EXECUTION
        assert error.message == "tests failed"
