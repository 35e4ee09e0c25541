"""
Error taxonomy and exceptions for Agent Foreman.
"""

from enum import Enum


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Categories of errors."""
    STORAGE = "storage"
    VALIDATION = "validation"
    ROUTING = "routing"
    EXECUTION = "execution"
    SYSTEM = "system"


# Custom exceptions
class AgentForemanError(Exception):
    """Base exception for Agent Foreman."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.SYSTEM,
                 severity: ErrorSeverity = ErrorSeverity.MEDIUM, **kwargs):
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = kwargs


class StorageError(AgentForemanError):
    """Persisted document could not be written."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.STORAGE, ErrorSeverity.HIGH, **kwargs)


class ValidationError(AgentForemanError):
    """Caller input rejected before any state change."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.VALIDATION, ErrorSeverity.MEDIUM, **kwargs)


class RoutingError(AgentForemanError):
    """Delegation router produced an unusable decision."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.ROUTING, ErrorSeverity.LOW, **kwargs)


class TaskExecutionError(AgentForemanError):
    """
    Raised by executors to report a failed attempt.

    The message is classified exactly like any other exception text, so
    build/test/lint wording still makes the attempt retryable.
    """

    def __init__(self, message: str, **kwargs):
        super().__init__(message, ErrorCategory.EXECUTION, ErrorSeverity.MEDIUM, **kwargs)
