"""Custom exceptions for the workflow designer with detailed error information."""

from datetime import datetime, timezone
from typing import Optional, Dict, Any, List
from enum import Enum


class ErrorSeverity(Enum):
    """Error severity levels for categorizing exceptions."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(Enum):
    """Categories of errors for better classification."""
    VALIDATION = "validation"
    EXECUTION = "execution"
    NETWORK = "network"
    CONFIGURATION = "configuration"
    BUSINESS_LOGIC = "business_logic"


class WorkflowDesignerError(Exception):
    """Base exception for all workflow designer errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.BUSINESS_LOGIC,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = False,
        context: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.severity = severity
        self.category = category
        self.details = details or {}
        self.recoverable = recoverable
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
            "exception_type": self.__class__.__name__
        }

    def add_context(self, **kwargs):
        """Add additional context to the exception."""
        self.context.update(kwargs)
        return self

    def add_details(self, **kwargs):
        """Add additional details to the exception."""
        self.details.update(kwargs)
        return self


class WorkflowImportError(WorkflowDesignerError):
    """Raised when an imported workflow does not have the expected shape.

    The registry is left untouched whenever this is raised.
    """

    def __init__(
        self,
        message: str,
        import_errors: Optional[List[str]] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
            recoverable=True,
            **kwargs
        )
        self.import_errors = import_errors or []
        if import_errors:
            self.add_details(import_errors=import_errors)


class SimulationError(WorkflowDesignerError):
    """Raised when the simulation backend fails or times out."""

    def __init__(
        self,
        message: str,
        reason: Optional[str] = None,
        backend: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXECUTION,
            recoverable=True,
            **kwargs
        )
        self.reason = reason or message
        self.add_details(reason=self.reason)
        if backend:
            self.add_context(backend=backend)


class NodeNotFoundError(WorkflowDesignerError):
    """Raised when an edge endpoint does not resolve to a node."""

    def __init__(self, message: str, node_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        self.node_id = node_id
        if node_id:
            self.add_context(node_id=node_id)


class EdgeRejectedError(WorkflowDesignerError):
    """Raised when an opt-in edge guard refuses a connection."""

    def __init__(
        self,
        message: str,
        source_node_id: Optional[str] = None,
        target_node_id: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.BUSINESS_LOGIC,
            **kwargs
        )
        if source_node_id:
            self.add_context(source_node_id=source_node_id)
        if target_node_id:
            self.add_context(target_node_id=target_node_id)


class NodeConfigError(WorkflowDesignerError):
    """Raised when a configuration cannot be applied to a node kind."""

    def __init__(
        self,
        message: str,
        node_kind: Optional[str] = None,
        field: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM,
            category=ErrorCategory.VALIDATION,
            **kwargs
        )
        if node_kind:
            self.add_context(node_kind=node_kind)
        if field:
            self.add_context(field=field)


class ConfigurationError(WorkflowDesignerError):
    """Raised when application configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs
    ):
        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.CONFIGURATION,
            **kwargs
        )
        if config_key:
            self.add_context(config_key=config_key)


def create_error_response(error: WorkflowDesignerError) -> Dict[str, Any]:
    """Create a standardized error response from a WorkflowDesignerError."""
    return {
        "error": error.error_code,
        "message": error.message,
        "details": {
            **error.details,
            "severity": error.severity.value,
            "category": error.category.value,
            "recoverable": error.recoverable,
            "timestamp": error.timestamp.isoformat()
        },
        "context": error.context
    }
