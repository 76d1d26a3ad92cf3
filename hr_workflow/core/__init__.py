"""Core workflow designer components."""

from .exceptions import (
    WorkflowDesignerError,
    WorkflowImportError,
    SimulationError,
    NodeNotFoundError,
    EdgeRejectedError,
    NodeConfigError,
    ConfigurationError,
)
from .logging import setup_logging, get_logger
from .automation_catalog import AutomationCatalog
from .registry import WorkflowRegistry
from .validator import WorkflowValidator, validate
from .simulation import (
    SimulationBackend,
    LocalSimulationBackend,
    HttpSimulationBackend,
    SimulationEngine,
)

__all__ = [
    "WorkflowDesignerError",
    "WorkflowImportError",
    "SimulationError",
    "NodeNotFoundError",
    "EdgeRejectedError",
    "NodeConfigError",
    "ConfigurationError",
    "setup_logging",
    "get_logger",
    "AutomationCatalog",
    "WorkflowRegistry",
    "WorkflowValidator",
    "validate",
    "SimulationBackend",
    "LocalSimulationBackend",
    "HttpSimulationBackend",
    "SimulationEngine",
]
