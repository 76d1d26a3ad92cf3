"""Data models for the HR workflow designer."""

from .core import (
    NodeKind,
    DEFAULT_LABELS,
    ApproverRole,
    StepStatus,
    ValidationErrorCode,
    ValidationExtension,
    CustomField,
    StartConfig,
    TaskConfig,
    ApprovalConfig,
    AutomatedConfig,
    EndConfig,
    NodeConfig,
    CONFIG_MODELS,
    Node,
    Edge,
    Workflow,
    AutomationDescriptor,
    ValidationIssue,
    ValidationResult,
    ExecutionStep,
    SimulationResult,
    SimulationOutcome,
    WorkflowSummary,
)

__all__ = [
    "NodeKind",
    "DEFAULT_LABELS",
    "ApproverRole",
    "StepStatus",
    "ValidationErrorCode",
    "ValidationExtension",
    "CustomField",
    "StartConfig",
    "TaskConfig",
    "ApprovalConfig",
    "AutomatedConfig",
    "EndConfig",
    "NodeConfig",
    "CONFIG_MODELS",
    "Node",
    "Edge",
    "Workflow",
    "AutomationDescriptor",
    "ValidationIssue",
    "ValidationResult",
    "ExecutionStep",
    "SimulationResult",
    "SimulationOutcome",
    "WorkflowSummary",
]
