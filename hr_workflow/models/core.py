"""Core Pydantic models for the HR workflow designer."""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional, Type, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Enumeration of workflow node kinds."""
    START = "start"
    TASK = "task"
    APPROVAL = "approval"
    AUTOMATED = "automated"
    END = "end"


DEFAULT_LABELS: Dict[NodeKind, str] = {
    NodeKind.START: "Start",
    NodeKind.TASK: "Task",
    NodeKind.APPROVAL: "Approval",
    NodeKind.AUTOMATED: "Automated Action",
    NodeKind.END: "End",
}


class ApproverRole(str, Enum):
    """Roles that can sign off an approval step."""
    MANAGER = "Manager"
    HRBP = "HRBP"
    DIRECTOR = "Director"
    VP = "VP"
    C_LEVEL = "C-Level"


class StepStatus(str, Enum):
    """Enumeration of simulated step outcomes."""
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ValidationErrorCode(str, Enum):
    """Codes reported by the workflow validator."""
    EMPTY_WORKFLOW = "empty_workflow"
    MISSING_START = "missing_start"
    MISSING_END = "missing_end"
    # Opt-in extension checks
    UNREACHABLE_NODE = "unreachable_node"
    NON_TERMINATING_PATH = "non_terminating_path"
    CYCLE_DETECTED = "cycle_detected"
    SELF_LOOP = "self_loop"
    DUPLICATE_EDGE = "duplicate_edge"
    MISSING_REQUIRED_FIELD = "missing_required_field"
    UNKNOWN_ACTION = "unknown_action"


class ValidationExtension(str, Enum):
    """Stricter checks that are only run when explicitly requested."""
    REACHABILITY = "reachability"
    TERMINATION = "termination"
    CYCLES = "cycles"
    SELF_LOOPS = "self_loops"
    DUPLICATE_EDGES = "duplicate_edges"
    REQUIRED_FIELDS = "required_fields"
    UNKNOWN_ACTIONS = "unknown_actions"


class WireModel(BaseModel):
    """Base for models exchanged with the designer UI using camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _blank_to_none(value):
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CustomField(WireModel):
    """A free-form key/value pair attached to a node configuration."""
    key: str = ""
    value: str = ""


class NodeConfigBase(WireModel):
    """Common settings for every configuration variant."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class StartConfig(NodeConfigBase):
    title: Optional[str] = None
    custom_fields: List[CustomField] = Field(default_factory=list)


class TaskConfig(NodeConfigBase):
    title: Optional[str] = Field(None, description="Required for a semantically complete task")
    description: Optional[str] = None
    assignee: Optional[str] = None
    due_date: Optional[date] = None
    custom_fields: List[CustomField] = Field(default_factory=list)

    @field_validator('due_date', mode='before')
    @classmethod
    def normalize_due_date(cls, value):
        """Treat a cleared date input as no due date."""
        return _blank_to_none(value)


class ApprovalConfig(NodeConfigBase):
    title: Optional[str] = None
    approver_role: Optional[ApproverRole] = None
    auto_approve_threshold: Optional[float] = Field(
        None, description="Amount below which auto-approval applies"
    )

    @field_validator('approver_role', 'auto_approve_threshold', mode='before')
    @classmethod
    def normalize_blank(cls, value):
        """Treat cleared select/number inputs as unset."""
        return _blank_to_none(value)


class AutomatedConfig(NodeConfigBase):
    title: Optional[str] = None
    action_id: Optional[str] = None
    action_params: Dict[str, str] = Field(default_factory=dict)

    @field_validator('action_id', mode='before')
    @classmethod
    def normalize_action_id(cls, value):
        """Treat the 'Select action' placeholder as no action."""
        return _blank_to_none(value)


class EndConfig(NodeConfigBase):
    end_message: Optional[str] = None
    show_summary: bool = False


NodeConfig = Union[StartConfig, TaskConfig, ApprovalConfig, AutomatedConfig, EndConfig]

CONFIG_MODELS: Dict[NodeKind, Type[NodeConfigBase]] = {
    NodeKind.START: StartConfig,
    NodeKind.TASK: TaskConfig,
    NodeKind.APPROVAL: ApprovalConfig,
    NodeKind.AUTOMATED: AutomatedConfig,
    NodeKind.END: EndConfig,
}


class Node(BaseModel):
    """A single step of a workflow.

    Fields the core does not know about (canvas position, styling) are kept
    as extras so they survive an export/import round trip.
    """
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., frozen=True, description="Unique identifier for the node")
    kind: NodeKind = Field(..., description="Kind of step, selects the configuration schema")
    label: str = Field(..., description="Display label")
    subtitle: str = Field("", description="Derived display hint (assignee or approver role)")
    config: NodeConfig = Field(..., description="Kind-specific configuration")

    @field_validator('id')
    @classmethod
    def validate_id(cls, id_value):
        """Ensure node ID is not blank."""
        if not id_value or not id_value.strip():
            raise ValueError("Node ID cannot be empty")
        return id_value

    @model_validator(mode='before')
    @classmethod
    def coerce_config_for_kind(cls, data):
        """Select the configuration variant from the node kind."""
        if not isinstance(data, dict):
            return data
        try:
            kind = NodeKind(data.get("kind"))
        except ValueError:
            # Field validation reports the bad kind
            return data

        data = dict(data)
        data.setdefault("label", DEFAULT_LABELS[kind])
        model_cls = CONFIG_MODELS[kind]
        raw_config = data.get("config")
        if raw_config is None:
            data["config"] = model_cls()
        elif isinstance(raw_config, BaseModel):
            if not isinstance(raw_config, model_cls):
                raise ValueError(
                    f"{type(raw_config).__name__} does not match node kind '{kind.value}'"
                )
        else:
            data["config"] = model_cls.model_validate(raw_config)
        return data


class Edge(BaseModel):
    """A directed connection between two nodes."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(..., frozen=True, description="Unique identifier for the edge")
    source_node_id: str = Field(..., alias="sourceNodeId", description="Source node ID")
    target_node_id: str = Field(..., alias="targetNodeId", description="Target node ID")

    @field_validator('id', 'source_node_id', 'target_node_id')
    @classmethod
    def validate_not_blank(cls, value):
        """Ensure identifiers are not blank."""
        if not value or not value.strip():
            raise ValueError("Edge identifiers cannot be empty")
        return value


class Workflow(BaseModel):
    """The aggregate of nodes and edges for one HR process design."""
    nodes: List[Node] = Field(default_factory=list, description="Nodes in document order")
    edges: List[Edge] = Field(default_factory=list, description="Edges connecting nodes")

    @field_validator('nodes')
    @classmethod
    def validate_unique_node_ids(cls, nodes):
        """Ensure all node IDs are unique."""
        node_ids = [node.id for node in nodes]
        if len(node_ids) != len(set(node_ids)):
            raise ValueError("All node IDs must be unique")
        return nodes

    @field_validator('edges')
    @classmethod
    def validate_unique_edge_ids(cls, edges):
        """Ensure all edge IDs are unique."""
        edge_ids = [edge.id for edge in edges]
        if len(edge_ids) != len(set(edge_ids)):
            raise ValueError("All edge IDs must be unique")
        return edges

    @model_validator(mode='after')
    def validate_edge_references(self):
        """Ensure every edge endpoint resolves to a node."""
        node_ids = {node.id for node in self.nodes}
        for edge in self.edges:
            if edge.source_node_id not in node_ids:
                raise ValueError(f"Edge '{edge.id}' references non-existent source node: {edge.source_node_id}")
            if edge.target_node_id not in node_ids:
                raise ValueError(f"Edge '{edge.id}' references non-existent target node: {edge.target_node_id}")
        return self

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def has_kind(self, kind: NodeKind) -> bool:
        return any(node.kind == kind for node in self.nodes)


class AutomationDescriptor(WireModel):
    """Catalog entry describing a selectable automated action."""
    id: str = Field(..., description="Action identifier referenced by actionId")
    label: str = Field(..., description="Display label")
    params: List[str] = Field(default_factory=list, description="Parameter names in form order")


class ValidationIssue(WireModel):
    """A single finding reported by the validator."""
    code: ValidationErrorCode = Field(..., description="Kind of finding")
    message: str = Field(..., description="Human readable message")
    node_ids: List[str] = Field(default_factory=list, description="Nodes involved, if any")
    extension: Optional[ValidationExtension] = Field(
        None, description="Opt-in check that produced the finding; None for the base checks"
    )


class ValidationResult(WireModel):
    """Result of workflow validation."""
    is_valid: bool = Field(..., description="Whether the workflow is valid")
    errors: List[ValidationIssue] = Field(default_factory=list, description="List of validation findings")


class ExecutionStep(WireModel):
    """One entry of a simulation trace."""
    node_id: str
    node_kind: NodeKind
    title: str
    status: StepStatus
    timestamp: datetime
    details: str


class SimulationResult(WireModel):
    """Trace produced by a simulation backend."""
    success: bool
    steps: List[ExecutionStep] = Field(default_factory=list)


class SimulationOutcome(WireModel):
    """What the caller sees after validate-then-simulate."""
    success: bool = Field(..., description="True when a trace was produced")
    steps: List[ExecutionStep] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list, description="Validation or simulation errors")


class WorkflowSummary(WireModel):
    """Summary information about the current workflow."""
    node_count: int = Field(..., description="Number of nodes in the workflow")
    edge_count: int = Field(..., description="Number of edges in the workflow")
