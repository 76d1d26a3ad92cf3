"""FastAPI REST endpoints for the workflow designer."""

from typing import Dict, List, Any, Optional
from fastapi import APIRouter, Body, HTTPException, Depends, Query, status
from pydantic import BaseModel, Field

from ..core.automation_catalog import AutomationCatalog
from ..core.exceptions import WorkflowDesignerError, create_error_response
from ..core.logging import get_logger
from ..core.middleware import status_code_for_error
from ..core.registry import WorkflowRegistry
from ..core.simulation import LocalSimulationBackend, SimulationEngine
from ..core.validator import WorkflowValidator
from ..models.core import (
    AutomationDescriptor,
    Edge,
    Node,
    NodeKind,
    SimulationOutcome,
    SimulationResult,
    ValidationExtension,
    ValidationResult,
    WireModel,
    Workflow,
    WorkflowSummary,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1", tags=["workflow"])

# Global instances (initialized by the application lifespan)
_registry: Optional[WorkflowRegistry] = None
_catalog: Optional[AutomationCatalog] = None
_engine: Optional[SimulationEngine] = None
_validator: Optional[WorkflowValidator] = None
_local_backend: Optional[LocalSimulationBackend] = None


def init_dependencies(
    registry: WorkflowRegistry,
    catalog: AutomationCatalog,
    engine: SimulationEngine,
    validator: WorkflowValidator,
    local_backend: LocalSimulationBackend
):
    """Initialize the global dependencies."""
    global _registry, _catalog, _engine, _validator, _local_backend
    _registry = registry
    _catalog = catalog
    _engine = engine
    _validator = validator
    _local_backend = local_backend


def _not_initialized(component: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{component} not initialized"
    )


def get_registry() -> WorkflowRegistry:
    """Dependency to get the workflow registry."""
    if _registry is None:
        raise _not_initialized("Workflow registry")
    return _registry


def get_catalog() -> AutomationCatalog:
    if _catalog is None:
        raise _not_initialized("Automation catalog")
    return _catalog


def get_engine() -> SimulationEngine:
    if _engine is None:
        raise _not_initialized("Simulation engine")
    return _engine


def get_validator() -> WorkflowValidator:
    if _validator is None:
        raise _not_initialized("Validator")
    return _validator


def get_local_backend() -> LocalSimulationBackend:
    if _local_backend is None:
        raise _not_initialized("Local simulation backend")
    return _local_backend


def _http_error(error: WorkflowDesignerError) -> HTTPException:
    return HTTPException(
        status_code=status_code_for_error(error),
        detail=create_error_response(error)
    )


# Request/Response models
class AddNodeRequest(BaseModel):
    """Request model for adding a node."""
    kind: NodeKind = Field(..., description="Kind of node to add")
    extra: Dict[str, Any] = Field(
        default_factory=dict,
        description="Presentation fields stored with the node, e.g. canvas position"
    )


class UpdateConfigRequest(BaseModel):
    """Request model for replacing a node's configuration."""
    config: Dict[str, Any] = Field(..., description="New configuration in camelCase")


class UpdateConfigResponse(WireModel):
    updated: bool = Field(..., description="False when the node does not exist")
    node: Optional[Node] = Field(None, description="The node after the update")


class ConnectRequest(WireModel):
    """Request model for connecting two nodes."""
    source_node_id: str = Field(..., description="Node the edge leaves")
    target_node_id: str = Field(..., description="Node the edge enters")
    extra: Dict[str, Any] = Field(default_factory=dict, description="Presentation fields")


class RemovalResponse(BaseModel):
    removed: bool = Field(..., description="False when the id was unknown")


# Endpoints

@router.get(
    "/automations",
    response_model=List[AutomationDescriptor],
    summary="List automations",
    description="Actions an Automated node can be configured to run"
)
async def list_automations(
    catalog: AutomationCatalog = Depends(get_catalog)
) -> List[AutomationDescriptor]:
    return catalog.list_automations()


@router.get(
    "/workflow/export",
    summary="Export the workflow",
    description="The whole workflow in its file format"
)
async def export_workflow(
    registry: WorkflowRegistry = Depends(get_registry)
) -> Dict[str, Any]:
    return registry.export_workflow()


@router.post(
    "/workflow/import",
    response_model=WorkflowSummary,
    summary="Import a workflow",
    description="Replace the current workflow with the uploaded file contents"
)
async def import_workflow(
    data: Any = Body(...),
    registry: WorkflowRegistry = Depends(get_registry)
) -> WorkflowSummary:
    """
    Replace the current workflow.

    Raises:
        HTTPException: 400 if the document is malformed; the workflow is left unchanged
    """
    try:
        summary = registry.import_workflow(data)
    except WorkflowDesignerError as e:
        logger.warning(f"Rejected workflow import: {e.message}")
        raise _http_error(e)

    logger.info(f"Imported workflow with {summary.node_count} node(s)")
    return summary


@router.post(
    "/workflow/nodes",
    response_model=Node,
    status_code=status.HTTP_201_CREATED,
    summary="Add a node"
)
async def add_node(
    request: AddNodeRequest,
    registry: WorkflowRegistry = Depends(get_registry)
) -> Node:
    return registry.add_node(request.kind, extra=request.extra)


@router.put(
    "/workflow/nodes/{node_id}/config",
    response_model=UpdateConfigResponse,
    summary="Update a node's configuration",
    description="Unknown node ids are ignored and reported with updated=false"
)
async def update_node_config(
    node_id: str,
    request: UpdateConfigRequest,
    registry: WorkflowRegistry = Depends(get_registry)
) -> UpdateConfigResponse:
    try:
        updated = registry.update_node_config(node_id, request.config)
    except WorkflowDesignerError as e:
        logger.warning(f"Rejected config for node {node_id}: {e.message}")
        raise _http_error(e)

    return UpdateConfigResponse(updated=updated, node=registry.get_node(node_id))


@router.delete(
    "/workflow/nodes/{node_id}",
    response_model=RemovalResponse,
    summary="Remove a node and its edges"
)
async def remove_node(
    node_id: str,
    registry: WorkflowRegistry = Depends(get_registry)
) -> RemovalResponse:
    return RemovalResponse(removed=registry.remove_node(node_id))


@router.post(
    "/workflow/edges",
    response_model=Edge,
    status_code=status.HTTP_201_CREATED,
    summary="Connect two nodes"
)
async def connect_nodes(
    request: ConnectRequest,
    registry: WorkflowRegistry = Depends(get_registry)
) -> Edge:
    """
    Create an edge.

    Raises:
        HTTPException: 404 for an unknown endpoint, 409 when an edge guard refuses it
    """
    try:
        return registry.connect(request.source_node_id, request.target_node_id, extra=request.extra)
    except WorkflowDesignerError as e:
        logger.warning(f"Rejected edge {request.source_node_id} -> {request.target_node_id}: {e.message}")
        raise _http_error(e)


@router.delete(
    "/workflow/edges/{edge_id}",
    response_model=RemovalResponse,
    summary="Remove an edge"
)
async def remove_edge(
    edge_id: str,
    registry: WorkflowRegistry = Depends(get_registry)
) -> RemovalResponse:
    return RemovalResponse(removed=registry.remove_edge(edge_id))


@router.get(
    "/workflow/validation",
    response_model=ValidationResult,
    summary="Validate the workflow",
    description="Base checks plus any extensions named in the query"
)
async def validate_workflow(
    extension: Optional[List[ValidationExtension]] = Query(None),
    registry: WorkflowRegistry = Depends(get_registry),
    validator: WorkflowValidator = Depends(get_validator)
) -> ValidationResult:
    result = validator.report(registry.snapshot(), extension)
    logger.debug(f"Workflow validation completed. Valid: {result.is_valid}")
    return result


@router.post(
    "/workflow/simulate",
    response_model=SimulationOutcome,
    summary="Simulate the workflow",
    description="Validate the current workflow and, if it passes, produce its execution trace"
)
async def simulate_workflow(
    registry: WorkflowRegistry = Depends(get_registry),
    engine: SimulationEngine = Depends(get_engine)
) -> SimulationOutcome:
    return await engine.run(registry)


@router.post(
    "/simulation/run",
    response_model=SimulationResult,
    summary="Simulation service",
    description="Stateless endpoint producing the trace of the posted workflow"
)
async def run_simulation(
    workflow: Workflow,
    backend: LocalSimulationBackend = Depends(get_local_backend)
) -> SimulationResult:
    logger.info(f"Simulation requested for {len(workflow.nodes)} node(s)")
    return await backend.run(workflow)
