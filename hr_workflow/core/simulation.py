"""Simulation Engine for previewing workflow execution.

The simulation is a preview, not an interpreter. Steps are produced in the
document order of ``workflow.nodes``; edges are NOT walked to decide the
order. Connecting Task -> Start on the canvas therefore does not move the
Start step after the Task step in the trace. Every node yields exactly one
``completed`` step, and step timestamps are one ``step_interval`` apart.

The engine does not validate. ``SimulationEngine.run`` validates first and
withholds simulation when there are findings; calling ``simulate`` directly
on an unvalidated workflow still yields one step per node (zero steps and
``success=True`` for an empty workflow). Callers must not rely on that.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional, Union

import httpx
from pydantic import ValidationError

from ..models.core import (
    AutomatedConfig,
    ExecutionStep,
    Node,
    SimulationOutcome,
    SimulationResult,
    StepStatus,
    Workflow,
)
from .automation_catalog import AutomationCatalog
from .exceptions import SimulationError
from .logging import get_logger, log_with_context, set_logging_context, clear_logging_context
from .registry import WorkflowRegistry
from .serialization import export_workflow
from .validator import WorkflowValidator

logger = get_logger(__name__)

SIMULATION_PATH = "/api/v1/simulation/run"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SimulationBackend(ABC):
    """Something that turns a workflow snapshot into a trace."""

    name = "backend"

    @abstractmethod
    async def run(self, workflow: Workflow) -> SimulationResult:
        """Produce the trace for ``workflow``."""


class LocalSimulationBackend(SimulationBackend):
    """In-process backend producing the deterministic preview trace."""

    name = "local"

    def __init__(
        self,
        catalog: Optional[AutomationCatalog] = None,
        step_interval: timedelta = timedelta(seconds=1),
        latency: float = 0.0,
        clock: Callable[[], datetime] = _utc_now
    ):
        """Initialize the backend.

        Args:
            catalog: Used to name the action an Automated step would run
            step_interval: Logical time between consecutive steps, must be positive
            latency: Artificial delay in seconds before the trace is returned
            clock: Source of the first step's timestamp
        """
        if step_interval <= timedelta(0):
            raise ValueError("step_interval must be positive")
        if latency < 0:
            raise ValueError("latency cannot be negative")
        self.catalog = catalog
        self.step_interval = step_interval
        self.latency = latency
        self._clock = clock

    async def run(self, workflow: Workflow) -> SimulationResult:
        if self.latency:
            await asyncio.sleep(self.latency)
        return self.build_trace(workflow)

    def build_trace(self, workflow: Workflow) -> SimulationResult:
        started_at = self._clock()
        steps = [
            ExecutionStep(
                node_id=node.id,
                node_kind=node.kind,
                title=node.label,
                status=StepStatus.COMPLETED,
                timestamp=started_at + index * self.step_interval,
                details=self._details(node),
            )
            for index, node in enumerate(workflow.nodes)
        ]
        return SimulationResult(success=True, steps=steps)

    def _details(self, node: Node) -> str:
        details = f"Executed {node.label}"
        if self.catalog is not None and isinstance(node.config, AutomatedConfig):
            action_label = self.catalog.resolve_label(node.config.action_id)
            if action_label:
                details = f"{details} via {action_label}"
        return details


class HttpSimulationBackend(SimulationBackend):
    """Backend that posts the snapshot to a remote simulation service."""

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        path: str = SIMULATION_PATH
    ):
        self.url = base_url.rstrip("/") + path
        self.timeout = timeout
        self._client = client

    async def run(self, workflow: Workflow) -> SimulationResult:
        payload = export_workflow(workflow)
        try:
            if self._client is not None:
                response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.post(self.url, json=payload)
            response.raise_for_status()
            return SimulationResult.model_validate(response.json())
        except httpx.HTTPStatusError as e:
            raise SimulationError(
                f"Simulation backend returned HTTP {e.response.status_code}",
                backend=self.name
            ) from e
        except httpx.HTTPError as e:
            raise SimulationError(
                f"Simulation backend unreachable: {e}",
                backend=self.name
            ) from e
        except (ValidationError, ValueError) as e:
            raise SimulationError(
                "Simulation backend returned an invalid response",
                reason=str(e),
                backend=self.name
            ) from e


class SimulationEngine:
    """Runs simulations against a backend with copy-on-call semantics."""

    def __init__(
        self,
        backend: SimulationBackend,
        validator: Optional[WorkflowValidator] = None,
        timeout: Optional[float] = None
    ):
        """Initialize the simulation engine.

        Args:
            backend: Backend producing traces
            validator: Validator used by ``run``; base checks only by default
            timeout: Seconds to wait for the backend, None to wait indefinitely
        """
        self.backend = backend
        self.validator = validator or WorkflowValidator()
        self.timeout = timeout

    async def simulate(self, workflow: Workflow) -> SimulationResult:
        """
        Simulate an already validated workflow.

        The workflow is copied before the first suspension point, so later
        changes to the caller's workflow never leak into the trace. Cancelling
        the awaiting task propagates ``CancelledError`` and yields no result.

        Raises:
            SimulationError: If the backend fails or times out. No steps are
                returned in that case.
        """
        snapshot = workflow.model_copy(deep=True)
        context_token = set_logging_context(simulation_backend=self.backend.name)
        logger.info(f"Simulating workflow with {len(snapshot.nodes)} node(s) on {self.backend.name} backend")

        try:
            if self.timeout:
                result = await asyncio.wait_for(self.backend.run(snapshot), self.timeout)
            else:
                result = await self.backend.run(snapshot)
        except SimulationError as e:
            logger.error(f"Simulation failed: {e.reason}")
            raise
        except asyncio.TimeoutError as e:
            logger.error(f"Simulation timed out after {self.timeout}s")
            raise SimulationError(
                f"Simulation timed out after {self.timeout}s",
                backend=self.backend.name
            ) from e
        except Exception as e:
            logger.error(f"Simulation backend error: {str(e)}", exc_info=True)
            raise SimulationError(
                f"Simulation backend failed: {str(e)}",
                backend=self.backend.name
            ) from e
        else:
            logger.info(f"Simulation produced {len(result.steps)} step(s)")
            return result
        finally:
            clear_logging_context(context_token)

    async def run(self, source: Union[Workflow, WorkflowRegistry]) -> SimulationOutcome:
        """
        Validate, then simulate only when validation passes.

        Validation findings and simulation failures are returned as messages
        in the outcome rather than raised.
        """
        workflow = source.snapshot() if isinstance(source, WorkflowRegistry) else source.model_copy(deep=True)

        issues = self.validator.validate(workflow)
        if issues:
            log_with_context(
                logger, logging.INFO,
                f"Simulation withheld: {len(issues)} validation finding(s)",
                validation_codes=[issue.code.value for issue in issues]
            )
            return SimulationOutcome(success=False, errors=[issue.message for issue in issues])

        try:
            result = await self.simulate(workflow)
        except SimulationError as e:
            return SimulationOutcome(success=False, errors=[f"Simulation failed: {e.reason}"])

        return SimulationOutcome(success=result.success, steps=result.steps)
