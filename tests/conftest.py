"""Pytest configuration and fixtures."""

from datetime import datetime, timezone

import pytest

from hr_workflow.config import get_testing_config
from hr_workflow.core.automation_catalog import AutomationCatalog, DEFAULT_AUTOMATIONS
from hr_workflow.core.registry import WorkflowRegistry
from hr_workflow.core.simulation import LocalSimulationBackend, SimulationEngine
from hr_workflow.models.core import NodeKind

FIXED_START = datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def registry():
    """Create an empty WorkflowRegistry for testing."""
    return WorkflowRegistry()


@pytest.fixture
def catalog():
    """Catalog preloaded with the built-in automations."""
    return AutomationCatalog(DEFAULT_AUTOMATIONS)


@pytest.fixture
def linear_registry(registry):
    """Registry holding start-1 -> task-2 -> end-3."""
    start = registry.add_node(NodeKind.START)
    task = registry.add_node(NodeKind.TASK)
    end = registry.add_node(NodeKind.END)
    registry.connect(start.id, task.id)
    registry.connect(task.id, end.id)
    return registry


@pytest.fixture
def local_backend(catalog):
    """Local backend with a fixed clock."""
    return LocalSimulationBackend(catalog=catalog, clock=lambda: FIXED_START)


@pytest.fixture
def engine(local_backend):
    """Simulation engine on the local backend."""
    return SimulationEngine(local_backend)


@pytest.fixture
def client():
    """Create a test client running the full application lifespan."""
    from fastapi.testclient import TestClient
    from hr_workflow.factory import create_app

    with TestClient(create_app(get_testing_config())) as test_client:
        yield test_client
