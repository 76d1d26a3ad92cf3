"""Example onboarding workflow demonstrating the designer core."""

import asyncio

from hr_workflow.core.automation_catalog import AutomationCatalog, builtin_automation_source
from hr_workflow.core.registry import WorkflowRegistry
from hr_workflow.core.serialization import dumps_workflow
from hr_workflow.core.simulation import LocalSimulationBackend, SimulationEngine
from hr_workflow.core.validator import WorkflowValidator
from hr_workflow.models import NodeKind, ValidationExtension


def create_onboarding_workflow() -> WorkflowRegistry:
    """
    Build a new-hire onboarding workflow.

    This workflow:
    1. Starts when an offer is accepted
    2. Asks HR to collect the signed documents
    3. Sends a welcome email
    4. Requires manager approval of the equipment budget
    5. Ends with a summary
    """
    registry = WorkflowRegistry(allow_self_loops=False, allow_duplicate_edges=False)

    start = registry.add_node(NodeKind.START, extra={"position": {"x": 0, "y": 0}})
    collect = registry.add_node(NodeKind.TASK, extra={"position": {"x": 200, "y": 0}})
    welcome = registry.add_node(NodeKind.AUTOMATED, extra={"position": {"x": 400, "y": 0}})
    approve = registry.add_node(NodeKind.APPROVAL, extra={"position": {"x": 600, "y": 0}})
    end = registry.add_node(NodeKind.END, extra={"position": {"x": 800, "y": 0}})

    registry.update_node_config(start.id, {
        "title": "Offer accepted",
        "customFields": [{"key": "department", "value": "Engineering"}],
    })
    registry.update_node_config(collect.id, {
        "title": "Collect signed documents",
        "assignee": "HR Coordinator",
        "dueDate": "2024-07-01",
    })
    registry.update_node_config(welcome.id, {
        "title": "Welcome email",
        "actionId": "send_email",
        "actionParams": {"to": "new.hire@example.com", "subject": "Welcome aboard"},
    })
    registry.update_node_config(approve.id, {
        "title": "Equipment budget",
        "approverRole": "Manager",
        "autoApproveThreshold": 1500,
    })
    registry.update_node_config(end.id, {"endMessage": "Onboarding complete", "showSummary": True})

    for source, target in ((start, collect), (collect, welcome), (welcome, approve), (approve, end)):
        registry.connect(source.id, target.id)

    return registry


async def main():
    """Validate, simulate and export the example workflow."""
    catalog = AutomationCatalog()
    await catalog.load(builtin_automation_source())

    registry = create_onboarding_workflow()
    validator = WorkflowValidator(extensions=list(ValidationExtension), catalog=catalog)
    engine = SimulationEngine(LocalSimulationBackend(catalog=catalog), validator=validator)

    print("HR Workflow Designer - Example Workflow")
    print("=" * 50)
    for node in registry.nodes:
        subtitle = f" ({node.subtitle})" if node.subtitle else ""
        print(f"  {node.id}: {node.label}{subtitle}")
    print()

    outcome = await engine.run(registry)
    if not outcome.success:
        for error in outcome.errors:
            print(f"  Error: {error}")
        return

    print("Simulation trace:")
    for step in outcome.steps:
        print(f"  {step.timestamp:%H:%M:%S}  {step.title}: {step.details}")
    print()

    print("Exported workflow:")
    print(dumps_workflow(registry.snapshot()))


if __name__ == "__main__":
    asyncio.run(main())
