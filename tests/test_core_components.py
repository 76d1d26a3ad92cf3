"""Tests for core workflow designer components."""

import json
import logging
from datetime import date

import pytest

from hr_workflow.core.exceptions import (
    EdgeRejectedError,
    NodeConfigError,
    NodeNotFoundError,
    WorkflowImportError,
)
from hr_workflow.core.node_config import (
    append_custom_field,
    coerce_config,
    derive_label,
    derive_subtitle,
    empty_config,
    set_action_param,
    update_custom_field,
    update_field,
)
from hr_workflow.core.registry import WorkflowRegistry
from hr_workflow.core.serialization import dumps_workflow, loads_workflow, parse_workflow
from hr_workflow.core.validator import WorkflowValidator, validate
from hr_workflow.models.core import (
    ApprovalConfig,
    ApproverRole,
    AutomatedConfig,
    EndConfig,
    NodeKind,
    StartConfig,
    TaskConfig,
    ValidationErrorCode,
    ValidationExtension,
    Workflow,
)


def _codes(issues):
    return [issue.code for issue in issues]


class TestWorkflowRegistry:
    """Test cases for WorkflowRegistry component."""

    def test_add_node_allocates_ids_and_defaults(self, registry):
        """Ids follow <kind>-<n> from one counter; labels and configs start blank."""
        start = registry.add_node(NodeKind.START)
        task = registry.add_node("task")
        automated = registry.add_node(NodeKind.AUTOMATED)

        assert start.id == "start-1"
        assert task.id == "task-2"
        assert automated.id == "automated-3"
        assert start.label == "Start"
        assert automated.label == "Automated Action"
        assert task.subtitle == ""
        assert task.config == TaskConfig()

    def test_add_node_keeps_presentation_fields(self, registry):
        node = registry.add_node(NodeKind.TASK, extra={"position": {"x": 10, "y": 20}})

        exported = registry.export_workflow()["nodes"][0]
        assert exported["position"] == {"x": 10, "y": 20}
        assert node.id == "task-1"

    def test_ids_never_reused_after_removal(self, registry):
        first = registry.add_node(NodeKind.TASK)
        assert registry.remove_node(first.id) is True

        second = registry.add_node(NodeKind.TASK)
        assert second.id == "task-2"

    def test_ids_unique_across_many_additions(self, registry):
        kinds = list(NodeKind) * 10
        ids = [registry.add_node(kind).id for kind in kinds]
        assert len(ids) == len(set(ids))

    def test_returned_nodes_are_copies(self, registry):
        """Mutating a returned node does not change the registry."""
        node = registry.add_node(NodeKind.TASK)
        node.label = "Changed outside"

        assert registry.get_node(node.id).label == "Task"

    def test_update_node_config_refreshes_label_and_subtitle(self, registry):
        task = registry.add_node(NodeKind.TASK)

        updated = registry.update_node_config(task.id, {
            "title": "Collect documents",
            "assignee": "Alice",
            "dueDate": "2024-03-01",
        })

        node = registry.get_node(task.id)
        assert updated is True
        assert node.label == "Collect documents"
        assert node.subtitle == "Alice"
        assert node.config.due_date == date(2024, 3, 1)

    def test_update_node_config_keeps_label_without_title(self, registry):
        approval = registry.add_node(NodeKind.APPROVAL)
        registry.update_node_config(approval.id, {"title": "Manager sign-off"})
        registry.update_node_config(approval.id, {"approverRole": "Director"})

        node = registry.get_node(approval.id)
        assert node.label == "Manager sign-off"
        assert node.subtitle == "Director"

    def test_update_node_config_unknown_id_is_noop(self, registry):
        """Updating a missing node changes nothing and does not raise."""
        registry.add_node(NodeKind.START)
        before = registry.export_workflow()

        assert registry.update_node_config("task-99", {"title": "Ghost"}) is False
        assert json.dumps(registry.export_workflow()) == json.dumps(before)

    def test_update_node_config_rejects_bad_config(self, registry):
        approval = registry.add_node(NodeKind.APPROVAL)

        with pytest.raises(NodeConfigError):
            registry.update_node_config(approval.id, {"approverRole": "Janitor"})

        assert registry.get_node(approval.id).config == ApprovalConfig()

    def test_update_node_config_rejects_model_of_other_kind(self, registry):
        end = registry.add_node(NodeKind.END)
        with pytest.raises(NodeConfigError):
            registry.update_node_config(end.id, TaskConfig(title="Wrong"))

    def test_connect_allocates_edge_ids(self, registry):
        start = registry.add_node(NodeKind.START)
        end = registry.add_node(NodeKind.END)

        edge = registry.connect(start.id, end.id)

        assert edge.id == "edge-1"
        assert edge.source_node_id == "start-1"
        assert edge.target_node_id == "end-2"

    def test_connect_unknown_endpoint(self, registry):
        start = registry.add_node(NodeKind.START)

        with pytest.raises(NodeNotFoundError) as exc_info:
            registry.connect(start.id, "end-42")

        assert exc_info.value.node_id == "end-42"
        assert registry.edges == []

    def test_connect_accepts_duplicates_and_self_loops_by_default(self, registry):
        task = registry.add_node(NodeKind.TASK)
        end = registry.add_node(NodeKind.END)

        registry.connect(task.id, end.id)
        registry.connect(task.id, end.id)
        registry.connect(task.id, task.id)

        assert [edge.id for edge in registry.edges] == ["edge-1", "edge-2", "edge-3"]

    def test_connect_guards_when_enabled(self):
        guarded = WorkflowRegistry(allow_self_loops=False, allow_duplicate_edges=False)
        task = guarded.add_node(NodeKind.TASK)
        end = guarded.add_node(NodeKind.END)
        guarded.connect(task.id, end.id)

        with pytest.raises(EdgeRejectedError):
            guarded.connect(task.id, task.id)
        with pytest.raises(EdgeRejectedError):
            guarded.connect(task.id, end.id)
        assert len(guarded.edges) == 1

    def test_remove_node_drops_incident_edges(self, linear_registry):
        assert linear_registry.remove_node("task-2") is True

        assert [node.id for node in linear_registry.nodes] == ["start-1", "end-3"]
        assert linear_registry.edges == []

    def test_remove_unknown_ids(self, registry):
        assert registry.remove_node("task-1") is False
        assert registry.remove_edge("edge-1") is False

    def test_remove_edge(self, linear_registry):
        assert linear_registry.remove_edge("edge-1") is True
        assert [edge.id for edge in linear_registry.edges] == ["edge-2"]

    def test_replace_all_advances_counters(self, registry):
        registry.replace_all(
            nodes=[
                {"id": "start-7", "kind": "start", "label": "Start", "config": {}},
                {"id": "end-12", "kind": "end", "label": "End", "config": {}},
            ],
            edges=[{"id": "edge-5", "sourceNodeId": "start-7", "targetNodeId": "end-12"}],
        )

        assert registry.add_node(NodeKind.TASK).id == "task-13"
        assert registry.connect("start-7", "task-13").id == "edge-6"

    def test_replace_all_failure_leaves_registry_untouched(self, linear_registry):
        before = linear_registry.export_workflow()

        with pytest.raises(WorkflowImportError):
            linear_registry.replace_all(
                nodes=[{"id": "start-1", "kind": "start", "config": {}}],
                edges=[{"id": "edge-1", "sourceNodeId": "start-1", "targetNodeId": "missing"}],
            )

        assert linear_registry.export_workflow() == before

    @pytest.mark.parametrize("digits", [19, 4300, 5000])
    def test_replace_all_with_oversized_id_suffix(self, linear_registry, digits):
        """Huge numeric suffixes are imported as opaque ids and leave the counters alone."""
        huge_id = "start-" + "9" * digits

        linear_registry.replace_all(
            nodes=[{"id": huge_id, "kind": "start", "config": {}}],
            edges=[{"id": "edge-" + "7" * digits, "sourceNodeId": huge_id, "targetNodeId": huge_id}],
        )

        assert [node.id for node in linear_registry.nodes] == [huge_id]
        assert linear_registry.add_node(NodeKind.TASK).id == "task-4"
        assert linear_registry.connect(huge_id, "task-4").id == "edge-3"

    def test_replace_all_advances_counters_to_largest_supported_suffix(self, registry):
        registry.replace_all(
            nodes=[{"id": "task-" + "9" * 18, "kind": "task", "config": {}}],
            edges=[],
        )

        assert registry.add_node(NodeKind.END).id == "end-1" + "0" * 18

    def test_unknown_ids_logged_at_debug(self, registry, caplog):
        """The three silent no-ops report the same way."""
        with caplog.at_level(logging.DEBUG, logger="hr_workflow.core.registry"):
            registry.update_node_config("task-1", {"title": "Ghost"})
            registry.remove_node("task-1")
            registry.remove_edge("edge-1")

        assert [record.levelno for record in caplog.records] == [logging.DEBUG] * 3
        assert [record.extra_fields for record in caplog.records] == [
            {"node_id": "task-1"}, {"node_id": "task-1"}, {"edge_id": "edge-1"}
        ]

    def test_import_workflow_returns_summary(self, linear_registry):
        summary = WorkflowRegistry().import_workflow(linear_registry.export_workflow())

        assert summary.node_count == 3
        assert summary.edge_count == 2

    def test_snapshot_is_independent(self, linear_registry):
        snapshot = linear_registry.snapshot()
        linear_registry.add_node(NodeKind.APPROVAL)

        assert len(snapshot.nodes) == 3
        assert len(linear_registry.nodes) == 4


class TestNodeConfig:
    """Test cases for the configuration helpers."""

    def test_empty_config_per_kind(self):
        assert isinstance(empty_config(NodeKind.START), StartConfig)
        assert isinstance(empty_config("automated"), AutomatedConfig)
        assert empty_config(NodeKind.END) == EndConfig(show_summary=False)

    def test_coerce_config_accepts_camel_case_and_ignores_unknown_keys(self):
        config = coerce_config(NodeKind.AUTOMATED, {
            "title": "Welcome mail",
            "actionId": "send_email",
            "actionParams": {"to": "new.hire@example.com"},
            "colour": "blue",
        })

        assert config.action_id == "send_email"
        assert config.action_params == {"to": "new.hire@example.com"}

    def test_blank_inputs_become_unset(self):
        assert coerce_config(NodeKind.TASK, {"dueDate": ""}).due_date is None
        approval = coerce_config(NodeKind.APPROVAL, {"approverRole": "", "autoApproveThreshold": ""})
        assert approval.approver_role is None
        assert approval.auto_approve_threshold is None
        assert coerce_config(NodeKind.AUTOMATED, {"actionId": ""}).action_id is None

    def test_coerce_config_rejects_wrong_types(self):
        with pytest.raises(NodeConfigError):
            coerce_config(NodeKind.END, {"showSummary": "not-a-bool"})

    def test_update_field_returns_new_config(self):
        original = TaskConfig(title="Old")

        updated = update_field(original, "assignee", "Bob")
        renamed = update_field(updated, "title", "New")

        assert original.assignee is None
        assert updated.assignee == "Bob"
        assert renamed.title == "New"
        assert renamed.assignee == "Bob"

    def test_update_field_accepts_camel_case_names(self):
        config = update_field(ApprovalConfig(), "approverRole", "HRBP")
        assert config.approver_role == ApproverRole.HRBP

    def test_update_field_unknown_name(self):
        with pytest.raises(NodeConfigError):
            update_field(EndConfig(), "assignee", "Bob")

    def test_custom_fields_append_and_update(self):
        config = append_custom_field(append_custom_field(StartConfig()))
        config = update_custom_field(config, 0, key="department", value="Sales")
        config = update_custom_field(config, 1, key="department")

        assert [(field.key, field.value) for field in config.custom_fields] == [
            ("department", "Sales"),
            ("department", ""),
        ]

    def test_update_custom_field_out_of_range(self):
        config = append_custom_field(TaskConfig())
        with pytest.raises(NodeConfigError):
            update_custom_field(config, 1, value="x")

    def test_custom_fields_not_supported(self):
        with pytest.raises(NodeConfigError):
            append_custom_field(ApprovalConfig())

    def test_set_action_param(self):
        config = set_action_param(AutomatedConfig(action_id="send_slack"), "channel", "#hr")
        assert config.action_params == {"channel": "#hr"}

        with pytest.raises(NodeConfigError):
            set_action_param(TaskConfig(), "channel", "#hr")

    def test_derive_label_and_subtitle(self):
        assert derive_label(TaskConfig(title=""), "Task") == "Task"
        assert derive_label(TaskConfig(title="Onboard"), "Task") == "Onboard"
        assert derive_label(EndConfig(end_message="Bye"), "End") == "End"
        assert derive_subtitle(TaskConfig(assignee="Carol")) == "Carol"
        assert derive_subtitle(ApprovalConfig(approver_role=ApproverRole.C_LEVEL)) == "C-Level"
        assert derive_subtitle(StartConfig()) == ""


class TestWorkflowValidator:
    """Test cases for the Validator component."""

    def test_empty_workflow_reports_all_base_errors(self):
        issues = validate(Workflow())

        assert _codes(issues) == [
            ValidationErrorCode.EMPTY_WORKFLOW,
            ValidationErrorCode.MISSING_START,
            ValidationErrorCode.MISSING_END,
        ]
        assert [issue.message for issue in issues] == [
            "Workflow is empty",
            "Workflow must have a Start node",
            "Workflow must have an End node",
        ]

    def test_start_and_end_without_edges_is_valid(self, registry):
        registry.add_node(NodeKind.START)
        registry.add_node(NodeKind.END)

        assert validate(registry.snapshot()) == []

    def test_missing_end(self, registry):
        registry.add_node(NodeKind.START)
        assert _codes(validate(registry.snapshot())) == [ValidationErrorCode.MISSING_END]

    def test_extensions_are_off_by_default(self, registry):
        """Disconnected, looping and untitled graphs pass the base checks."""
        start = registry.add_node(NodeKind.START)
        task = registry.add_node(NodeKind.TASK)
        registry.add_node(NodeKind.END)
        registry.connect(task.id, task.id)
        registry.connect(start.id, start.id)

        assert validate(registry.snapshot()) == []

    def test_reachability_extension(self, linear_registry):
        linear_registry.add_node(NodeKind.APPROVAL)

        issues = validate(linear_registry.snapshot(), [ValidationExtension.REACHABILITY])

        assert _codes(issues) == [ValidationErrorCode.UNREACHABLE_NODE]
        assert issues[0].node_ids == ["approval-4"]
        assert issues[0].extension == ValidationExtension.REACHABILITY

    def test_termination_extension(self, registry):
        start = registry.add_node(NodeKind.START)
        dead_end = registry.add_node(NodeKind.TASK)
        registry.add_node(NodeKind.END)
        registry.connect(start.id, dead_end.id)

        issues = validate(registry.snapshot(), ["termination"])

        assert _codes(issues) == [ValidationErrorCode.NON_TERMINATING_PATH]
        assert issues[0].node_ids == ["start-1", "task-2"]

    def test_cycles_extension(self, linear_registry):
        linear_registry.connect("end-3", "task-2")

        issues = validate(linear_registry.snapshot(), [ValidationExtension.CYCLES])

        assert _codes(issues) == [ValidationErrorCode.CYCLE_DETECTED]
        assert set(issues[0].node_ids) == {"task-2", "end-3"}

    def test_acyclic_graph_has_no_cycle_findings(self, linear_registry):
        assert validate(linear_registry.snapshot(), [ValidationExtension.CYCLES]) == []

    def test_self_loop_and_duplicate_extensions(self, linear_registry):
        linear_registry.connect("task-2", "task-2")
        linear_registry.connect("start-1", "task-2")

        issues = validate(
            linear_registry.snapshot(),
            [ValidationExtension.SELF_LOOPS, ValidationExtension.DUPLICATE_EDGES]
        )

        assert _codes(issues) == [ValidationErrorCode.SELF_LOOP, ValidationErrorCode.DUPLICATE_EDGE]

    def test_required_fields_extension(self, linear_registry):
        issues = validate(linear_registry.snapshot(), [ValidationExtension.REQUIRED_FIELDS])
        assert _codes(issues) == [ValidationErrorCode.MISSING_REQUIRED_FIELD]

        linear_registry.update_node_config("task-2", {"title": "Sign contract"})
        assert validate(linear_registry.snapshot(), [ValidationExtension.REQUIRED_FIELDS]) == []

    def test_unknown_actions_extension(self, linear_registry, catalog):
        automated = linear_registry.add_node(NodeKind.AUTOMATED)
        linear_registry.update_node_config(automated.id, {"actionId": "launch_rocket"})
        validator = WorkflowValidator(extensions=[ValidationExtension.UNKNOWN_ACTIONS], catalog=catalog)

        issues = validator.validate(linear_registry.snapshot())
        assert _codes(issues) == [ValidationErrorCode.UNKNOWN_ACTION]

        linear_registry.update_node_config(automated.id, {"actionId": "send_email"})
        assert validator.validate(linear_registry.snapshot()) == []

    def test_report(self):
        result = WorkflowValidator().report(Workflow())
        assert result.is_valid is False
        assert len(result.errors) == 3


class TestSerialization:
    """Test cases for workflow export and import."""

    def test_export_shape(self, linear_registry):
        data = linear_registry.export_workflow()

        assert set(data) == {"nodes", "edges"}
        assert data["edges"][0] == {"id": "edge-1", "sourceNodeId": "start-1", "targetNodeId": "task-2"}
        assert data["nodes"][1]["config"]["customFields"] == []

    def test_round_trip_preserves_workflow(self, linear_registry):
        linear_registry.update_node_config("task-2", {
            "title": "Collect documents",
            "dueDate": "2024-05-01",
            "customFields": [{"key": "team", "value": "Ops"}, {"key": "team", "value": "HR"}],
        })
        original = linear_registry.snapshot()

        restored = loads_workflow(dumps_workflow(original))

        assert restored == original

    @pytest.mark.parametrize("kind,config", [
        (NodeKind.START, {"title": "Kick-off", "customFields": [{"key": "region", "value": "EMEA"}]}),
        (NodeKind.TASK, {"title": "Collect ID", "assignee": "Sam", "dueDate": "2024-07-15"}),
        (NodeKind.APPROVAL, {"title": "Budget sign-off", "approverRole": "Director", "autoApproveThreshold": 2500}),
        (NodeKind.AUTOMATED, {"actionId": "send_email", "actionParams": {"to": "it@example.com", "subject": "Laptop"}}),
        (NodeKind.END, {"endMessage": "Welcome aboard", "showSummary": True}),
    ])
    def test_round_trip_per_kind_with_extras(self, registry, kind, config):
        """Configs, presentation extras, self-loops and duplicate edges all survive export and import."""
        node = registry.add_node(kind, extra={"position": {"x": 120, "y": 40}, "selected": False})
        registry.update_node_config(node.id, config)
        end = registry.add_node(NodeKind.END)
        registry.connect(node.id, end.id, extra={"markerEnd": {"type": "arrowclosed"}, "animated": True})
        registry.connect(node.id, end.id)
        registry.connect(node.id, node.id)
        exported = registry.export_workflow()

        restored = WorkflowRegistry()
        restored.import_workflow(json.loads(json.dumps(exported)))

        assert restored.export_workflow() == exported
        assert restored.snapshot() == registry.snapshot()

        node_data = restored.export_workflow()["nodes"][0]
        assert node_data["id"] == node.id
        assert node_data["kind"] == kind.value
        assert node_data["position"] == {"x": 120, "y": 40}
        for key, value in config.items():
            assert node_data["config"][key] == value

        edges = restored.export_workflow()["edges"]
        assert edges[0]["markerEnd"] == {"type": "arrowclosed"}
        assert edges[0]["animated"] is True
        assert [(edge["sourceNodeId"], edge["targetNodeId"]) for edge in edges] == [
            (node.id, end.id), (node.id, end.id), (node.id, node.id)
        ]

    def test_dumps_is_pretty_printed(self, linear_registry):
        text = dumps_workflow(linear_registry.snapshot())
        assert text.startswith('{\n  "nodes": [')

    @pytest.mark.parametrize("data", [
        [],
        {"nodes": []},
        {"nodes": {}, "edges": []},
        {"nodes": [], "edges": "none"},
    ])
    def test_parse_rejects_bad_shape(self, data):
        with pytest.raises(WorkflowImportError):
            parse_workflow(data)

    def test_parse_rejects_duplicate_ids(self):
        node = {"id": "task-1", "kind": "task", "config": {}}
        with pytest.raises(WorkflowImportError) as exc_info:
            parse_workflow({"nodes": [node, node], "edges": []})
        assert exc_info.value.import_errors

    def test_parse_rejects_unknown_kind(self):
        with pytest.raises(WorkflowImportError):
            parse_workflow({"nodes": [{"id": "x-1", "kind": "loop", "config": {}}], "edges": []})

    def test_loads_rejects_invalid_json(self):
        with pytest.raises(WorkflowImportError):
            loads_workflow("{not json")
