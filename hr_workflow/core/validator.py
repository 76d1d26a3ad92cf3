"""Structural and semantic checks run before simulation or export.

The base checks are the ones the designer has always enforced: the workflow
is not empty, has a Start node and has an End node. Everything else
(reachability, cycles, edge hygiene, required fields) is an opt-in
extension and only runs when named in ``extensions``.
"""

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..models.core import (
    AutomatedConfig,
    NodeKind,
    TaskConfig,
    ValidationErrorCode,
    ValidationExtension,
    ValidationIssue,
    ValidationResult,
    Workflow,
)
from .automation_catalog import AutomationCatalog
from .logging import get_logger

logger = get_logger(__name__)


class WorkflowValidator:
    """Collects every finding for a workflow; never raises on bad graphs."""

    def __init__(
        self,
        extensions: Iterable[ValidationExtension] = (),
        catalog: Optional[AutomationCatalog] = None
    ):
        """Initialize the validator.

        Args:
            extensions: Opt-in checks to run in addition to the base checks
            catalog: Catalog used by the ``unknown_actions`` extension
        """
        self.extensions = [ValidationExtension(extension) for extension in extensions]
        self.catalog = catalog

    def validate(
        self,
        workflow: Workflow,
        extensions: Optional[Iterable[ValidationExtension]] = None
    ) -> List[ValidationIssue]:
        """
        Validate a workflow.

        Args:
            workflow: The workflow to check
            extensions: Overrides the validator's default extensions for this call

        Returns:
            List[ValidationIssue]: All findings; empty when the workflow is valid
        """
        selected = self.extensions if extensions is None else [ValidationExtension(e) for e in extensions]

        issues = self._base_checks(workflow)
        checks = {
            ValidationExtension.REACHABILITY: self._check_reachability,
            ValidationExtension.TERMINATION: self._check_termination,
            ValidationExtension.CYCLES: self._check_cycles,
            ValidationExtension.SELF_LOOPS: self._check_self_loops,
            ValidationExtension.DUPLICATE_EDGES: self._check_duplicate_edges,
            ValidationExtension.REQUIRED_FIELDS: self._check_required_fields,
            ValidationExtension.UNKNOWN_ACTIONS: self._check_unknown_actions,
        }
        for extension in selected:
            issues.extend(checks[extension](workflow))

        logger.debug(f"Workflow validation completed with {len(issues)} finding(s)")
        return issues

    def report(
        self,
        workflow: Workflow,
        extensions: Optional[Iterable[ValidationExtension]] = None
    ) -> ValidationResult:
        issues = self.validate(workflow, extensions)
        return ValidationResult(is_valid=not issues, errors=issues)

    @staticmethod
    def _base_checks(workflow: Workflow) -> List[ValidationIssue]:
        issues = []
        if not workflow.nodes:
            issues.append(ValidationIssue(
                code=ValidationErrorCode.EMPTY_WORKFLOW,
                message="Workflow is empty"
            ))
        if not workflow.has_kind(NodeKind.START):
            issues.append(ValidationIssue(
                code=ValidationErrorCode.MISSING_START,
                message="Workflow must have a Start node"
            ))
        if not workflow.has_kind(NodeKind.END):
            issues.append(ValidationIssue(
                code=ValidationErrorCode.MISSING_END,
                message="Workflow must have an End node"
            ))
        return issues

    @staticmethod
    def _adjacency(workflow: Workflow, reverse: bool = False) -> Dict[str, List[str]]:
        graph: Dict[str, List[str]] = defaultdict(list)
        for edge in workflow.edges:
            if reverse:
                graph[edge.target_node_id].append(edge.source_node_id)
            else:
                graph[edge.source_node_id].append(edge.target_node_id)
        return graph

    @staticmethod
    def _reachable(starts: Iterable[str], graph: Dict[str, List[str]]) -> Set[str]:
        """BFS over ``graph`` from every node in ``starts``."""
        reachable = set(starts)
        queue = deque(reachable)
        while queue:
            current = queue.popleft()
            for neighbor in graph.get(current, []):
                if neighbor not in reachable:
                    reachable.add(neighbor)
                    queue.append(neighbor)
        return reachable

    def _check_reachability(self, workflow: Workflow) -> List[ValidationIssue]:
        start_ids = [node.id for node in workflow.nodes if node.kind == NodeKind.START]
        if not start_ids:
            # Already reported as missing_start
            return []
        reachable = self._reachable(start_ids, self._adjacency(workflow))
        unreachable = [node.id for node in workflow.nodes if node.id not in reachable]
        if not unreachable:
            return []
        return [ValidationIssue(
            code=ValidationErrorCode.UNREACHABLE_NODE,
            message=f"Unreachable nodes detected: {', '.join(unreachable)}",
            node_ids=unreachable,
            extension=ValidationExtension.REACHABILITY
        )]

    def _check_termination(self, workflow: Workflow) -> List[ValidationIssue]:
        start_ids = [node.id for node in workflow.nodes if node.kind == NodeKind.START]
        end_ids = [node.id for node in workflow.nodes if node.kind == NodeKind.END]
        if not start_ids or not end_ids:
            return []
        reachable = self._reachable(start_ids, self._adjacency(workflow))
        can_finish = self._reachable(end_ids, self._adjacency(workflow, reverse=True))
        stuck = [node.id for node in workflow.nodes if node.id in reachable and node.id not in can_finish]
        if not stuck:
            return []
        return [ValidationIssue(
            code=ValidationErrorCode.NON_TERMINATING_PATH,
            message=f"Nodes with no path to an End node: {', '.join(stuck)}",
            node_ids=stuck,
            extension=ValidationExtension.TERMINATION
        )]

    def _check_cycles(self, workflow: Workflow) -> List[ValidationIssue]:
        graph = self._adjacency(workflow)
        visited: Set[str] = set()
        on_stack: Set[str] = set()
        in_cycle: List[str] = []

        # Iterative DFS so long chains cannot hit the recursion limit
        for root in (node.id for node in workflow.nodes):
            if root in visited:
                continue
            stack: List[Tuple[str, int]] = [(root, 0)]
            path: List[str] = [root]
            visited.add(root)
            on_stack.add(root)
            while stack:
                current, child_index = stack[-1]
                children = graph.get(current, [])
                if child_index < len(children):
                    stack[-1] = (current, child_index + 1)
                    neighbor = children[child_index]
                    if neighbor in on_stack:
                        for node_id in path[path.index(neighbor):]:
                            if node_id not in in_cycle:
                                in_cycle.append(node_id)
                    elif neighbor not in visited:
                        visited.add(neighbor)
                        on_stack.add(neighbor)
                        path.append(neighbor)
                        stack.append((neighbor, 0))
                else:
                    stack.pop()
                    on_stack.discard(path.pop())

        if not in_cycle:
            return []
        return [ValidationIssue(
            code=ValidationErrorCode.CYCLE_DETECTED,
            message=f"Workflow contains cycles through: {', '.join(in_cycle)}",
            node_ids=in_cycle,
            extension=ValidationExtension.CYCLES
        )]

    @staticmethod
    def _check_self_loops(workflow: Workflow) -> List[ValidationIssue]:
        return [
            ValidationIssue(
                code=ValidationErrorCode.SELF_LOOP,
                message=f"Edge '{edge.id}' connects node '{edge.source_node_id}' to itself",
                node_ids=[edge.source_node_id],
                extension=ValidationExtension.SELF_LOOPS
            )
            for edge in workflow.edges
            if edge.source_node_id == edge.target_node_id
        ]

    @staticmethod
    def _check_duplicate_edges(workflow: Workflow) -> List[ValidationIssue]:
        seen: Set[Tuple[str, str]] = set()
        issues = []
        for edge in workflow.edges:
            pair = (edge.source_node_id, edge.target_node_id)
            if pair in seen:
                issues.append(ValidationIssue(
                    code=ValidationErrorCode.DUPLICATE_EDGE,
                    message=f"Edge '{edge.id}' duplicates an existing connection {pair[0]} -> {pair[1]}",
                    node_ids=list(pair),
                    extension=ValidationExtension.DUPLICATE_EDGES
                ))
            seen.add(pair)
        return issues

    @staticmethod
    def _check_required_fields(workflow: Workflow) -> List[ValidationIssue]:
        issues = []
        for node in workflow.nodes:
            if isinstance(node.config, TaskConfig) and not (node.config.title or "").strip():
                issues.append(ValidationIssue(
                    code=ValidationErrorCode.MISSING_REQUIRED_FIELD,
                    message=f"Task '{node.id}' requires a title",
                    node_ids=[node.id],
                    extension=ValidationExtension.REQUIRED_FIELDS
                ))
        return issues

    def _check_unknown_actions(self, workflow: Workflow) -> List[ValidationIssue]:
        if self.catalog is None:
            return []
        issues = []
        for node in workflow.nodes:
            config = node.config
            if isinstance(config, AutomatedConfig) and config.action_id and not self.catalog.exists(config.action_id):
                issues.append(ValidationIssue(
                    code=ValidationErrorCode.UNKNOWN_ACTION,
                    message=f"Automated node '{node.id}' uses unknown action '{config.action_id}'",
                    node_ids=[node.id],
                    extension=ValidationExtension.UNKNOWN_ACTIONS
                ))
        return issues


def validate(
    workflow: Workflow,
    extensions: Iterable[ValidationExtension] = (),
    catalog: Optional[AutomationCatalog] = None
) -> List[ValidationIssue]:
    """Validate ``workflow`` with a one-off validator."""
    return WorkflowValidator(extensions=extensions, catalog=catalog).validate(workflow)
