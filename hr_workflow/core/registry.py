"""Workflow Registry for node and edge handling."""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Union

from ..models.core import (
    DEFAULT_LABELS,
    Edge,
    Node,
    NodeConfig,
    NodeKind,
    Workflow,
    WorkflowSummary,
)
from .exceptions import EdgeRejectedError, NodeNotFoundError
from .logging import get_logger, log_with_context
from .node_config import coerce_config, derive_label, derive_subtitle, empty_config
from .serialization import export_workflow, parse_workflow

logger = get_logger(__name__)

# Suffixes longer than this are treated as unnumbered
_NUMBERED_ID = re.compile(r"-(\d{1,18})$")


class WorkflowRegistry:
    """Owns the nodes and edges of the workflow being designed.

    Node and edge ids come from counters held by this instance. The counters
    only ever move forward, so an id is never handed out twice, even after a
    removal or an import.

    Mutations are synchronous; on an event loop each one is atomic with
    respect to any other coroutine.
    """

    def __init__(self, allow_self_loops: bool = True, allow_duplicate_edges: bool = True):
        """Initialize an empty registry.

        Args:
            allow_self_loops: When False, ``connect`` refuses edges from a node to itself
            allow_duplicate_edges: When False, ``connect`` refuses a second edge
                between the same ordered pair of nodes
        """
        self.allow_self_loops = allow_self_loops
        self.allow_duplicate_edges = allow_duplicate_edges
        self._nodes: List[Node] = []
        self._edges: List[Edge] = []
        self._next_node_number = 1
        self._next_edge_number = 1

    @property
    def nodes(self) -> List[Node]:
        """Copies of the nodes in document order."""
        return [node.model_copy(deep=True) for node in self._nodes]

    @property
    def edges(self) -> List[Edge]:
        return [edge.model_copy(deep=True) for edge in self._edges]

    def snapshot(self) -> Workflow:
        """Return an independent copy of the current workflow."""
        return Workflow(nodes=self.nodes, edges=self.edges)

    def summary(self) -> WorkflowSummary:
        return WorkflowSummary(node_count=len(self._nodes), edge_count=len(self._edges))

    def get_node(self, node_id: str) -> Optional[Node]:
        index = self._find_node_index(node_id)
        if index is None:
            return None
        return self._nodes[index].model_copy(deep=True)

    def add_node(self, kind: Union[NodeKind, str], extra: Optional[Dict[str, Any]] = None) -> Node:
        """
        Add a new node of the given kind.

        Args:
            kind: Node kind
            extra: Presentation fields (e.g. canvas position) stored untouched

        Returns:
            Node: A copy of the node that was added
        """
        kind = NodeKind(kind)
        node_id = f"{kind.value}-{self._next_node_number}"
        self._next_node_number += 1

        node = Node.model_validate({
            **(extra or {}),
            "id": node_id,
            "kind": kind,
            "label": DEFAULT_LABELS[kind],
            "subtitle": "",
            "config": empty_config(kind),
        })
        self._nodes.append(node)

        log_with_context(
            logger, logging.INFO, f"Added {kind.value} node: {node_id}",
            node_id=node_id, node_kind=kind.value
        )
        return node.model_copy(deep=True)

    def update_node_config(self, node_id: str, config: Union[NodeConfig, Dict[str, Any]]) -> bool:
        """
        Replace a node's configuration and refresh its label and subtitle.

        An unknown ``node_id`` is a silent no-op.

        Args:
            node_id: ID of the node to update
            config: New configuration, a model or a camelCase mapping

        Returns:
            bool: True if the node was updated, False if it does not exist

        Raises:
            NodeConfigError: If ``config`` does not fit the node's kind
        """
        index = self._find_node_index(node_id)
        if index is None:
            log_with_context(logger, logging.DEBUG, f"Node '{node_id}' not found for config update", node_id=node_id)
            return False

        node = self._nodes[index]
        new_config = coerce_config(node.kind, config)
        self._nodes[index] = node.model_copy(update={
            "config": new_config,
            "label": derive_label(new_config, node.label),
            "subtitle": derive_subtitle(new_config),
        })

        log_with_context(logger, logging.DEBUG, f"Updated config for node: {node_id}", node_id=node_id)
        return True

    def connect(self, source_id: str, target_id: str, extra: Optional[Dict[str, Any]] = None) -> Edge:
        """
        Create an edge between two existing nodes.

        Duplicate edges and self-loops are accepted unless the matching guard
        was switched off at construction time.

        Raises:
            NodeNotFoundError: If either endpoint does not exist
            EdgeRejectedError: If an enabled guard refuses the edge
        """
        for endpoint in (source_id, target_id):
            if self._find_node_index(endpoint) is None:
                raise NodeNotFoundError(f"Node '{endpoint}' does not exist", node_id=endpoint)

        if not self.allow_self_loops and source_id == target_id:
            raise EdgeRejectedError(
                f"Self-referencing edge not allowed: {source_id}",
                source_node_id=source_id,
                target_node_id=target_id
            )
        if not self.allow_duplicate_edges and any(
            edge.source_node_id == source_id and edge.target_node_id == target_id
            for edge in self._edges
        ):
            raise EdgeRejectedError(
                f"Edge from '{source_id}' to '{target_id}' already exists",
                source_node_id=source_id,
                target_node_id=target_id
            )

        edge_id = f"edge-{self._next_edge_number}"
        self._next_edge_number += 1
        edge = Edge.model_validate({
            **(extra or {}),
            "id": edge_id,
            "sourceNodeId": source_id,
            "targetNodeId": target_id,
        })
        self._edges.append(edge)

        log_with_context(logger, logging.INFO, f"Connected {source_id} -> {target_id}", edge_id=edge_id)
        return edge.model_copy(deep=True)

    def remove_node(self, node_id: str) -> bool:
        """Remove a node and every edge touching it. Unknown ids are ignored."""
        index = self._find_node_index(node_id)
        if index is None:
            log_with_context(logger, logging.DEBUG, f"Node '{node_id}' not found for removal", node_id=node_id)
            return False

        del self._nodes[index]
        before = len(self._edges)
        self._edges = [
            edge for edge in self._edges
            if edge.source_node_id != node_id and edge.target_node_id != node_id
        ]

        log_with_context(
            logger, logging.INFO,
            f"Removed node {node_id} and {before - len(self._edges)} incident edge(s)",
            node_id=node_id
        )
        return True

    def remove_edge(self, edge_id: str) -> bool:
        for index, edge in enumerate(self._edges):
            if edge.id == edge_id:
                del self._edges[index]
                log_with_context(logger, logging.INFO, f"Removed edge {edge_id}", edge_id=edge_id)
                return True
        log_with_context(logger, logging.DEBUG, f"Edge '{edge_id}' not found for removal", edge_id=edge_id)
        return False

    def replace_all(self, nodes: List[Any], edges: List[Any]) -> None:
        """
        Atomically replace every node and edge.

        Raises:
            WorkflowImportError: If the records do not have the expected shape.
                The registry is unchanged in that case.
        """
        self._install(parse_workflow({"nodes": nodes, "edges": edges}))

    def import_workflow(self, data: Any) -> WorkflowSummary:
        """Replace the workflow with decoded file contents, see ``replace_all``."""
        self._install(parse_workflow(data))
        return self.summary()

    def export_workflow(self) -> Dict[str, Any]:
        """The whole workflow in its file shape."""
        return export_workflow(self.snapshot())

    def _install(self, workflow: Workflow) -> None:
        # Compute everything before replacing any state
        next_node_number = max(self._next_node_number, self._highest_suffix(workflow.nodes) + 1)
        next_edge_number = max(self._next_edge_number, self._highest_suffix(workflow.edges) + 1)
        nodes = [node.model_copy(deep=True) for node in workflow.nodes]
        edges = [edge.model_copy(deep=True) for edge in workflow.edges]

        self._nodes, self._edges = nodes, edges
        self._next_node_number, self._next_edge_number = next_node_number, next_edge_number

        logger.info(f"Replaced workflow: {len(self._nodes)} node(s), {len(self._edges)} edge(s)")

    @staticmethod
    def _highest_suffix(records: Iterable[Union[Node, Edge]]) -> int:
        highest = 0
        for record in records:
            match = _NUMBERED_ID.search(record.id)
            if match:
                highest = max(highest, int(match.group(1)))
        return highest

    def _find_node_index(self, node_id: str) -> Optional[int]:
        for index, node in enumerate(self._nodes):
            if node.id == node_id:
                return index
        return None
