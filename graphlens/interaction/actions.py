"""
Graph Actions - structural edits for the editable graph.

Each method derives a new snapshot from the session's current one and
commits it through ``session.replace_snapshot`` so layout and rendering
always see the edit as one whole-value replacement.
"""

import logging
import uuid
from typing import Callable, Sequence, Tuple

from graphlens.errors import InvalidMutation
from graphlens.interaction.constants import NEW_LINK_TYPE
from graphlens.model import EdgeDescriptor, GraphSnapshot, NodeDescriptor

logger = logging.getLogger(__name__)


def next_node_id(snapshot: GraphSnapshot) -> str:
    """Lowest unused integer id, counting up from len(nodes) + 1."""
    candidate = len(snapshot.nodes) + 1
    while snapshot.has_node(str(candidate)):
        candidate += 1
    return str(candidate)


def new_edge_id() -> str:
    return str(uuid.uuid4())


class GraphActions:
    """
    Handles execution of editing actions against a GraphSession.

    ``node_id_factory`` and ``edge_id_factory`` can be swapped for
    deterministic ids in tests.
    """

    def __init__(self, session,
                 node_id_factory: Callable[[GraphSnapshot], str] = next_node_id,
                 edge_id_factory: Callable[[], str] = new_edge_id):
        self.session = session
        self._node_id_factory = node_id_factory
        self._edge_id_factory = edge_id_factory

    def create_node(self, position: Tuple[float, float],
                    labels: Sequence[str] = ()) -> str:
        """
        Create a new node seeded at the given canvas position.

        Returns:
            Created node ID
        """
        snapshot = self.session.snapshot
        node_id = self._node_id_factory(snapshot)
        if snapshot.has_node(node_id):
            raise InvalidMutation(f"Node id {node_id} already exists")

        node = NodeDescriptor(node_id, tuple(labels))
        self.session.replace_snapshot(snapshot.with_node(node), seeds={node_id: position})
        logger.info(f"Created node {node_id} at ({position[0]:.1f}, {position[1]:.1f})")
        return node_id

    def delete_node(self, node_id: str) -> int:
        """
        Delete a node and every edge that references it.

        Returns:
            Number of edges removed with the node
        """
        snapshot = self.session.snapshot
        if not snapshot.has_node(node_id):
            raise InvalidMutation(f"Node {node_id} does not exist")

        removed_edges = len(snapshot.edges_of(node_id))
        self.session.replace_snapshot(snapshot.without_node(node_id))
        logger.info(f"Deleted node {node_id} and {removed_edges} edge(s)")
        return removed_edges

    def connect_nodes(self, source_id: str, target_id: str,
                      rel_type: str = NEW_LINK_TYPE) -> str:
        """
        Add a directed link source -> target.

        Both nodes must exist, they must differ, and no edge may already
        connect exactly this (source, target) pair.
        """
        snapshot = self.session.snapshot
        if not snapshot.has_node(source_id):
            raise InvalidMutation(f"Source node {source_id} does not exist")
        if not snapshot.has_node(target_id):
            raise InvalidMutation(f"Target node {target_id} does not exist")
        if source_id == target_id:
            raise InvalidMutation("A node cannot link to itself")
        if snapshot.has_link(source_id, target_id):
            raise InvalidMutation(f"Link {source_id} -> {target_id} already exists")

        edge = EdgeDescriptor(self._edge_id_factory(), source_id, target_id, rel_type)
        self.session.replace_snapshot(snapshot.with_edge(edge))
        logger.info(f"Linked {source_id} -> {target_id}")
        return edge.id
