"""
Normalized graph model shared by the layout engine, the renderer and the
interaction controller.

A GraphSnapshot is an immutable value. Structural edits never patch a
snapshot in place; they return a new one, so every consumer always sees a
consistent whole.

Edges may reference endpoints that are absent from the node set (the node
and relationship fetches are independent). Such edges stay in the snapshot
but are never rendered or laid out; see ``renderable_edges``.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import networkx as nx

from graphlens.errors import DanglingEdgeError


def _freeze(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class NodeDescriptor:
    """A node identified by its database element id."""
    id: str
    labels: Tuple[str, ...] = ()
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False)
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'labels', tuple(self.labels))
        object.__setattr__(self, 'properties', _freeze(self.properties))
        object.__setattr__(self, 'raw', _freeze(self.raw))

    @property
    def caption(self) -> str:
        return self.labels[0] if self.labels else self.id


@dataclass(frozen=True)
class EdgeDescriptor:
    """A directed relationship between two node ids."""
    id: str
    source_id: str
    target_id: str
    type: str = ""
    properties: Mapping[str, Any] = field(default_factory=dict, compare=False)
    raw: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def __post_init__(self):
        object.__setattr__(self, 'properties', _freeze(self.properties))
        object.__setattr__(self, 'raw', _freeze(self.raw))

    def touches(self, node_id: str) -> bool:
        return self.source_id == node_id or self.target_id == node_id


def _unique_by_id(items: Iterable) -> Tuple:
    seen = set()
    unique = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        unique.append(item)
    return tuple(unique)


class GraphSnapshot:
    """
    One complete, immutable graph model instance.

    Nodes and edges are unique by id; the first occurrence of an id wins.
    Iteration order follows insertion order.
    """

    __slots__ = ('_nodes', '_edges', '_node_index', '_edge_index', '_skipped')

    def __init__(self, nodes: Iterable[NodeDescriptor] = (),
                 edges: Iterable[EdgeDescriptor] = (),
                 skipped_records: int = 0):
        self._nodes = _unique_by_id(nodes)
        self._edges = _unique_by_id(edges)
        self._node_index = {n.id: n for n in self._nodes}
        self._edge_index = {e.id: e for e in self._edges}
        self._skipped = skipped_records

    def __repr__(self) -> str:
        return f"GraphSnapshot(nodes={len(self._nodes)}, edges={len(self._edges)})"

    def __eq__(self, other) -> bool:
        if not isinstance(other, GraphSnapshot):
            return NotImplemented
        return self._nodes == other._nodes and self._edges == other._edges

    __hash__ = None

    @property
    def nodes(self) -> Tuple[NodeDescriptor, ...]:
        return self._nodes

    @property
    def edges(self) -> Tuple[EdgeDescriptor, ...]:
        return self._edges

    @property
    def skipped_records(self) -> int:
        """Number of malformed records the builder skipped."""
        return self._skipped

    @property
    def node_ids(self) -> List[str]:
        return [n.id for n in self._nodes]

    def is_empty(self) -> bool:
        return not self._nodes and not self._edges

    # --- Lookups ---

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def node(self, node_id: str) -> Optional[NodeDescriptor]:
        return self._node_index.get(node_id)

    def edge(self, edge_id: str) -> Optional[EdgeDescriptor]:
        return self._edge_index.get(edge_id)

    def endpoints(self, edge: EdgeDescriptor) -> Tuple[NodeDescriptor, NodeDescriptor]:
        """Resolve both endpoints of an edge or raise DanglingEdgeError."""
        for node_id in (edge.source_id, edge.target_id):
            if node_id not in self._node_index:
                raise DanglingEdgeError(edge.id, node_id)
        return self._node_index[edge.source_id], self._node_index[edge.target_id]

    def is_renderable(self, edge: EdgeDescriptor) -> bool:
        return edge.source_id in self._node_index and edge.target_id in self._node_index

    def renderable_edges(self) -> Tuple[EdgeDescriptor, ...]:
        return tuple(e for e in self._edges if self.is_renderable(e))

    def dangling_edges(self) -> Tuple[EdgeDescriptor, ...]:
        return tuple(e for e in self._edges if not self.is_renderable(e))

    def has_link(self, source_id: str, target_id: str) -> bool:
        """True if an edge with exactly this (source, target) pair exists."""
        return any(e.source_id == source_id and e.target_id == target_id for e in self._edges)

    def edges_of(self, node_id: str) -> Tuple[EdgeDescriptor, ...]:
        return tuple(e for e in self._edges if e.touches(node_id))

    # --- Structural edits (always return a new snapshot) ---

    def with_node(self, node: NodeDescriptor) -> 'GraphSnapshot':
        return GraphSnapshot(self._nodes + (node,), self._edges)

    def without_node(self, node_id: str) -> 'GraphSnapshot':
        """Drop a node and every edge that references it as source or target."""
        return GraphSnapshot(
            (n for n in self._nodes if n.id != node_id),
            (e for e in self._edges if not e.touches(node_id)),
        )

    def with_edge(self, edge: EdgeDescriptor) -> 'GraphSnapshot':
        return GraphSnapshot(self._nodes, self._edges + (edge,))

    # --- Conversions ---

    def to_networkx(self) -> nx.MultiDiGraph:
        """
        Build a NetworkX view of the renderable graph.

        Only edges whose endpoints both exist are added, so the result never
        contains implicit nodes created by dangling references.
        """
        G = nx.MultiDiGraph()
        for node in self._nodes:
            G.add_node(node.id, labels=node.labels)
        for edge in self._edges:
            if edge.source_id in G.nodes and edge.target_id in G.nodes:
                G.add_edge(edge.source_id, edge.target_id, key=edge.id, type=edge.type)
        return G

    def degrees(self) -> Dict[str, int]:
        """Undirected degree per node over renderable edges."""
        return dict(self.to_networkx().degree())


EMPTY_SNAPSHOT = GraphSnapshot()
