"""
Graph Model Builder - turns raw bridge records into a GraphSnapshot.

Record values are duck-typed on the wire. They are discriminated here, once,
into NodeShape / RelationshipShape / ScalarShape and nothing downstream ever
inspects raw record values again.

Known limitation: the graph viewer fetches nodes and relationships with two
independent queries. The builder does not reconcile them; a relationship
whose endpoint is not in the node result stays in the snapshot and is simply
not rendered.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Tuple, Union

from graphlens.errors import MalformedRecordError
from graphlens.model import EdgeDescriptor, GraphSnapshot, NodeDescriptor

logger = logging.getLogger(__name__)

NODE_KEYS = ('elementId', 'labels', 'properties')
RELATIONSHIP_KEYS = ('elementId', 'startNodeElementId', 'endNodeElementId', 'type')


@dataclass(frozen=True)
class NodeShape:
    element_id: str
    labels: Tuple[str, ...]
    properties: Mapping[str, Any]
    raw: Mapping[str, Any]

    def to_descriptor(self) -> NodeDescriptor:
        return NodeDescriptor(self.element_id, self.labels, self.properties, self.raw)


@dataclass(frozen=True)
class RelationshipShape:
    element_id: str
    start_id: str
    end_id: str
    type: str
    properties: Mapping[str, Any]
    raw: Mapping[str, Any]

    def to_descriptor(self) -> EdgeDescriptor:
        return EdgeDescriptor(self.element_id, self.start_id, self.end_id,
                              self.type, self.properties, self.raw)


@dataclass(frozen=True)
class ScalarShape:
    value: Any


RecordShape = Union[NodeShape, RelationshipShape, ScalarShape]


def _has_keys(value: Any, keys: Iterable[str]) -> bool:
    return isinstance(value, Mapping) and all(k in value for k in keys)


def classify(value: Any) -> RecordShape:
    """Discriminate a record value by which fields are present."""
    if _has_keys(value, RELATIONSHIP_KEYS):
        properties = value.get('properties') or {}
        if not isinstance(properties, Mapping):
            return ScalarShape(value)
        return RelationshipShape(
            element_id=str(value['elementId']),
            start_id=str(value['startNodeElementId']),
            end_id=str(value['endNodeElementId']),
            type=str(value['type']),
            properties=properties,
            raw=value,
        )
    if _has_keys(value, NODE_KEYS):
        labels = value['labels']
        properties = value['properties']
        if not isinstance(labels, (list, tuple)) or not isinstance(properties, Mapping):
            return ScalarShape(value)
        return NodeShape(
            element_id=str(value['elementId']),
            labels=tuple(str(label) for label in labels),
            properties=properties,
            raw=value,
        )
    return ScalarShape(value)


def _is_path(value: Any) -> bool:
    return isinstance(value, Mapping) and isinstance(value.get('segments'), list)


class GraphModelBuilder:
    """
    Build GraphSnapshots from bridge records.

    ``node_key`` and ``relationship_key`` are the return aliases used by the
    two graph-viewer queries (``RETURN n`` and ``RETURN r``).
    """

    def __init__(self, node_key: str = 'n', relationship_key: str = 'r'):
        self.node_key = node_key
        self.relationship_key = relationship_key

    def _shape_at(self, record: Any, key: str, expected: type) -> RecordShape:
        if not isinstance(record, Mapping) or key not in record:
            raise MalformedRecordError(f"Record has no '{key}' value")
        shape = classify(record[key])
        if not isinstance(shape, expected):
            raise MalformedRecordError(
                f"Value under '{key}' is not {expected.__name__}"
            )
        return shape

    def build(self, node_records: Iterable[Any], relationship_records: Iterable[Any]) -> GraphSnapshot:
        """Map node records and relationship records 1:1 onto descriptors."""
        nodes: List[NodeDescriptor] = []
        edges: List[EdgeDescriptor] = []
        skipped = 0

        for record in node_records:
            try:
                nodes.append(self._shape_at(record, self.node_key, NodeShape).to_descriptor())
            except MalformedRecordError as e:
                skipped += 1
                logger.warning(f"Skipping node record: {e}")

        for record in relationship_records:
            try:
                shape = self._shape_at(record, self.relationship_key, RelationshipShape)
                edges.append(shape.to_descriptor())
            except MalformedRecordError as e:
                skipped += 1
                logger.warning(f"Skipping relationship record: {e}")

        snapshot = GraphSnapshot(nodes, edges, skipped_records=skipped)
        dangling = len(snapshot.dangling_edges())
        if dangling:
            logger.info(f"{dangling} relationship(s) reference nodes outside the node result")
        return snapshot

    def _walk(self, value: Any) -> Iterator[RecordShape]:
        if _is_path(value):
            # A zero-length path has no segments; its node is only under start
            yield from self._walk(value.get('start'))
            for segment in value['segments']:
                if isinstance(segment, Mapping):
                    for part in ('start', 'relationship', 'end'):
                        yield from self._walk(segment.get(part))
            return
        if isinstance(value, (list, tuple)):
            for item in value:
                yield from self._walk(item)
            return
        shape = classify(value)
        if not isinstance(shape, ScalarShape):
            yield shape

    def build_from_records(self, records: Iterable[Any]) -> GraphSnapshot:
        """
        Collect every node and relationship found anywhere in heterogeneous
        records (any alias, nested lists, paths). Scalars are ignored.
        """
        nodes: List[NodeDescriptor] = []
        edges: List[EdgeDescriptor] = []
        skipped = 0

        for record in records:
            if not isinstance(record, Mapping):
                skipped += 1
                logger.warning(f"Skipping record of type {type(record).__name__}")
                continue
            for value in record.values():
                for shape in self._walk(value):
                    if isinstance(shape, NodeShape):
                        nodes.append(shape.to_descriptor())
                    else:
                        edges.append(shape.to_descriptor())

        return GraphSnapshot(nodes, edges, skipped_records=skipped)


def records_summary(records: List[Dict[str, Any]]) -> str:
    """Short human description of a result set, for notifications."""
    count = len(records)
    if count == 0:
        return "No records returned"
    columns = list(records[0].keys()) if isinstance(records[0], Mapping) else []
    return f"{count} record(s), columns: {', '.join(columns) or '-'}"
