"""
Error taxonomy for GraphLens.

None of these are allowed to escape into the rendering layer: the bridge
error becomes an error banner, malformed records and dangling edges are
skipped, and invalid mutations are silent no-ops.
"""


class GraphLensError(Exception):
    """Base class for all GraphLens errors."""


class TransportError(GraphLensError):
    """Raised when a bridge call fails (network, driver or database failure)."""


class MalformedRecordError(GraphLensError):
    """Raised when a record lacks the expected node/relationship shape."""


class DanglingEdgeError(GraphLensError):
    """Raised when an edge references an endpoint missing from the snapshot."""

    def __init__(self, edge_id: str, missing_id: str):
        super().__init__(f"Edge {edge_id} references missing node {missing_id}")
        self.edge_id = edge_id
        self.missing_id = missing_id


class InvalidMutation(GraphLensError):
    """Raised when a structural edit's preconditions do not hold."""
