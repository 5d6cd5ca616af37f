"""
OPTICGRAPH ERRORS - What Can Go Wrong, Named

Every documented failure mode of the graph engine is a recoverable exception
rooted in OpticGraphError. Callers can catch the broad base class or one of
the four kinds below:

- Structural: unknown node/port, duplicate connection, cycle, bad distance
- Mapping:    duplicate external name, port not externally eligible,
              mutation while the graph is flagged inverted
- Analysis:   node-level failure during a propagation pass, wrong payload,
              node that cannot be positioned or inverted
- Serialization: missing field, dangling reference id, replay failure

Mutating graph operations are all-or-nothing: if one of these is raised,
the graph is left exactly as it was before the call.
"""
from typing import Optional


class OpticGraphError(Exception):
    """Base exception for optical graph operations."""
    pass


class StructuralError(OpticGraphError):
    """Raised for invalid connections (ports, duplicates, distances)."""
    pass


class NodeNotFoundError(StructuralError):
    """Raised when a node UUID is not in the graph."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class DuplicateNodeError(StructuralError):
    """Raised when attempting to add a node with an existing ID."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Node already exists: {node_id}")


class GraphInvariantError(StructuralError):
    """Raised when a graph invariant is violated (cycles in DAG, etc.)."""
    pass


class PortError(StructuralError):
    """Raised for invalid port declarations or port map entries."""
    pass


class PortMappingError(OpticGraphError):
    """Raised when an external port mapping cannot be applied."""
    pass


class AnalysisError(OpticGraphError):
    """
    Raised when a propagation pass fails.

    Carries the id of the offending node (if known) so the error chain can be
    traced back to the node that broke the pass.
    """
    def __init__(self, message: str, node_id: Optional[str] = None):
        self.node_id = node_id
        super().__init__(message)


class SerializationError(OpticGraphError):
    """Raised when a persisted graph cannot be reconstructed."""
    pass
