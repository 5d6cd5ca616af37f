"""
OPTICGRAPH CORE - Central exports for the graph engine.

This module provides access to:
- The graph (OpticGraph) and its node handles (OpticRef)
- The node contract (OpticNode) and port bookkeeping (OpticPorts, PortMap)
- Payload and persistence schemas
- The exception hierarchy
"""
from opticgraph.core.errors import (
    AnalysisError,
    DuplicateNodeError,
    GraphInvariantError,
    NodeNotFoundError,
    OpticGraphError,
    PortError,
    PortMappingError,
    SerializationError,
    StructuralError,
)
from opticgraph.core.light_flow import LightFlow
from opticgraph.core.ontology import NodeKind, PortType
from opticgraph.core.optic_graph import OpticGraph
from opticgraph.core.optic_node import NodeAttr, OpticNode
from opticgraph.core.optic_ports import OpticPorts
from opticgraph.core.optic_ref import OpticRef
from opticgraph.core.port_map import PortMap
from opticgraph.core.registry import create_node, register_node_type
from opticgraph.core.schemas import (
    EnergyData,
    FourierData,
    GraphRecord,
    Isometry,
    LightData,
    LightResult,
    NodeRecord,
)

__all__ = [
    "AnalysisError",
    "DuplicateNodeError",
    "GraphInvariantError",
    "NodeNotFoundError",
    "OpticGraphError",
    "PortError",
    "PortMappingError",
    "SerializationError",
    "StructuralError",
    "LightFlow",
    "NodeKind",
    "PortType",
    "OpticGraph",
    "NodeAttr",
    "OpticNode",
    "OpticPorts",
    "OpticRef",
    "PortMap",
    "create_node",
    "register_node_type",
    "EnergyData",
    "FourierData",
    "GraphRecord",
    "Isometry",
    "LightData",
    "LightResult",
    "NodeRecord",
]
