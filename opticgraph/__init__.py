"""
OPTICGRAPH - Composable Optical Setups as Directed Acyclic Graphs

Subpackages:
- core: the graph engine (ports, port maps, light flows, analysis, persistence)
- nodes: concrete node types (dummy, beam splitter, source, meter, reference, group)
- infrastructure: configuration and mutation logging
"""
from opticgraph.core import (
    AnalysisError,
    EnergyData,
    Isometry,
    OpticGraph,
    OpticGraphError,
    OpticNode,
    PortType,
)

__version__ = "0.1.0"

__all__ = [
    "AnalysisError",
    "EnergyData",
    "Isometry",
    "OpticGraph",
    "OpticGraphError",
    "OpticNode",
    "PortType",
]
