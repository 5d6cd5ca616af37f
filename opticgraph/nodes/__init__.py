"""
OPTICGRAPH NODES - Concrete Node Types

Importing this package registers every node type with the registry so that
persisted graphs can be rebuilt.
"""
from opticgraph.nodes.beam_splitter import BeamSplitter
from opticgraph.nodes.dummy import Dummy
from opticgraph.nodes.energy_meter import EnergyMeter
from opticgraph.nodes.group import NodeGroup
from opticgraph.nodes.reference import NodeReference
from opticgraph.nodes.source import Source

__all__ = [
    "BeamSplitter",
    "Dummy",
    "EnergyMeter",
    "NodeGroup",
    "NodeReference",
    "Source",
]
