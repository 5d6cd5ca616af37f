"""
OPTICGRAPH ONTOLOGY - The Vocabulary

Enums and well-known names shared by ports, nodes, and the graph.
"""
from enum import Enum


class PortType(str, Enum):
    """Direction of an optical port."""
    INPUT = "input"
    OUTPUT = "output"


class NodeKind(str, Enum):
    """Node type names used in persisted graphs."""
    DUMMY = "dummy"
    BEAM_SPLITTER = "beam splitter"
    SOURCE = "source"
    ENERGY_METER = "energy meter"
    REFERENCE = "reference"
    GROUP = "group"


# Well-known port names of the demonstration nodes
INPUT_1 = "input_1"
INPUT_2 = "input_2"
OUTPUT_1 = "output_1"
OUT1_TRANS1_REFL2 = "out1_trans1_refl2"
OUT2_TRANS2_REFL1 = "out2_trans2_refl1"

# Property holding the aliased node id of a reference node
REFERENCE_ID = "reference_id"
