"""
Pytest configuration and shared fixtures for the opticgraph test suite.
"""
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def reset_global_state():
    """Reset configuration and mutation log before each test to ensure isolation."""
    from opticgraph.infrastructure.config import OpticGraphConfig, set_config
    from opticgraph.infrastructure.logger import MutationLogger, set_logger

    set_config(OpticGraphConfig())
    set_logger(MutationLogger())

    yield

    set_config(None)
    set_logger(None)


@pytest.fixture
def fresh_graph():
    """Provide an empty OpticGraph."""
    from opticgraph.core.optic_graph import OpticGraph
    return OpticGraph()


@pytest.fixture
def splitter_graph(fresh_graph):
    """
    Provide the two-node 60/40 setup: a dummy whose input is exposed as
    "input_1", feeding a beam splitter (ratio 0.6) whose transmitted output is
    exposed as "output_1".
    """
    from opticgraph.core.ontology import PortType
    from opticgraph.nodes import BeamSplitter, Dummy

    d = fresh_graph.add_node(Dummy(name="entry"))
    bs = fresh_graph.add_node(BeamSplitter(ratio=0.6, name="splitter"))
    fresh_graph.connect_nodes(d, "output_1", bs, "input_1", 0.5)
    fresh_graph.map_port(d, PortType.INPUT, "input_1", "input_1")
    fresh_graph.map_port(bs, PortType.OUTPUT, "out1_trans1_refl2", "output_1")

    return fresh_graph, {"dummy": d, "splitter": bs}
