"""
Unit tests for port bookkeeping - OpticPorts, PortMap, LightFlow
"""
import math

import pytest

from opticgraph.core.errors import PortError, StructuralError
from opticgraph.core.light_flow import LightFlow
from opticgraph.core.ontology import PortType
from opticgraph.core.optic_ports import OpticPorts
from opticgraph.core.port_map import PortMap
from opticgraph.core.schemas import EnergyData


# =============================================================================
# OPTIC PORTS
# =============================================================================

def test_ports_are_sorted_and_flip_when_inverted():
    ports = OpticPorts()
    ports.create_input("b")
    ports.create_input("a")
    ports.create_output("out")

    assert ports.input_names() == ["a", "b"]
    assert ports.names(PortType.OUTPUT) == ["out"]

    ports.set_inverted(True)
    assert ports.input_names() == ["out"]
    assert ports.output_names() == ["a", "b"]
    assert ports.contains(PortType.INPUT, "out")


def test_duplicate_port_fails():
    ports = OpticPorts()
    ports.add(PortType.INPUT, "in")

    with pytest.raises(PortError):
        ports.create_input("in")


# =============================================================================
# PORT MAP
# =============================================================================

def test_port_map_add_and_lookup():
    pm = PortMap()
    pm.add("ext", "node-a", "input_1")

    assert pm.get("ext") == ("node-a", "input_1")
    assert pm.external_port_name("node-a", "input_1") == "ext"
    assert pm.contains_node("node-a")
    assert pm.assigned_ports_for_node("node-a") == [("ext", "input_1")]
    assert len(pm) == 1


def test_port_map_rejects_duplicates_and_empty_names():
    pm = PortMap()
    pm.add("ext", "node-a", "input_1")

    with pytest.raises(PortError):
        pm.add("ext", "node-b", "input_1")
    with pytest.raises(PortError):
        pm.add("", "node-b", "input_1")
    with pytest.raises(PortError):
        pm.add("other", "node-b", "")


def test_port_map_rejects_second_name_for_same_port():
    pm = PortMap()
    pm.add("a", "node-a", "input_1")

    with pytest.raises(PortError, match="already mapped"):
        pm.add("b", "node-a", "input_1")
    assert pm.port_names() == ["a"]


def test_port_map_remove():
    pm = PortMap({"a": ("n1", "p1"), "b": ("n1", "p2"), "c": ("n2", "p1")})

    assert pm.remove("n2", "p1")
    assert not pm.remove("n2", "p1")
    assert pm.remove_all_from_uuid("n1")
    assert len(pm) == 0


def test_port_map_builtins_round_trip():
    pm = PortMap({"a": ("n1", "p1")})

    assert PortMap.from_builtins({"a": ["n1", "p1"]}) == pm
    assert pm.copy() == pm
    assert pm.to_builtins() == {"a": ("n1", "p1")}


# =============================================================================
# LIGHT FLOW
# =============================================================================

def test_light_flow_inverse_swaps_labels():
    flow = LightFlow("output_1", "input_1", 0.5)

    flow.inverse()

    assert (flow.src_port, flow.target_port) == ("input_1", "output_1")
    assert flow.distance == 0.5


def test_light_flow_data_slot():
    flow = LightFlow("output_1", "input_1", 0.0)
    assert flow.data is None

    flow.set_data(EnergyData(1.0))

    assert flow.data == EnergyData(1.0)


@pytest.mark.parametrize("distance", [math.inf, math.nan, "far"])
def test_light_flow_rejects_non_finite_distance(distance):
    with pytest.raises(StructuralError):
        LightFlow("output_1", "input_1", distance)
