"""
Group node: a node wrapping a complete nested OpticGraph.

The group's ports are the external names of its graph's port maps, and its
analysis is the nested graph's analysis. Groups nest arbitrarily deep, which
is how larger setups are composed from tested sub-assemblies.
"""
from typing import Any, Dict, Optional

import msgspec

from opticgraph.core.ontology import NodeKind, PortType
from opticgraph.core.optic_graph import OpticGraph
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.optic_ports import OpticPorts
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import LightResult, graph_record_from_builtins


@register_node_type
class NodeGroup(OpticNode):
    """
    Usage:
        group = NodeGroup(name="telescope")
        l1 = group.add_node(Dummy())
        l2 = group.add_node(Dummy())
        group.connect_nodes(l1, "output_1", l2, "input_1", 0.2)
        group.map_input_port(l1, "input_1", "input_1")
        group.map_output_port(l2, "output_1", "output_1")
    """

    NODE_TYPE = NodeKind.GROUP.value

    def __init__(self, name: Optional[str] = None, graph: Optional[OpticGraph] = None):
        super().__init__(name)
        self.graph = graph if graph is not None else OpticGraph()

    def add_node(self, node: OpticNode) -> str:
        return self.graph.add_node(node)

    def connect_nodes(
        self,
        src_id: str,
        src_port: str,
        target_id: str,
        target_port: str,
        distance: float,
    ) -> None:
        self.graph.connect_nodes(src_id, src_port, target_id, target_port, distance)

    def map_input_port(self, node_id: str, internal_name: str, external_name: str) -> None:
        self.graph.map_port(node_id, PortType.INPUT, internal_name, external_name)

    def map_output_port(self, node_id: str, internal_name: str, external_name: str) -> None:
        self.graph.map_port(node_id, PortType.OUTPUT, internal_name, external_name)

    def add_input_port_distance(self, port_name: str, distance: float) -> None:
        """Record the distance from the group's predecessor to an external input port."""
        self.graph.add_external_distance(port_name, distance)

    def as_group(self) -> "NodeGroup":
        return self

    def ports(self) -> OpticPorts:
        ports = OpticPorts()
        for name in self.graph.port_map(PortType.INPUT).port_names():
            ports.create_input(name)
        for name in self.graph.port_map(PortType.OUTPUT).port_names():
            ports.create_output(name)
        ports.set_inverted(self.inverted)
        return ports

    def set_inverted(self, inverted: bool) -> None:
        super().set_inverted(inverted)
        self.graph.set_is_inverted(inverted)

    def analyze(self, incoming: LightResult) -> LightResult:
        return self.graph.analyze(incoming)

    def reset_data(self) -> None:
        for node_ref in self.graph.nodes():
            node_ref.node.reset_data()

    def _extra_properties(self) -> Dict[str, Any]:
        return {"graph": msgspec.to_builtins(self.graph.to_record())}

    @classmethod
    def _new_from_properties(cls, properties: Dict[str, Any]) -> "NodeGroup":
        graph_data = properties.get("graph")
        if graph_data is None:
            return cls()
        return cls(graph=OpticGraph.from_record(graph_record_from_builtins(graph_data)))
