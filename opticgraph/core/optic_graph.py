"""
OPTICGRAPH OPTICAL GRAPH - The Connection Graph and Its Analysis Engine

An optical setup is a directed acyclic graph of nodes (lenses, splitters,
sources, nested groups, ...) whose ports are connected by light flows. This
module owns the graph: it validates connections, rejects cycles, maps
unconnected ports to external names, inverts the whole setup for backward
passes, runs the topologically ordered propagation, and persists the graph in
an identity-stable form.

Architecture (The Bridge Pattern):
  Python Layer
  - Node ids are UUID hex strings: "3f2a...", "9b1c..."
  - Calls: graph.add_node(node), graph.connect_nodes(id1, "output_1", id2, "input_1", 0.1)

  Bridge Layer (This File)
  - _node_map: Dict[str, int]  (UUID -> Index)
  - _inv_map: Dict[int, str]   (Index -> UUID)

  Rust Layer (rustworkx.PyDiGraph)
  - Node payloads: OpticRef, edge payloads: LightFlow
  - Native algorithms: topological_sort, is_directed_acyclic_graph,
    number_weakly_connected_components, reverse

Invariants:
- The graph is always acyclic. Every new edge is inserted, the graph is
  checked, and the edge is removed again if a cycle formed.
- At most one edge leaves a (node, output port) and at most one enters a
  (node, input port).
- External names are unique per port map, and a port that becomes internally
  connected loses its external mapping.
- Every public mutating operation either succeeds or leaves the graph
  exactly as it was.

Thread Safety:
    NOT thread-safe. The engine is single-threaded by design.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import msgspec
import polars as pl
import rustworkx as rx

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
from opticgraph.core.ontology import PortType
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.optic_ref import OpticRef
from opticgraph.core.port_map import PortMap
from opticgraph.core.registry import create_node
from opticgraph.core.schemas import (
    ConnectionInfo,
    GraphRecord,
    Isometry,
    LightData,
    LightResult,
    NodeRecord,
    decode_graph_record,
    encode_graph_record,
    is_finite_distance,
)
from opticgraph.infrastructure.config import get_config
from opticgraph.infrastructure.logger import get_logger as get_mutation_logger

logger = logging.getLogger(__name__)

# (edge index, source index, target index, light flow)
_EdgeEntry = Tuple[int, int, int, LightFlow]


class OpticGraph:
    """
    Directed acyclic graph of optical nodes connected port-to-port.

    Usage:
        graph = OpticGraph()
        d = graph.add_node(Dummy())
        bs = graph.add_node(BeamSplitter(ratio=0.6))
        graph.connect_nodes(d, "output_1", bs, "input_1", 0.1)
        graph.map_port(d, PortType.INPUT, "input_1", "input_1")
        graph.map_port(bs, PortType.OUTPUT, "out1_trans1_refl2", "output_1")

        result = graph.analyze({"input_1": EnergyData(1.0)})
    """

    def __init__(self):
        # Core storage: Rust-native directed graph. Multigraph because two
        # ports of one node may feed two ports of the same successor.
        self._graph: rx.PyDiGraph = rx.PyDiGraph(multigraph=True)

        # The Bridge: bidirectional UUID <-> index mapping
        self._node_map: Dict[str, int] = {}
        self._inv_map: Dict[int, str] = {}

        self._input_port_map = PortMap()
        self._output_port_map = PortMap()
        self._is_inverted = False
        self._external_distances: Dict[str, float] = {}

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def node_count(self) -> int:
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.num_edges()

    @property
    def is_empty(self) -> bool:
        return self.node_count == 0

    @property
    def is_inverted(self) -> bool:
        """True if the graph is to be analyzed backwards (outputs feed inputs)."""
        return self._is_inverted

    def set_is_inverted(self, is_inverted: bool) -> None:
        self._is_inverted = is_inverted

    @property
    def external_distances(self) -> Dict[str, float]:
        return dict(self._external_distances)

    def set_external_distances(self, external_distances: Dict[str, float]) -> None:
        """Distances from the world outside the graph to its mapped input ports."""
        for name, distance in external_distances.items():
            if not is_finite_distance(distance):
                raise StructuralError(f"external distance for port {name} must be finite")
        self._external_distances = {k: float(v) for k, v in external_distances.items()}

    def add_external_distance(self, port_name: str, distance: float) -> None:
        if not is_finite_distance(distance):
            raise StructuralError(f"external distance for port {port_name} must be finite")
        self._external_distances[port_name] = float(distance)

    # =========================================================================
    # NODE OPERATIONS
    # =========================================================================

    def add_node(self, node: OpticNode) -> str:
        """
        Add a node to the graph.

        Returns:
            The node's UUID, the handle for every later operation

        Raises:
            PortMappingError: If the graph is flagged inverted
            DuplicateNodeError: If a node with the same id is already present
        """
        self._check_not_inverted("add nodes")
        return self._insert(OpticRef(node))

    def add_node_ref(self, node_ref: OpticRef) -> str:
        """Add an existing node handle (shares the node instance)."""
        self._check_not_inverted("add nodes")
        return self._insert(node_ref)

    def _insert(self, node_ref: OpticRef) -> str:
        node_id = node_ref.uuid
        if node_id in self._node_map:
            raise DuplicateNodeError(node_id)

        idx = self._graph.add_node(node_ref)
        self._node_map[node_id] = idx
        self._inv_map[idx] = node_id

        get_mutation_logger().log_node_added(node_id, node_ref.node.node_type)
        return node_id

    def delete_node(self, node_id: str) -> List[str]:
        """
        Remove a node, every reference node aliasing it, and their edges and
        port mappings. Nested groups are searched as well.

        Returns:
            The ids of all deleted nodes

        Raises:
            PortMappingError: If the graph is flagged inverted
            NodeNotFoundError: If no node was deleted
        """
        self._check_not_inverted("delete nodes")
        deleted = self._delete_matching(node_id)
        if not deleted:
            raise NodeNotFoundError(node_id)
        return deleted

    def _delete_matching(self, node_id: str) -> List[str]:
        deleted: List[str] = []
        while True:
            idx = self._next_node_with_uuid(node_id)
            if idx is None:
                break
            removed_id = self._inv_map[idx]
            node_type = self._graph[idx].node.node_type
            self._graph.remove_node(idx)
            del self._node_map[removed_id]
            del self._inv_map[idx]
            self._input_port_map.remove_all_from_uuid(removed_id)
            self._output_port_map.remove_all_from_uuid(removed_id)
            get_mutation_logger().log_node_deleted(removed_id, node_type)
            deleted.append(removed_id)

        for node_ref in self.nodes():
            group = _as_group_or_none(node_ref.node)
            if group is not None:
                deleted.extend(group.graph._delete_matching(node_id))
        return deleted

    def _next_node_with_uuid(self, node_id: str) -> Optional[int]:
        """Index of the node with this id, or of a reference node aliasing it."""
        for idx in self._graph.node_indices():
            node_ref = self._graph[idx]
            if node_ref.uuid == node_id or node_ref.node.referenced_id() == node_id:
                return idx
        return None

    def node(self, node_id: str) -> OpticRef:
        """
        Retrieve a node handle by its UUID.

        Raises:
            NodeNotFoundError: If node doesn't exist
        """
        if node_id not in self._node_map:
            raise NodeNotFoundError(node_id)
        return self._graph[self._node_map[node_id]]

    def node_recursive(self, node_id: str) -> OpticRef:
        """Like node(), but also searches nested groups."""
        if node_id in self._node_map:
            return self.node(node_id)
        for node_ref in self.nodes():
            group = _as_group_or_none(node_ref.node)
            if group is not None:
                try:
                    return group.graph.node_recursive(node_id)
                except NodeNotFoundError:
                    continue
        raise NodeNotFoundError(node_id)

    def node_by_idx(self, idx: int) -> OpticRef:
        if idx not in self._inv_map:
            raise StructuralError(f"node index does not exist: {idx}")
        return self._graph[idx]

    def node_idx_by_uuid(self, node_id: str) -> Optional[int]:
        return self._node_map.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_map

    def nodes(self) -> List[OpticRef]:
        """All node handles in index order."""
        return [self._graph[idx] for idx in self._graph.node_indices()]

    # =========================================================================
    # EDGE OPERATIONS
    # =========================================================================

    def connect_nodes(
        self,
        src_id: str,
        src_port: str,
        target_id: str,
        target_port: str,
        distance: float,
    ) -> None:
        """
        Connect an output port of one node to an input port of another.

        Graph-Native Invariant: The graph MUST remain a DAG. The edge is
        inserted, the graph is checked, and the edge is removed again if a
        cycle formed.

        Side effect: the target port's input mapping and the source port's
        output mapping are dropped, they are no longer externally reachable.

        Raises:
            NodeNotFoundError: If source or target node doesn't exist
            StructuralError: On unknown or already connected ports, or a
                             non-finite distance
            GraphInvariantError: If the connection would form a loop
            PortMappingError: If the graph is flagged inverted
        """
        self._check_not_inverted("connect nodes")

        src_idx = self._get_index(src_id)
        source = self._graph[src_idx].node
        src_ports = source.ports().names(PortType.OUTPUT)
        if src_port not in src_ports:
            raise StructuralError(
                f"source node {source} does not have an output port {src_port}. "
                f"Possible values are: {', '.join(src_ports)}"
            )

        target_idx = self._get_index(target_id)
        target = self._graph[target_idx].node
        target_ports = target.ports().names(PortType.INPUT)
        if target_port not in target_ports:
            raise StructuralError(
                f"target node {target} does not have an input port {target_port}. "
                f"Possible values are: {', '.join(target_ports)}"
            )

        if self._edge_at_port(src_idx, PortType.OUTPUT, src_port) is not None:
            raise StructuralError(f"src node <{source}> with port <{src_port}> is already connected")
        if self._edge_at_port(target_idx, PortType.INPUT, target_port) is not None:
            raise StructuralError(f"target node <{target}> with port <{target_port}> is already connected")

        light = LightFlow(src_port, target_port, distance)
        edge_idx = self._graph.add_edge(src_idx, target_idx, light)
        if not rx.is_directed_acyclic_graph(self._graph):
            self._graph.remove_edge_from_index(edge_idx)
            raise GraphInvariantError(
                f"connecting nodes <{source.name}> -> <{target.name}> would form a loop"
            )

        self._input_port_map.remove(target_id, target_port)
        self._output_port_map.remove(src_id, src_port)

        get_mutation_logger().log_connected(src_id, src_port, target_id, target_port, light.distance)

    def disconnect_nodes(self, src_id: str, src_port: str) -> None:
        """
        Remove the connection leaving the given output port.

        Raises:
            NodeNotFoundError: If the node doesn't exist
            StructuralError: If the port is not connected
        """
        self._check_not_inverted("disconnect nodes")
        src_idx = self._get_index(src_id)
        entry = self._edge_at_port(src_idx, PortType.OUTPUT, src_port)
        if entry is None:
            raise StructuralError(
                f"source node {self._graph[src_idx].node} with port <{src_port}> is not connected"
            )
        edge_idx, _, target_idx, _ = entry
        self._graph.remove_edge_from_index(edge_idx)
        get_mutation_logger().log_disconnected(src_id, src_port, self._inv_map[target_idx])

    def update_connection_distance(self, src_id: str, src_port: str, distance: float) -> None:
        """Change the propagation distance of the connection leaving a port."""
        src_idx = self._get_index(src_id)
        entry = self._edge_at_port(src_idx, PortType.OUTPUT, src_port)
        if entry is None:
            raise StructuralError(
                f"source node {self._graph[src_idx].node} with port <{src_port}> is not connected"
            )
        entry[3].set_distance(distance)

    def connections(self) -> List[ConnectionInfo]:
        """All connections as (src id, target id, src port, target port, distance)."""
        result: List[ConnectionInfo] = []
        for _, (src, target, light) in sorted(self._graph.edge_index_map().items()):
            result.append((
                self._inv_map[src],
                self._inv_map[target],
                light.src_port,
                light.target_port,
                light.distance,
            ))
        return result

    def _edges_directed(self, idx: int, direction: PortType) -> List[_EdgeEntry]:
        """Outgoing (OUTPUT) or incoming (INPUT) edges of a node."""
        edges = self._graph.incident_edge_index_map(idx, all_edges=True)
        if direction == PortType.OUTPUT:
            return [(e, s, t, w) for e, (s, t, w) in edges.items() if s == idx]
        return [(e, s, t, w) for e, (s, t, w) in edges.items() if t == idx]

    def _edge_at_port(self, idx: int, direction: PortType, port: str) -> Optional[_EdgeEntry]:
        for entry in self._edges_directed(idx, direction):
            light = entry[3]
            label = light.src_port if direction == PortType.OUTPUT else light.target_port
            if label == port:
                return entry
        return None

    def clear_edges(self) -> None:
        """Drop the light data left on every edge by a previous pass."""
        for light in self._graph.edges():
            light.set_data(None)

    # =========================================================================
    # PORT MAPPING
    # =========================================================================

    def port_map(self, port_type: PortType) -> PortMap:
        if port_type == PortType.INPUT:
            return self._input_port_map
        return self._output_port_map

    def external_nodes(self, port_type: PortType) -> List[int]:
        """Indices of nodes with at least one port of this direction not internally connected."""
        nodes = []
        for idx in self._graph.node_indices():
            ports = self._graph[idx].node.ports().names(port_type)
            if len(ports) != len(self._edges_directed(idx, port_type)):
                nodes.append(idx)
        return nodes

    def map_port(
        self,
        node_id: str,
        port_type: PortType,
        internal_name: str,
        external_name: str,
    ) -> None:
        """
        Expose an unconnected port of an internal node under an external name.

        Raises:
            PortMappingError: If the external name is taken, the node or port
                              does not exist, the node is fully interior in
                              that direction, the port is internally connected
                              or already mapped, or the graph is flagged inverted
        """
        self._check_not_inverted("map ports")
        name_type = port_type.value
        port_map = self.port_map(port_type)
        if port_map.contains_external_name(external_name):
            raise PortMappingError(f"external {name_type} port name already assigned")

        idx = self._node_map.get(node_id)
        if idx is None:
            raise PortMappingError(f"node with id {node_id} not found")
        if idx not in self.external_nodes(port_type):
            raise PortMappingError(f"node to be mapped is not an {name_type} node of the group")
        if internal_name not in self._graph[idx].node.ports().names(port_type):
            raise PortMappingError(f"internal {name_type} port name not found")
        if self._edge_at_port(idx, port_type, internal_name) is not None:
            raise PortMappingError(f"port of {name_type} node is already internally connected")
        if port_map.external_port_name(node_id, internal_name) is not None:
            raise PortMappingError(f"internal {name_type} port is already mapped")

        try:
            port_map.add(external_name, node_id, internal_name)
        except PortError as e:
            raise PortMappingError(str(e)) from e

        get_mutation_logger().log_port_mapped(node_id, name_type, internal_name, external_name)

    def _incoming_port_map(self) -> PortMap:
        return self._output_port_map if self._is_inverted else self._input_port_map

    def _outgoing_port_map(self) -> PortMap:
        return self._input_port_map if self._is_inverted else self._output_port_map

    # =========================================================================
    # GRAPH QUERIES
    # =========================================================================

    def topologically_sorted(self) -> List[int]:
        """
        Node indices in dependency order.

        Raises:
            GraphInvariantError: If the graph has cycles (invariant corruption)
        """
        try:
            return list(rx.topological_sort(self._graph))
        except rx.DAGHasCycle:
            raise GraphInvariantError("topological sort failed: graph has cycles")

    def is_single_tree(self) -> bool:
        return rx.number_weakly_connected_components(self._graph) == 1

    def is_stale_node(self, node_id: str) -> bool:
        """True if the node has no edges and no external port mapping."""
        idx = self._get_index(node_id)
        if self._graph.in_degree(idx) + self._graph.out_degree(idx) > 0:
            return False
        return not (
            self._input_port_map.contains_node(node_id)
            or self._output_port_map.contains_node(node_id)
        )

    def is_incoming_node(self, idx: int) -> bool:
        """True if the node has at least one input port without an internal edge."""
        input_ports = self._graph[idx].node.ports().names(PortType.INPUT)
        return self._graph.in_degree(idx) < len(input_ports)

    def is_output_node(self, idx: int) -> bool:
        """True if the node has at least one output port without an internal edge."""
        output_ports = self._graph[idx].node.ports().names(PortType.OUTPUT)
        return self._graph.out_degree(idx) < len(output_ports)

    # =========================================================================
    # ANALYSIS
    # =========================================================================

    def analyze(self, incoming_data: Optional[LightResult] = None) -> LightResult:
        """
        Run one propagation pass through the graph.

        Args:
            incoming_data: payloads keyed by external input port names (by
                           external output port names if the graph is
                           flagged inverted)

        Returns:
            Payloads keyed by external output port names (input names if
            inverted). Outputs that are neither mapped nor connected are
            dropped.

        Raises:
            AnalysisError: If a node fails (the error names the node) or the
                           graph cannot be inverted
        """
        incoming_data = incoming_data or {}
        if self._is_inverted:
            self.invert()
        try:
            return self._propagate(incoming_data)
        finally:
            if self._is_inverted:
                self.invert()

    def _propagate(self, incoming_data: LightResult) -> LightResult:
        settings = get_config().analysis
        if settings.warn_disconnected and rx.number_weakly_connected_components(self._graph) > 1:
            logger.warning("group contains unconnected sub-trees. Analysis might not be complete.")

        sorted_indices = self.topologically_sorted()
        self.clear_edges()
        outgoing_port_map = self._outgoing_port_map()
        light_result: LightResult = {}
        analyzed = 0

        for idx in sorted_indices:
            node_ref = self._graph[idx]
            node = node_ref.node
            if self.is_stale_node(node_ref.uuid):
                if settings.warn_stale_nodes:
                    logger.warning(
                        "graph contains stale (completely unconnected) node %s. Skipping.", node
                    )
                continue

            if node.isometry is None:
                logger.warning("Node %s has not been placed yet. Using coordinate origin", node)
                node.set_isometry(Isometry.identity())

            incoming = self.get_incoming(node_ref.uuid, incoming_data)
            try:
                outgoing = node.analyze(incoming)
            except Exception as e:
                raise AnalysisError(f"analysis of node {node} failed: {e}", node_ref.uuid) from e
            analyzed += 1

            if self.is_output_node(idx):
                for external_name, internal_name in outgoing_port_map.assigned_ports_for_node(node_ref.uuid):
                    if internal_name in outgoing:
                        light_result[external_name] = outgoing[internal_name]

            for port, data in outgoing.items():
                if not self.set_outgoing_edge_data(idx, port, data):
                    logger.debug("output port %s of node %s is not connected, data dropped", port, node)

        get_mutation_logger().log_analysis(analyzed, len(light_result))
        return light_result

    def get_incoming(self, node_id: str, incoming_data: LightResult) -> LightResult:
        """
        Incoming payloads of a node: externally supplied data renamed to
        internal port names (only for nodes with unconnected inputs), merged
        with data already placed on incoming edges.
        """
        idx = self._get_index(node_id)
        result: LightResult = {}
        if self.is_incoming_node(idx):
            port_map = self._incoming_port_map()
            for external_name, data in incoming_data.items():
                mapping = port_map.get(external_name)
                if mapping is not None and mapping[0] == node_id:
                    result[mapping[1]] = data
        result.update(self.incoming_edges(idx))
        return result

    def incoming_edges(self, idx: int) -> LightResult:
        """Data present on the edges entering a node, keyed by target port."""
        return {
            light.target_port: light.data
            for _, _, _, light in self._edges_directed(idx, PortType.INPUT)
            if light.data is not None
        }

    def set_outgoing_edge_data(self, idx: int, port: str, data: LightData) -> bool:
        """Store data on the edge leaving `port`. False if the port is unconnected."""
        entry = self._edge_at_port(idx, PortType.OUTPUT, port)
        if entry is None:
            return False
        entry[3].set_data(data)
        return True

    # =========================================================================
    # INVERSION
    # =========================================================================

    def invert(self) -> None:
        """
        Flip the graph: every node's inverted flag, every edge's port labels,
        and every edge's direction. Calling it twice is an exact round trip.

        Raises:
            AnalysisError: If a node refuses inversion; flags flipped so far
                           are restored and nothing else changes
        """
        flipped: List[OpticNode] = []
        for node_ref in self.nodes():
            node = node_ref.node
            try:
                node.set_inverted(not node.inverted)
            except Exception as e:
                for done in reversed(flipped):
                    done.set_inverted(not done.inverted)
                raise AnalysisError(
                    "group cannot be inverted because it contains a non-invertable node",
                    node_ref.uuid,
                ) from e
            flipped.append(node)

        for light in self._graph.edges():
            light.inverse()
        self._graph.reverse()
        get_mutation_logger().log_inverted(len(flipped))

    # =========================================================================
    # POSITIONING
    # =========================================================================

    def distance_from_predecessor(self, node_id: str, port_name: str) -> float:
        """
        Propagation distance to an input port from whatever feeds it.

        Mapped ports use the external distance table, connected ports the
        distance stored on the feeding edge.

        Raises:
            AnalysisError: If neither source of a distance exists
        """
        external_name = self._incoming_port_map().external_port_name(node_id, port_name)
        if external_name is not None:
            if external_name not in self._external_distances:
                raise AnalysisError(
                    f"did not find distance from predecessor to target port '{port_name}' "
                    f"because it's not in the list of external distances",
                    node_id,
                )
            return self._external_distances[external_name]

        entry = self._edge_at_port(self._get_index(node_id), PortType.INPUT, port_name)
        if entry is None:
            raise AnalysisError("did not find distance from predecessor to target port", node_id)
        return entry[3].distance

    def set_node_isometry(self, node_id: str, port_name: str, upstream: Isometry) -> Isometry:
        """
        Place a node relative to the isometry of the light entering `port_name`.

        The node ends up at `upstream` moved along its optical axis by the
        predecessor distance. A node that is already placed elsewhere keeps
        its first position and a warning is logged.

        Returns:
            The isometry the node has afterwards
        """
        distance = self.distance_from_predecessor(node_id, port_name)
        node = self.node(node_id).node
        group = _as_group_or_none(node)
        if group is not None:
            group.add_input_port_distance(port_name, distance)

        candidate = upstream.translated_along_axis(distance)
        current = node.isometry
        if current is None:
            node.set_isometry(candidate)
            return candidate
        if not current.is_close(candidate):
            logger.warning("Node %s cannot be consistently positioned.", node.name)
            logger.warning("Position based on previous input port is: %s", current)
            logger.warning("Position based on this port would be:     %s", candidate)
            logger.warning("Keeping first position")
        return current

    def calc_node_positions(self, incoming: Optional[Dict[str, Isometry]] = None) -> Dict[str, Isometry]:
        """
        Place every node along the beam path, walking the graph in
        topological order.

        Args:
            incoming: isometry of the beam entering each external input port
                      (external output port if the graph is flagged
                      inverted), taken at the predecessor outside the graph

        Returns:
            Isometries leaving the mapped external outputs (inputs if inverted)

        Nodes that are already placed are left untouched. Nodes no beam
        reaches stay unplaced; analyze() puts them at the origin.
        """
        incoming = incoming or {}
        if self._is_inverted:
            self.invert()
        try:
            return self._place_nodes(incoming)
        finally:
            if self._is_inverted:
                self.invert()

    def _place_nodes(self, incoming: Dict[str, Isometry]) -> Dict[str, Isometry]:
        incoming_port_map = self._incoming_port_map()
        outgoing_port_map = self._outgoing_port_map()
        # (target index, target port) -> isometry of the emitting node
        beams: Dict[Tuple[int, str], Isometry] = {}
        result: Dict[str, Isometry] = {}

        for idx in self.topologically_sorted():
            node_ref = self._graph[idx]
            node = node_ref.node

            arriving: Dict[str, Isometry] = {}
            for external_name, upstream in incoming.items():
                mapping = incoming_port_map.get(external_name)
                if mapping is not None and mapping[0] == node_ref.uuid:
                    arriving[mapping[1]] = upstream
            for port in node.ports().input_names():
                if (idx, port) in beams:
                    arriving[port] = beams[(idx, port)]

            group = _as_group_or_none(node)
            if node.isometry is None:
                if not arriving:
                    logger.warning("%s has no incoming edges", node)
                for port in sorted(arriving):
                    self.set_node_isometry(node_ref.uuid, port, arriving[port])
            else:
                logger.info("Node %s has already been placed. Leaving untouched.", node)
                if group is not None:
                    for port in arriving:
                        group.add_input_port_distance(
                            port, self.distance_from_predecessor(node_ref.uuid, port)
                        )

            if group is not None:
                leaving = group.graph.calc_node_positions(arriving)
            elif node.isometry is not None:
                leaving = {port: node.isometry for port in node.ports().output_names()}
            else:
                leaving = {}

            for external_name, internal_name in outgoing_port_map.assigned_ports_for_node(node_ref.uuid):
                if internal_name in leaving:
                    result[external_name] = leaving[internal_name]
            for port, iso in leaving.items():
                entry = self._edge_at_port(idx, PortType.OUTPUT, port)
                if entry is not None:
                    beams[(entry[2], entry[3].target_port)] = iso
        return result

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def to_record(self) -> GraphRecord:
        """The persisted shape of this graph."""
        nodes = [
            NodeRecord(type=ref.node.node_type, id=ref.uuid, properties=ref.node.properties())
            for ref in self.nodes()
        ]
        return GraphRecord(
            nodes=nodes,
            edges=self.connections(),
            input_map=self._input_port_map.to_builtins(),
            output_map=self._output_port_map.to_builtins(),
        )

    def to_json(self, indent: Optional[int] = None) -> bytes:
        """Serialize to JSON bytes; indent defaults to the configured value."""
        if indent is None:
            indent = get_config().persistence.json_indent
        return encode_graph_record(self.to_record(), indent=indent)

    @classmethod
    def from_json(cls, data: Union[bytes, str]) -> "OpticGraph":
        """
        Rebuild a graph from its JSON form.

        Raises:
            SerializationError: On malformed input or failed reconstruction
        """
        try:
            record = decode_graph_record(data)
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            raise SerializationError(f"invalid graph document: {e}") from e
        return cls.from_record(record)

    @classmethod
    def from_record(cls, record: GraphRecord) -> "OpticGraph":
        """
        Rebuild a graph in three passes: instantiate every node under its
        persisted id, link reference nodes to their targets, then replay
        every connection through connect_nodes (re-validating it). Port
        maps are restored verbatim.

        Raises:
            SerializationError: If any pass fails
        """
        graph = cls()
        for node_record in record.nodes:
            node = create_node(node_record.type, node_record.properties)
            node.set_uuid(node_record.id)
            try:
                graph._insert(OpticRef(node))
            except DuplicateNodeError as e:
                raise SerializationError(str(e)) from e

        for node_ref in graph.nodes():
            target_id = node_ref.node.referenced_id()
            if target_id is None:
                continue
            try:
                target = graph.node(target_id)
            except NodeNotFoundError as e:
                raise SerializationError(
                    "reference node found, which does not reference anything"
                ) from e
            if target.node.referenced_id() is not None:
                raise SerializationError(
                    f"reference node {node_ref.node} must reference an ordinary node, not another reference"
                )
            node_ref.node.assign_reference(target)

        for src_id, target_id, src_port, target_port, distance in record.edges:
            try:
                graph.connect_nodes(src_id, src_port, target_id, target_port, distance)
            except OpticGraphError as e:
                raise SerializationError(f"connecting OpticGraph nodes failed: {e}") from e

        # TODO: cross-check restored mappings against the rebuilt nodes' ports
        try:
            graph._input_port_map = PortMap.from_builtins(record.input_map)
            graph._output_port_map = PortMap.from_builtins(record.output_map)
        except PortError as e:
            raise SerializationError(f"invalid port map: {e}") from e
        return graph

    def to_polars_nodes(self) -> pl.DataFrame:
        """Export nodes to a Polars DataFrame."""
        nodes = self.nodes()
        return pl.DataFrame(
            {
                "id": [n.uuid for n in nodes],
                "type": [n.node.node_type for n in nodes],
                "name": [n.node.name for n in nodes],
                "inverted": [n.node.inverted for n in nodes],
            },
            schema={"id": pl.Utf8, "type": pl.Utf8, "name": pl.Utf8, "inverted": pl.Boolean},
        )

    def to_polars_edges(self) -> pl.DataFrame:
        """Export connections to a Polars DataFrame."""
        connections = self.connections()
        return pl.DataFrame(
            {
                "source_id": [c[0] for c in connections],
                "target_id": [c[1] for c in connections],
                "source_port": [c[2] for c in connections],
                "target_port": [c[3] for c in connections],
                "distance": [c[4] for c in connections],
            },
            schema={
                "source_id": pl.Utf8,
                "target_id": pl.Utf8,
                "source_port": pl.Utf8,
                "target_port": pl.Utf8,
                "distance": pl.Float64,
            },
        )

    def save_parquet(self, path: Union[str, Path]) -> Tuple[Path, Path]:
        """
        Save node and connection tables to parquet files.

        Creates {path}.nodes.parquet and {path}.edges.parquet. This is a
        tabular export for analytics; use to_json() for a reloadable graph.
        """
        path = Path(path)
        nodes_path = path.with_suffix(".nodes.parquet")
        edges_path = path.with_suffix(".edges.parquet")
        self.to_polars_nodes().write_parquet(nodes_path)
        self.to_polars_edges().write_parquet(edges_path)
        return nodes_path, edges_path

    # =========================================================================
    # VISUALIZATION EXPORT
    # =========================================================================

    def to_dot(self, rankdir: Optional[str] = None) -> str:
        """Graphviz description of the graph: one box per node, edges labeled by distance."""
        rankdir = rankdir or get_config().export.rankdir
        rankdir = "LR" if rankdir == "LR" else "TB"
        lines = [
            "digraph {",
            f"  rankdir=\"{rankdir}\";",
            "  node [shape=box fontsize=8];",
        ]
        for idx in self.topologically_sorted():
            node = self._graph[idx].node
            inv = " (inv)" if node.inverted else ""
            lines.append(f"  i{node.uuid} [label=\"{node.name}{inv}\\n{node.node_type}\"];")
        for src_id, target_id, src_port, target_port, distance in self.connections():
            lines.append(
                f"  i{src_id} -> i{target_id} "
                f"[label=\"{distance:g} m\" taillabel=\"{src_port}\" headlabel=\"{target_port}\"];"
            )
        lines.append("}")
        return "\n".join(lines) + "\n"

    # =========================================================================
    # INTERNAL UTILITIES
    # =========================================================================

    def _get_index(self, node_id: str) -> int:
        if node_id not in self._node_map:
            raise NodeNotFoundError(node_id)
        return self._node_map[node_id]

    def _check_not_inverted(self, action: str) -> None:
        if self._is_inverted:
            raise PortMappingError(f"cannot {action} if group is set as inverted")

    def __len__(self) -> int:
        return self.node_count

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._node_map

    def __repr__(self) -> str:
        return f"OpticGraph(nodes={self.node_count}, edges={self.edge_count}, inverted={self._is_inverted})"


def _as_group_or_none(node: OpticNode):
    try:
        return node.as_group()
    except OpticGraphError:
        return None
