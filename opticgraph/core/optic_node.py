"""
OPTICGRAPH NODE CONTRACT - What the Graph Needs From a Node

The graph never looks inside a node. It only relies on the narrow capability
set defined here:

- ports()            which input/output sockets exist (inversion applied)
- analyze(incoming)  turn a port->payload dict into a port->payload dict
- isometry / set_isometry, inverted / set_inverted
- node_type, name, uuid
- properties() / from_properties()   persistence of the node's own state
- as_group() / as_refnode()          downcasts for nested graphs and aliases

Concrete physics lives in opticgraph.nodes.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Tuple

import msgspec

from opticgraph.core.errors import OpticGraphError
from opticgraph.core.optic_ports import OpticPorts
from opticgraph.core.schemas import (
    Isometry,
    LightResult,
    generate_id,
    isometry_from_builtins,
    isometry_to_builtins,
)


# =============================================================================
# NODE ATTRIBUTES
# =============================================================================

class NodeAttr(msgspec.Struct, kw_only=True, frozen=False):
    """
    Attributes every node carries regardless of its physics.

    `uuid` is generated once when the node is created and only ever replaced
    by the persisted id during deserialization.
    """
    node_type: str
    name: str
    uuid: str = msgspec.field(default_factory=generate_id)
    inverted: bool = False
    isometry: Optional[Isometry] = None


# =============================================================================
# NODE BASE CLASS
# =============================================================================

class OpticNode(ABC):
    """
    Base class of every node that can live in an OpticGraph.

    Subclasses declare NODE_TYPE plus INPUTS/OUTPUTS (port names in the
    non-inverted orientation) and implement analyze().
    """

    NODE_TYPE: str = "node"
    INPUTS: Tuple[str, ...] = ()
    OUTPUTS: Tuple[str, ...] = ()

    def __init__(self, name: Optional[str] = None):
        self._attr = NodeAttr(node_type=self.NODE_TYPE, name=name or self.NODE_TYPE)

    # =========================================================================
    # IDENTITY
    # =========================================================================

    @property
    def uuid(self) -> str:
        return self._attr.uuid

    def set_uuid(self, node_id: str) -> None:
        """Assign a persisted id. Only deserialization should call this."""
        self._attr.uuid = node_id

    @property
    def node_type(self) -> str:
        return self._attr.node_type

    @property
    def name(self) -> str:
        return self._attr.name

    def set_name(self, name: str) -> None:
        self._attr.name = name

    @property
    def node_attr(self) -> NodeAttr:
        return self._attr

    # =========================================================================
    # CAPABILITIES
    # =========================================================================

    def ports(self) -> OpticPorts:
        """Port set of this node, flipped if the node is inverted."""
        ports = OpticPorts()
        for name in self.INPUTS:
            ports.create_input(name)
        for name in self.OUTPUTS:
            ports.create_output(name)
        ports.set_inverted(self.inverted)
        return ports

    @abstractmethod
    def analyze(self, incoming: LightResult) -> LightResult:
        """
        Propagate light through the node.

        Args:
            incoming: payloads keyed by this node's (current) input port names

        Returns:
            payloads keyed by this node's (current) output port names
        """

    @property
    def inverted(self) -> bool:
        return self._attr.inverted

    def set_inverted(self, inverted: bool) -> None:
        """Flip the propagation direction of the node. Subclasses may refuse."""
        self._attr.inverted = inverted

    @property
    def isometry(self) -> Optional[Isometry]:
        return self._attr.isometry

    def set_isometry(self, isometry: Isometry) -> None:
        self._attr.isometry = isometry

    def is_source(self) -> bool:
        return False

    def referenced_id(self) -> Optional[str]:
        """Id of the node this node aliases, None for ordinary nodes."""
        return None

    def reset_data(self) -> None:
        """Forget data recorded during a previous analysis pass."""
        pass

    def as_group(self):
        raise OpticGraphError(f"node {self} is not a group")

    def as_refnode(self):
        raise OpticGraphError(f"node {self} is not a reference node")

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def properties(self) -> Dict[str, Any]:
        """The node's own state as JSON-compatible builtins."""
        props: Dict[str, Any] = {
            "name": self.name,
            "inverted": self.inverted,
            "isometry": isometry_to_builtins(self.isometry),
        }
        props.update(self._extra_properties())
        return props

    def _extra_properties(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_properties(cls, properties: Dict[str, Any]) -> "OpticNode":
        """Rebuild a node from properties(). The id is assigned by the caller."""
        node = cls._new_from_properties(properties)
        if "name" in properties:
            node.set_name(properties["name"])
        iso = isometry_from_builtins(properties.get("isometry"))
        if iso is not None:
            node.set_isometry(iso)
        if properties.get("inverted", False):
            node.set_inverted(True)
        return node

    @classmethod
    def _new_from_properties(cls, properties: Dict[str, Any]) -> "OpticNode":
        return cls()

    def __str__(self) -> str:
        return f"'{self.name}' ({self.node_type})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, uuid={self.uuid})"
