"""
Reference node: an alias for another node of the same graph.

A reference node lets one physical element be traversed more than once (for
example a mirror hit on the way out and on the way back). It has its own id
and its own inverted flag but shares ports and state with its target. It
holds a weak link so that deleting the target leaves the reference dangling
instead of keeping the target alive.
"""
import weakref
from typing import Any, Dict, Optional

from opticgraph.core.errors import AnalysisError, StructuralError
from opticgraph.core.ontology import REFERENCE_ID, NodeKind
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.optic_ports import OpticPorts
from opticgraph.core.optic_ref import OpticRef
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import LightResult


@register_node_type
class NodeReference(OpticNode):
    NODE_TYPE = NodeKind.REFERENCE.value

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self._reference: Optional[weakref.ref] = None
        self._reference_id: Optional[str] = None

    @classmethod
    def from_node(cls, node_ref: OpticRef, name: Optional[str] = None) -> "NodeReference":
        """Create a reference node aliasing the given node."""
        ref_node = cls(name)
        ref_node.assign_reference(node_ref)
        return ref_node

    def assign_reference(self, node_ref: OpticRef) -> None:
        """
        Raises:
            StructuralError: If the target is itself a reference node
        """
        if node_ref.node.referenced_id() is not None or node_ref.node is self:
            raise StructuralError(f"reference node {self} cannot reference another reference node")
        self._reference = weakref.ref(node_ref.node)
        self._reference_id = node_ref.uuid

    def referenced_id(self) -> Optional[str]:
        return self._reference_id

    def referenced_node(self) -> OpticNode:
        """
        Raises:
            AnalysisError: If no live target is assigned
        """
        node = self._reference() if self._reference is not None else None
        if node is None:
            raise AnalysisError("no reference defined", self.uuid)
        return node

    def as_refnode(self) -> "NodeReference":
        return self

    def ports(self) -> OpticPorts:
        # Own orientation wins over the target's
        ports = self.referenced_node().ports()
        ports.set_inverted(self.inverted)
        return ports

    def analyze(self, incoming: LightResult) -> LightResult:
        target = self.referenced_node()
        previous = target.inverted
        target.set_inverted(self.inverted)
        try:
            return target.analyze(incoming)
        finally:
            target.set_inverted(previous)

    def _extra_properties(self) -> Dict[str, Any]:
        return {REFERENCE_ID: self._reference_id}

    @classmethod
    def _new_from_properties(cls, properties: Dict[str, Any]) -> "NodeReference":
        ref_node = cls()
        ref_node._reference_id = properties.get(REFERENCE_ID)
        return ref_node
