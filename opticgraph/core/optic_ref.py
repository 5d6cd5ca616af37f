"""
Node references: the stably identified handle the graph stores for a node.

The rustworkx index of a node can change meaning when nodes are removed and
re-added; the OpticRef id cannot. It is the join key for persistence and for
reference nodes that alias another node.
"""
from opticgraph.core.optic_node import OpticNode


class OpticRef:
    """Shared handle to a node instance, identified by the node's UUID."""

    __slots__ = ("node",)

    def __init__(self, node: OpticNode):
        self.node = node

    @property
    def uuid(self) -> str:
        return self.node.uuid

    def __eq__(self, other: object) -> bool:
        return isinstance(other, OpticRef) and other.node is self.node

    def __hash__(self) -> int:
        return hash(self.uuid)

    def __repr__(self) -> str:
        return f"OpticRef({self.node!r})"
