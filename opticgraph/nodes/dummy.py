"""
Dummy node: a pass-through with one input and one output.

Useful as a placeholder while building a setup and as the simplest node for
exercising graph mechanics.
"""
from opticgraph.core.ontology import INPUT_1, OUTPUT_1, NodeKind
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import LightResult


@register_node_type
class Dummy(OpticNode):
    """Forwards whatever arrives at input_1 to output_1 (reversed when inverted)."""

    NODE_TYPE = NodeKind.DUMMY.value
    INPUTS = (INPUT_1,)
    OUTPUTS = (OUTPUT_1,)

    def analyze(self, incoming: LightResult) -> LightResult:
        src, target = (OUTPUT_1, INPUT_1) if self.inverted else (INPUT_1, OUTPUT_1)
        if src not in incoming:
            return {}
        return {target: incoming[src]}
