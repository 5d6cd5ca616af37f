"""
Light source: emits a fixed energy on its single output port.

A source only works in the forward direction. Asking it to invert raises,
which makes any graph containing it non-invertible.
"""
from typing import Any, Dict, Optional

from opticgraph.core.errors import AnalysisError
from opticgraph.core.ontology import OUTPUT_1, NodeKind
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import EnergyData, LightResult


@register_node_type
class Source(OpticNode):
    NODE_TYPE = NodeKind.SOURCE.value
    OUTPUTS = (OUTPUT_1,)

    def __init__(self, energy: float = 1.0, name: Optional[str] = None):
        super().__init__(name)
        self._energy = float(energy)

    @property
    def energy(self) -> float:
        return self._energy

    def set_energy(self, energy: float) -> None:
        self._energy = float(energy)

    def is_source(self) -> bool:
        return True

    def set_inverted(self, inverted: bool) -> None:
        if inverted:
            raise AnalysisError(f"source node {self} cannot be inverted", self.uuid)
        super().set_inverted(False)

    def analyze(self, incoming: LightResult) -> LightResult:
        return {OUTPUT_1: EnergyData(self._energy)}

    def _extra_properties(self) -> Dict[str, Any]:
        return {"energy": self._energy}

    @classmethod
    def _new_from_properties(cls, properties: Dict[str, Any]) -> "Source":
        return cls(energy=properties.get("energy", 1.0))
