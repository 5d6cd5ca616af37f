"""
Ideal beam splitter with a fixed splitting ratio.

Ports:
    inputs:  input_1, input_2
    outputs: out1_trans1_refl2, out2_trans2_refl1

With ratio r the first output carries r of input_1 plus (1 - r) of input_2,
the second output carries the remainder. Inverted, the roles of the two port
groups swap.
"""
from typing import Any, Dict, Optional

from opticgraph.core.errors import AnalysisError
from opticgraph.core.ontology import (
    INPUT_1,
    INPUT_2,
    OUT1_TRANS1_REFL2,
    OUT2_TRANS2_REFL1,
    NodeKind,
)
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import EnergyData, LightData, LightResult


@register_node_type
class BeamSplitter(OpticNode):
    NODE_TYPE = NodeKind.BEAM_SPLITTER.value
    INPUTS = (INPUT_1, INPUT_2)
    OUTPUTS = (OUT1_TRANS1_REFL2, OUT2_TRANS2_REFL1)

    def __init__(self, ratio: float = 0.5, name: Optional[str] = None):
        super().__init__(name)
        self._ratio = 0.5
        self.set_ratio(ratio)

    @property
    def ratio(self) -> float:
        return self._ratio

    def set_ratio(self, ratio: float) -> None:
        """
        Raises:
            ValueError: If the ratio is outside [0, 1]
        """
        if not 0.0 <= ratio <= 1.0:
            raise ValueError("splitting ratio must be within (0.0..1.0)")
        self._ratio = float(ratio)

    def analyze(self, incoming: LightResult) -> LightResult:
        if self.inverted:
            in_ports, out_ports = self.OUTPUTS, self.INPUTS
        else:
            in_ports, out_ports = self.INPUTS, self.OUTPUTS

        in1 = _energy(incoming.get(in_ports[0]))
        in2 = _energy(incoming.get(in_ports[1]))
        if in1 is None and in2 is None:
            return {}

        e1 = in1 or 0.0
        e2 = in2 or 0.0
        r = self._ratio
        return {
            out_ports[0]: EnergyData(r * e1 + (1.0 - r) * e2),
            out_ports[1]: EnergyData((1.0 - r) * e1 + r * e2),
        }

    def _extra_properties(self) -> Dict[str, Any]:
        return {"ratio": self._ratio}

    @classmethod
    def _new_from_properties(cls, properties: Dict[str, Any]) -> "BeamSplitter":
        return cls(ratio=properties.get("ratio", 0.5))


def _energy(data: Optional[LightData]) -> Optional[float]:
    if data is None:
        return None
    if not isinstance(data, EnergyData):
        raise AnalysisError("expected energy data at input port")
    return data.energy
