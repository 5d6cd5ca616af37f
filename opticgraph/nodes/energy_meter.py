"""
Energy meter: a pass-through detector remembering the last energy it saw.
"""
from typing import Optional

from opticgraph.core.ontology import INPUT_1, OUTPUT_1, NodeKind
from opticgraph.core.optic_node import OpticNode
from opticgraph.core.registry import register_node_type
from opticgraph.core.schemas import EnergyData, LightResult


@register_node_type
class EnergyMeter(OpticNode):
    NODE_TYPE = NodeKind.ENERGY_METER.value
    INPUTS = (INPUT_1,)
    OUTPUTS = (OUTPUT_1,)

    def __init__(self, name: Optional[str] = None):
        super().__init__(name)
        self.last_energy: Optional[float] = None

    def analyze(self, incoming: LightResult) -> LightResult:
        src, target = (OUTPUT_1, INPUT_1) if self.inverted else (INPUT_1, OUTPUT_1)
        data = incoming.get(src)
        if data is None:
            return {}
        if isinstance(data, EnergyData):
            self.last_energy = data.energy
        return {target: data}

    def reset_data(self) -> None:
        self.last_energy = None
