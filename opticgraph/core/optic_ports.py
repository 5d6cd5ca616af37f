"""
Port sets: the named input and output sockets of a node.

A node answers "which ports do I have" with an OpticPorts instance. When the
node is inverted its ports are flipped: the declared inputs act as outputs and
vice versa.
"""
from typing import List, Set

from opticgraph.core.errors import PortError
from opticgraph.core.ontology import PortType


class OpticPorts:
    """Declared input/output port names of a node plus an inversion flag."""

    def __init__(self):
        self._inputs: Set[str] = set()
        self._outputs: Set[str] = set()
        self._inverted = False

    def create_input(self, name: str) -> None:
        if name in self._inputs:
            raise PortError(f"input port with name {name} already exists")
        self._inputs.add(name)

    def create_output(self, name: str) -> None:
        if name in self._outputs:
            raise PortError(f"output port with name {name} already exists")
        self._outputs.add(name)

    def add(self, port_type: PortType, name: str) -> None:
        """Declare a port of the given (non-inverted) direction."""
        if port_type == PortType.INPUT:
            self.create_input(name)
        else:
            self.create_output(name)

    def names(self, port_type: PortType) -> List[str]:
        """Sorted port names acting in the given direction (inversion applied)."""
        if (port_type == PortType.INPUT) != self._inverted:
            return sorted(self._inputs)
        return sorted(self._outputs)

    def input_names(self) -> List[str]:
        return self.names(PortType.INPUT)

    def output_names(self) -> List[str]:
        return self.names(PortType.OUTPUT)

    def contains(self, port_type: PortType, name: str) -> bool:
        return name in self.names(port_type)

    @property
    def inverted(self) -> bool:
        return self._inverted

    def set_inverted(self, inverted: bool) -> None:
        self._inverted = inverted

    def __repr__(self) -> str:
        inv = ", inverted" if self._inverted else ""
        return f"OpticPorts(inputs={self.input_names()}, outputs={self.output_names()}{inv})"
