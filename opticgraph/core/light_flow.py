"""
Light flows: the payload of a graph edge.

A LightFlow connects a source port to a target port over a finite propagation
distance and transiently holds the light data produced for it during one
analysis pass.
"""
from typing import Optional

from opticgraph.core.errors import StructuralError
from opticgraph.core.schemas import LightData, is_finite_distance


class LightFlow:
    """Edge payload: port labels, distance (metre), and per-pass data."""

    __slots__ = ("_src_port", "_target_port", "_distance", "_data")

    def __init__(self, src_port: str, target_port: str, distance: float):
        if not is_finite_distance(distance):
            raise StructuralError("distance must be finite")
        self._src_port = src_port
        self._target_port = target_port
        self._distance = float(distance)
        self._data: Optional[LightData] = None

    @property
    def src_port(self) -> str:
        return self._src_port

    @property
    def target_port(self) -> str:
        return self._target_port

    @property
    def distance(self) -> float:
        return self._distance

    def set_distance(self, distance: float) -> None:
        if not is_finite_distance(distance):
            raise StructuralError("distance must be finite")
        self._distance = float(distance)

    @property
    def data(self) -> Optional[LightData]:
        return self._data

    def set_data(self, data: Optional[LightData]) -> None:
        self._data = data

    def inverse(self) -> None:
        """Swap source and target port labels (edge direction reversal)."""
        self._src_port, self._target_port = self._target_port, self._src_port

    def __repr__(self) -> str:
        return f"LightFlow({self._src_port!r} -> {self._target_port!r}, {self._distance} m)"
