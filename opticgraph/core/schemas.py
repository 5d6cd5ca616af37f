"""
OPTICGRAPH SCHEMAS - The Data That Flows and Persists

This module defines the msgspec structures that cross the graph:
- LightData: the per-port payload carried by edges during one analysis pass
- Isometry: the placement of a node in 3D space
- NodeRecord / GraphRecord: the persisted (textual) shape of a graph
- Pre-compiled JSON encoders/decoders for persistence

Design Principles:
1. STRICT TYPING: msgspec.Struct with no silent type coercion
2. TAGGED PAYLOADS: light data variants are a closed tagged union
3. IMMUTABLE IDS: node ids are UUID hex strings set once and never changed
"""
import math
import uuid
from typing import Any, Dict, List, Optional, Tuple, Union

import msgspec


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def generate_id() -> str:
    """Generate a new UUID hex string for node ids."""
    return uuid.uuid4().hex


def is_finite_distance(distance: float) -> bool:
    """Check that a propagation distance is a finite number."""
    try:
        return math.isfinite(distance)
    except TypeError:
        return False


# =============================================================================
# LIGHT DATA (Per-Port Payload)
# =============================================================================

class EnergyData(msgspec.Struct, tag="energy", frozen=True):
    """Total energy (joules) arriving at or leaving a port."""
    energy: float


class FourierData(msgspec.Struct, tag="fourier", frozen=True):
    """Placeholder for field data handled by Fourier-optics analyzers."""
    pass


LightData = Union[EnergyData, FourierData]

# Port name -> payload, the unit of exchange between graph and nodes
LightResult = Dict[str, LightData]


# =============================================================================
# GEOMETRY
# =============================================================================

class Isometry(msgspec.Struct, frozen=True):
    """
    Rigid placement of a node: translation (metre) and rotation (radian,
    applied as rotations about x, y, z).
    """
    translation: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    rotation: Tuple[float, float, float] = (0.0, 0.0, 0.0)

    @classmethod
    def identity(cls) -> "Isometry":
        return cls()

    def local_z_axis(self) -> Tuple[float, float, float]:
        """Unit vector of the local optical axis in global coordinates."""
        rx, ry, _ = self.rotation
        # R = Rx * Ry * Rz applied to (0, 0, 1); rz leaves the z axis unchanged
        return (
            math.sin(ry),
            -math.sin(rx) * math.cos(ry),
            math.cos(rx) * math.cos(ry),
        )

    def translated_along_axis(self, distance: float) -> "Isometry":
        """Return a copy moved by `distance` along the local optical axis."""
        ax, ay, az = self.local_z_axis()
        x, y, z = self.translation
        return Isometry(
            translation=(x + distance * ax, y + distance * ay, z + distance * az),
            rotation=self.rotation,
        )

    def is_close(self, other: "Isometry", abs_tol: float = 1e-12) -> bool:
        pairs = zip(self.translation + self.rotation, other.translation + other.rotation)
        return all(math.isclose(a, b, rel_tol=0.0, abs_tol=abs_tol) for a, b in pairs)


# =============================================================================
# PERSISTED GRAPH SHAPE
# =============================================================================

# (source id, target id, source port, target port, distance in metre)
ConnectionInfo = Tuple[str, str, str, str, float]


class NodeRecord(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """One persisted node: its type name, its id, and its own properties."""
    type: str
    id: str
    properties: Dict[str, Any] = msgspec.field(default_factory=dict)


class GraphRecord(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    """
    The persisted shape of an OpticGraph.

    Field names are part of the file format: nodes, edges, input_map,
    output_map. Port maps are `external name -> (node id, internal name)`.
    """
    nodes: List[NodeRecord]
    edges: List[ConnectionInfo]
    input_map: Dict[str, Tuple[str, str]] = msgspec.field(default_factory=dict)
    output_map: Dict[str, Tuple[str, str]] = msgspec.field(default_factory=dict)


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

# Pre-compiled encoders/decoders, reused across the application
_graph_encoder = msgspec.json.Encoder()
_graph_decoder = msgspec.json.Decoder(type=GraphRecord)
_light_decoder = msgspec.json.Decoder(type=LightData)


def encode_graph_record(record: GraphRecord, indent: int = 0) -> bytes:
    """Serialize a GraphRecord to JSON bytes, pretty-printed if indent > 0."""
    data = _graph_encoder.encode(record)
    if indent > 0:
        return msgspec.json.format(data, indent=indent)
    return data


def decode_graph_record(data: Union[bytes, str]) -> GraphRecord:
    """Deserialize JSON bytes to a GraphRecord."""
    return _graph_decoder.decode(data)


def graph_record_from_builtins(obj: Any) -> GraphRecord:
    """Convert already-parsed builtins (e.g. a nested group graph) to a GraphRecord."""
    return msgspec.convert(obj, type=GraphRecord)


def encode_light_data(data: LightData) -> bytes:
    return _graph_encoder.encode(data)


def decode_light_data(data: Union[bytes, str]) -> LightData:
    return _light_decoder.decode(data)


def isometry_to_builtins(iso: Optional[Isometry]) -> Optional[Dict[str, Any]]:
    return None if iso is None else msgspec.to_builtins(iso)


def isometry_from_builtins(obj: Any) -> Optional[Isometry]:
    return None if obj is None else msgspec.convert(obj, type=Isometry)
