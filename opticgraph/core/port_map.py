"""
Port maps: the bidirectional table between external (group-facing) port names
and internal (node id, port name) pairs.

External names are unique within one map. The input and output maps of a
graph are independent namespaces.
"""
from typing import Any, Dict, Iterator, List, Optional, Tuple

from opticgraph.core.errors import PortError


class PortMap:
    """external name -> (internal node id, internal port name)"""

    def __init__(self, entries: Optional[Dict[str, Tuple[str, str]]] = None):
        self._map: Dict[str, Tuple[str, str]] = {}
        for external_name, (node_id, internal_name) in (entries or {}).items():
            self.add(external_name, node_id, internal_name)

    def add(self, external_name: str, node_id: str, internal_name: str) -> None:
        """
        Add a mapping entry.

        Raises:
            PortError: If a name is empty, the external name is already used, or
                       the internal port is already mapped
        """
        if not external_name or not internal_name:
            raise PortError("internal and external port names must not be empty")
        if external_name in self._map:
            raise PortError(f"external port name {external_name} already assigned")
        if self.external_port_name(node_id, internal_name) is not None:
            raise PortError(f"internal port {internal_name} of node {node_id} already mapped")
        self._map[external_name] = (node_id, internal_name)

    def remove(self, node_id: str, internal_name: str) -> bool:
        """Remove the entry pointing at (node_id, internal_name). Returns True if found."""
        external_name = self.external_port_name(node_id, internal_name)
        if external_name is None:
            return False
        del self._map[external_name]
        return True

    def remove_all_from_uuid(self, node_id: str) -> bool:
        """Remove every entry pointing at the given node. Returns True if any was removed."""
        stale = [ext for ext, (nid, _) in self._map.items() if nid == node_id]
        for ext in stale:
            del self._map[ext]
        return bool(stale)

    def get(self, external_name: str) -> Optional[Tuple[str, str]]:
        return self._map.get(external_name)

    def external_port_name(self, node_id: str, internal_name: str) -> Optional[str]:
        """Reverse lookup: the external name mapped to (node_id, internal_name)."""
        for ext, (nid, port) in self._map.items():
            if nid == node_id and port == internal_name:
                return ext
        return None

    def contains_external_name(self, name: str) -> bool:
        return name in self._map

    def contains_node(self, node_id: str) -> bool:
        return any(nid == node_id for nid, _ in self._map.values())

    def assigned_ports_for_node(self, node_id: str) -> List[Tuple[str, str]]:
        """(external name, internal name) pairs belonging to a node."""
        return [(ext, port) for ext, (nid, port) in self._map.items() if nid == node_id]

    def port_names(self) -> List[str]:
        return list(self._map.keys())

    def items(self) -> Iterator[Tuple[str, Tuple[str, str]]]:
        return iter(self._map.items())

    def to_builtins(self) -> Dict[str, Tuple[str, str]]:
        return dict(self._map)

    @classmethod
    def from_builtins(cls, data: Dict[str, Any]) -> "PortMap":
        return cls({ext: (str(v[0]), str(v[1])) for ext, v in data.items()})

    def copy(self) -> "PortMap":
        return PortMap(self._map)

    def __len__(self) -> int:
        return len(self._map)

    def __contains__(self, external_name: str) -> bool:
        return external_name in self._map

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PortMap) and self._map == other._map

    def __repr__(self) -> str:
        return f"PortMap({self._map!r})"
