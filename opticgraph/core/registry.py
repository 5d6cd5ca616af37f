"""
Node-type registry.

Maps persisted type names to node classes so a graph can be rebuilt from its
textual form. Node modules register themselves with @register_node_type.
"""
from typing import Any, Dict, Type

from opticgraph.core.errors import SerializationError
from opticgraph.core.optic_node import OpticNode

NODE_TYPES: Dict[str, Type[OpticNode]] = {}


def register_node_type(cls: Type[OpticNode]) -> Type[OpticNode]:
    """Class decorator registering a node class under its NODE_TYPE."""
    existing = NODE_TYPES.get(cls.NODE_TYPE)
    if existing is not None and existing is not cls:
        raise ValueError(f"node type {cls.NODE_TYPE!r} already registered by {existing.__name__}")
    NODE_TYPES[cls.NODE_TYPE] = cls
    return cls


def create_node(node_type: str, properties: Dict[str, Any]) -> OpticNode:
    """
    Instantiate a node of the given type from persisted properties.

    Raises:
        SerializationError: If the type is unknown or the properties are invalid
    """
    # Registration happens on import of the node modules
    import opticgraph.nodes  # noqa: F401

    cls = NODE_TYPES.get(node_type)
    if cls is None:
        raise SerializationError(f"unknown node type: {node_type}")
    try:
        return cls.from_properties(properties)
    except SerializationError:
        raise
    except Exception as e:
        raise SerializationError(f"cannot create node of type {node_type}: {e}") from e
