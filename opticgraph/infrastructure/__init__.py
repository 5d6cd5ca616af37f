"""
OPTICGRAPH INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML configuration loading into msgspec settings structs
- logger: mutation event logging (ring buffer plus optional JSONL files)
"""
from opticgraph.infrastructure.config import (
    OpticGraphConfig,
    configure_logging,
    get_config,
    init_config,
    load_config,
    set_config,
)
from opticgraph.infrastructure.logger import (
    MutationEvent,
    MutationLogger,
    MutationType,
    get_logger,
    set_logger,
)

__all__ = [
    "OpticGraphConfig",
    "configure_logging",
    "get_config",
    "init_config",
    "load_config",
    "set_config",
    "MutationEvent",
    "MutationLogger",
    "MutationType",
    "get_logger",
    "set_logger",
]
