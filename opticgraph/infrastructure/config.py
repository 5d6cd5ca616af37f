"""
OPTICGRAPH CONFIG - Settings Loaded Once, Queried Everywhere

Configuration lives in config/opticgraph.toml and is loaded with tomllib,
then converted into typed msgspec structs. Missing sections fall back to the
defaults declared here; a broken file falls back entirely, with a warning.

Usage:
    from opticgraph.infrastructure.config import get_config

    config = get_config()
    if config.analysis.warn_disconnected:
        ...
"""
import logging
import tomllib
import warnings
from pathlib import Path
from typing import Any, Dict, Optional, Union

import msgspec

from opticgraph.infrastructure.logger import LoggerConfig, MutationLogger, set_logger

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "opticgraph.toml"


# =============================================================================
# SETTINGS STRUCTS
# =============================================================================

class LoggingSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    level: str = "WARNING"                  # stdlib logging level name
    mutation_log_file: bool = False         # Write mutation events as JSONL
    mutation_log_dir: str = "./workspace/logs"
    mutation_buffer_size: int = 10000


class AnalysisSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    warn_disconnected: bool = True          # Warn on >1 connected component
    warn_stale_nodes: bool = True           # Warn when skipping stale nodes


class ExportSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    rankdir: str = "LR"                     # Graphviz layout direction: LR or TB


class PersistenceSettings(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    json_indent: int = 2                    # 0 writes compact JSON


class OpticGraphConfig(msgspec.Struct, kw_only=True, forbid_unknown_fields=True):
    logging: LoggingSettings = msgspec.field(default_factory=LoggingSettings)
    analysis: AnalysisSettings = msgspec.field(default_factory=AnalysisSettings)
    export: ExportSettings = msgspec.field(default_factory=ExportSettings)
    persistence: PersistenceSettings = msgspec.field(default_factory=PersistenceSettings)


# =============================================================================
# LOADING
# =============================================================================

def load_toml_config(path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """
    Load the raw configuration dict from TOML.

    A missing default file yields an empty dict; an explicitly requested file
    that cannot be read, or any parse error, is reported with a warning.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if path is None and not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        warnings.warn(f"Failed to load config from TOML: {e}")
        return {}


def load_config(path: Optional[Union[str, Path]] = None) -> OpticGraphConfig:
    """Load and validate configuration; invalid content falls back to defaults."""
    raw = load_toml_config(path)
    try:
        return msgspec.convert(raw, type=OpticGraphConfig)
    except msgspec.ValidationError as e:
        warnings.warn(f"Invalid configuration, using defaults: {e}")
        return OpticGraphConfig()


def configure_logging(config: OpticGraphConfig) -> None:
    """
    Apply logging settings: stdlib level and the mutation logger destination.

    Loading a config does not apply it; call this (or init_config) once at
    startup for the [logging] section to take effect.
    """
    level = logging.getLevelName(config.logging.level.upper())
    if not isinstance(level, int):
        warnings.warn(f"Unknown log level {config.logging.level!r}, using WARNING")
        level = logging.WARNING
    logging.getLogger("opticgraph").setLevel(level)
    set_logger(MutationLogger(LoggerConfig(
        enable_file_log=config.logging.mutation_log_file,
        log_path=Path(config.logging.mutation_log_dir),
        buffer_size=config.logging.mutation_buffer_size,
    )))


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_config: Optional[OpticGraphConfig] = None


def get_config() -> OpticGraphConfig:
    """Get the process-wide configuration, loading it on first use."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[OpticGraphConfig]) -> None:
    """Replace the process-wide configuration (None forces a reload)."""
    global _config
    _config = config


def init_config(path: Optional[Union[str, Path]] = None) -> OpticGraphConfig:
    """
    Load configuration, make it the process-wide instance and apply its
    logging settings.

    Usage:
        from opticgraph.infrastructure.config import init_config

        init_config()                       # config/opticgraph.toml
        init_config("site/opticgraph.toml")
    """
    config = load_config(path)
    set_config(config)
    configure_logging(config)
    return config
