"""
OPTICGRAPH MUTATION LOGGER - The Graph's Flight Recorder

Records every structural mutation of an OpticGraph (nodes added/deleted,
connections made/removed, ports mapped, inversions, analysis passes) as a
structured event, so a session can be replayed or inspected after the fact.

Architecture:
- MutationEvent: one msgspec struct per mutation
- EventBuffer: in-memory ring buffer for recent events
- FileLogger: optional newline-delimited JSON log
- MutationLogger: the interface the graph calls

Usage:
    logger = MutationLogger()
    logger.log_node_added("abc123", "dummy")
    events = logger.get_events_for_node("abc123")

Human-readable diagnostics (warnings about stale nodes, disconnected
sub-trees) go through the standard `logging` module instead.
"""
import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

import msgspec

log = logging.getLogger(__name__)


# =============================================================================
# EVENT VOCABULARY
# =============================================================================

class MutationType(str, Enum):
    """Types of graph mutations for event tracking."""
    NODE_ADDED = "NODE_ADDED"
    NODE_DELETED = "NODE_DELETED"
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    PORT_MAPPED = "PORT_MAPPED"
    INVERTED = "INVERTED"
    ANALYZED = "ANALYZED"


class MutationEvent(msgspec.Struct, kw_only=True):
    """Individual mutation event."""
    timestamp: str
    sequence: int
    mutation_type: str                  # MutationType value
    node_id: Optional[str] = None
    node_type: Optional[str] = None

    # Connections
    source_id: Optional[str] = None
    target_id: Optional[str] = None
    source_port: Optional[str] = None
    target_port: Optional[str] = None
    distance: Optional[float] = None

    # Port mapping
    port_type: Optional[str] = None
    internal_port: Optional[str] = None
    external_port: Optional[str] = None

    # Analysis
    nodes_analyzed: int = 0
    results: int = 0


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass
class LoggerConfig:
    """Configuration for the mutation logger."""
    enable_file_log: bool = False       # Enable file-based logging
    log_path: Optional[Path] = None     # Directory for log files
    buffer_size: int = 10000            # In-memory buffer size

    def __post_init__(self):
        if self.log_path is None:
            self.log_path = Path("./workspace/logs")


# =============================================================================
# EVENT BUFFER
# =============================================================================

class EventBuffer:
    """
    Thread-safe ring buffer for recent mutation events.

    Provides O(1) append and O(n) query for filtering.
    """

    def __init__(self, max_size: int = 10000):
        self._buffer: deque = deque(maxlen=max_size)
        self._lock = threading.RLock()
        self._sequence = 0

    def append(self, event: MutationEvent) -> None:
        with self._lock:
            self._buffer.append(event)

    def get_last(self, n: int) -> List[MutationEvent]:
        """Get the last n events."""
        with self._lock:
            items = list(self._buffer)
            return items[-n:] if n > 0 else []

    def get_by_node(self, node_id: str) -> List[MutationEvent]:
        """Get all events touching a specific node."""
        with self._lock:
            return [
                e for e in self._buffer
                if node_id in (e.node_id, e.source_id, e.target_id)
            ]

    def get_by_type(self, mutation_type: str) -> List[MutationEvent]:
        with self._lock:
            return [e for e in self._buffer if e.mutation_type == mutation_type]

    def next_sequence(self) -> int:
        with self._lock:
            self._sequence += 1
            return self._sequence

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


# =============================================================================
# FILE LOGGER
# =============================================================================

class FileLogger:
    """
    File-based event logger.

    Writes events as newline-delimited JSON, one file per UTC day.
    """

    def __init__(self, log_path: Path):
        self._log_path = log_path
        self._lock = threading.Lock()
        self._encoder = msgspec.json.Encoder()
        log_path.mkdir(parents=True, exist_ok=True)

    def _file_for(self, date: str) -> Path:
        return self._log_path / f"mutations_{date}.jsonl"

    def write(self, event: MutationEvent) -> None:
        today = datetime.now(timezone.utc).strftime("%Y-%m-%d")
        line = self._encoder.encode(event) + b"\n"
        with self._lock:
            with open(self._file_for(today), "ab") as f:
                f.write(line)

    def read_log(self, date: str) -> List[MutationEvent]:
        """Read events from a specific date's log."""
        filepath = self._file_for(date)
        if not filepath.exists():
            return []

        decoder = msgspec.json.Decoder(type=MutationEvent)
        events = []
        with open(filepath, "rb") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    events.append(decoder.decode(line))
                except msgspec.DecodeError:
                    log.warning("skipping corrupt mutation log line in %s", filepath)
        return events


# =============================================================================
# MUTATION LOGGER (Main Interface)
# =============================================================================

class MutationLogger:
    """
    Main logging interface for graph mutations.

    Events always land in the in-memory buffer; the JSONL file and
    subscriber callbacks are optional destinations.
    """

    def __init__(self, config: Optional[LoggerConfig] = None):
        self.config = config or LoggerConfig()
        self._buffer = EventBuffer(self.config.buffer_size)
        self._file_logger: Optional[FileLogger] = None
        if self.config.enable_file_log and self.config.log_path:
            self._file_logger = FileLogger(self.config.log_path)
        self._subscribers: List[Callable[[MutationEvent], None]] = []

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def _emit(self, mutation_type: MutationType, **fields) -> MutationEvent:
        event = MutationEvent(
            timestamp=self._now(),
            sequence=self._buffer.next_sequence(),
            mutation_type=mutation_type.value,
            **fields,
        )
        self._buffer.append(event)
        if self._file_logger:
            self._file_logger.write(event)
        for subscriber in self._subscribers:
            try:
                subscriber(event)
            except Exception:
                # A broken subscriber must not break graph mutations
                log.exception("mutation subscriber failed")
        return event

    # =========================================================================
    # LOGGING METHODS
    # =========================================================================

    def log_node_added(self, node_id: str, node_type: str) -> MutationEvent:
        return self._emit(MutationType.NODE_ADDED, node_id=node_id, node_type=node_type)

    def log_node_deleted(self, node_id: str, node_type: Optional[str] = None) -> MutationEvent:
        return self._emit(MutationType.NODE_DELETED, node_id=node_id, node_type=node_type)

    def log_connected(
        self,
        source_id: str,
        source_port: str,
        target_id: str,
        target_port: str,
        distance: float,
    ) -> MutationEvent:
        return self._emit(
            MutationType.CONNECTED,
            source_id=source_id,
            source_port=source_port,
            target_id=target_id,
            target_port=target_port,
            distance=distance,
        )

    def log_disconnected(self, source_id: str, source_port: str, target_id: str) -> MutationEvent:
        return self._emit(
            MutationType.DISCONNECTED,
            source_id=source_id,
            source_port=source_port,
            target_id=target_id,
        )

    def log_port_mapped(
        self,
        node_id: str,
        port_type: str,
        internal_port: str,
        external_port: str,
    ) -> MutationEvent:
        return self._emit(
            MutationType.PORT_MAPPED,
            node_id=node_id,
            port_type=port_type,
            internal_port=internal_port,
            external_port=external_port,
        )

    def log_inverted(self, nodes: int) -> MutationEvent:
        return self._emit(MutationType.INVERTED, nodes_analyzed=nodes)

    def log_analysis(self, nodes_analyzed: int, results: int) -> MutationEvent:
        return self._emit(MutationType.ANALYZED, nodes_analyzed=nodes_analyzed, results=results)

    # =========================================================================
    # QUERIES & SUBSCRIPTIONS
    # =========================================================================

    def get_recent_events(self, n: int = 100) -> List[MutationEvent]:
        return self._buffer.get_last(n)

    def get_events_for_node(self, node_id: str) -> List[MutationEvent]:
        return self._buffer.get_by_node(node_id)

    def get_events_by_type(self, mutation_type: MutationType) -> List[MutationEvent]:
        return self._buffer.get_by_type(mutation_type.value)

    def subscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Callable[[MutationEvent], None]) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def clear(self) -> None:
        self._buffer.clear()

    @property
    def event_count(self) -> int:
        return len(self._buffer)


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_global_logger: Optional[MutationLogger] = None


def get_logger() -> MutationLogger:
    """Get the process-wide mutation logger, creating it on first use."""
    global _global_logger
    if _global_logger is None:
        _global_logger = MutationLogger()
    return _global_logger


def set_logger(logger: Optional[MutationLogger]) -> None:
    """Replace the process-wide mutation logger (None resets it)."""
    global _global_logger
    _global_logger = logger
