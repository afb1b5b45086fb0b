"""
tailwatch - directory tail collector.

Watches a directory tree for new or modified files and tails each one:
- Filesystem events (watchdog) -> admission into the watch set
- One tail task per admitted file -> line sink

Each file is tailed at most once for the lifetime of the process.
"""

__version__ = "0.1.0"

from tailwatch.models.schemas import (
    CollectorStatus,
    EventKind,
    FileSystemEvent,
    StartPosition,
    TailedLine,
    TailState,
)
from tailwatch.tailing.orchestrator import TailOrchestrator, TailTask
from tailwatch.tailing.reader import FileOpenError, LineReader, TransientReadError
from tailwatch.tailing.sinks import ConsoleSink, LineSink, MemorySink
from tailwatch.tailing.watch_set import WatchedFileSet
from tailwatch.utils.config import Settings, load_settings
from tailwatch.watchers.filesystem import (
    EventDeliveryError,
    FileSystemEventSource,
    WatchSetupError,
)

__all__ = [
    # Models
    "CollectorStatus",
    "EventKind",
    "FileSystemEvent",
    "StartPosition",
    "TailedLine",
    "TailState",
    # Config
    "Settings",
    "load_settings",
    # Components
    "FileSystemEventSource",
    "WatchedFileSet",
    "LineReader",
    "TailOrchestrator",
    "TailTask",
    "ConsoleSink",
    "LineSink",
    "MemorySink",
    # Errors
    "WatchSetupError",
    "EventDeliveryError",
    "FileOpenError",
    "TransientReadError",
]
