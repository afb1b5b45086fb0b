"""
File system event source for tailwatch.

Monitors the root directory recursively and delivers create/modify
notifications to the orchestrator. Uses watchdog library for cross-platform
file system event monitoring; the observer thread hands events to the
asyncio loop through a queue.
"""

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, Optional, Union

from loguru import logger
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent as WatchdogEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from tailwatch.models.schemas import EventKind, FileSystemEvent
from tailwatch.utils.helpers import normalise_path

_STOP = object()


class WatchSetupError(Exception):
    """Raised when the root directory cannot be monitored."""


class EventDeliveryError(Exception):
    """Raised when the event stream breaks after setup."""


def to_event(event: WatchdogEvent) -> FileSystemEvent:
    """
    Translate a watchdog event into a FileSystemEvent.

    Moves are reported as modifications carrying both paths, so a file
    renamed into the tree is discovered through its destination.

    Args:
        event: watchdog event

    Returns:
        FileSystemEvent with kind and affected paths
    """
    src = Path(os.fsdecode(event.src_path))

    if event.event_type == EVENT_TYPE_CREATED:
        return FileSystemEvent(kind=EventKind.CREATE, paths=[src])

    if event.event_type == EVENT_TYPE_MODIFIED:
        return FileSystemEvent(kind=EventKind.MODIFY, paths=[src])

    if event.event_type == EVENT_TYPE_MOVED:
        paths = [src]
        dest = getattr(event, "dest_path", None)
        if dest:
            paths.append(Path(os.fsdecode(dest)))
        return FileSystemEvent(kind=EventKind.MODIFY, paths=paths)

    return FileSystemEvent(kind=EventKind.OTHER, paths=[src])


class QueueingEventHandler(FileSystemEventHandler):
    """Watchdog handler that forwards every event into an asyncio queue."""

    def __init__(self, loop: asyncio.AbstractEventLoop, queue: asyncio.Queue):
        """
        Initialize event handler.

        Args:
            loop: Event loop owning the queue
            queue: Queue drained by the orchestrator
        """
        super().__init__()
        self.loop = loop
        self.queue = queue
        self.dropped = 0

    def on_any_event(self, event: WatchdogEvent) -> None:
        """Handle any file system event (runs on the observer thread)."""
        self._enqueue(to_event(event))

    def _enqueue(self, event: FileSystemEvent) -> None:
        if self.loop.is_closed():
            return

        def _put() -> None:
            try:
                self.queue.put_nowait(event)
            except asyncio.QueueFull:
                self.dropped += 1
                logger.warning(f"Event queue full; dropping {event.kind.value} for {event.paths}")

        try:
            self.loop.call_soon_threadsafe(_put)
        except RuntimeError:
            # Loop closed between the check and the call
            logger.debug(f"Event loop closed; discarding event for {event.paths}")


class FileSystemEventSource:
    """
    Recursive watch on a root directory, consumed as an async iterator.

    Usage:
        source = FileSystemEventSource(root)
        source.start()
        async for event in source:
            ...
    """

    def __init__(
        self,
        root: Union[str, Path],
        queue_size: int = 0,
        health_check_interval: float = 1.0,
        observer_class=Observer,
    ):
        """
        Initialize event source.

        Args:
            root: Directory to watch recursively
            queue_size: Maximum buffered events (0 = unbounded)
            health_check_interval: Seconds between observer liveness checks while idle
            observer_class: watchdog observer implementation
        """
        self.root = normalise_path(root)
        self.queue_size = queue_size
        self.health_check_interval = health_check_interval
        self.observer_class = observer_class

        self.queue: Optional[asyncio.Queue] = None
        self.handler: Optional[QueueingEventHandler] = None
        self.observer = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self.observer is not None and not self._stopping

    def start(self) -> None:
        """
        Start watching the root directory. Must be called from a running loop.

        Raises:
            WatchSetupError: If the root is missing, not a directory, or cannot be monitored
        """
        if not self.root.exists():
            raise WatchSetupError(f"Root directory does not exist: {self.root}")
        if not self.root.is_dir():
            raise WatchSetupError(f"Root path is not a directory: {self.root}")
        if not os.access(self.root, os.R_OK | os.X_OK):
            raise WatchSetupError(f"Root directory is not readable: {self.root}")

        loop = asyncio.get_running_loop()
        self.queue = asyncio.Queue(maxsize=self.queue_size)
        self.handler = QueueingEventHandler(loop, self.queue)

        observer = self.observer_class()
        observer.daemon = True
        try:
            observer.schedule(self.handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            raise WatchSetupError(f"Cannot monitor {self.root}: {e}") from e

        self.observer = observer
        self._stopping = False
        logger.success(f"Started watching: {self.root}")

    def stop(self) -> None:
        """Signal the observer to stop and wake up the consumer without blocking."""
        if self.observer is None or self._stopping:
            return

        self._stopping = True
        self.observer.stop()

        try:
            self.queue.put_nowait(_STOP)
        except asyncio.QueueFull:
            # Consumer notices _stopping on its next health check
            pass

        logger.info(f"Stopped watching: {self.root}")

    def join(self, timeout: Optional[float] = 5.0) -> None:
        """Wait for the observer thread to exit. Blocks; run it off the event loop."""
        if self.observer is not None and self.observer.is_alive():
            self.observer.join(timeout)

    def __aiter__(self) -> AsyncIterator[FileSystemEvent]:
        return self.events()

    async def events(self) -> AsyncIterator[FileSystemEvent]:
        """
        Yield events until the source is stopped.

        Raises:
            EventDeliveryError: If the observer dies or the root disappears
        """
        if self.queue is None:
            raise RuntimeError("Event source has not been started")

        while not self._stopping:
            try:
                item = await asyncio.wait_for(self.queue.get(), timeout=self.health_check_interval)
            except asyncio.TimeoutError:
                self.check_health()
                continue

            if item is _STOP:
                break

            yield item

    def check_health(self) -> None:
        """
        Verify the observer and its emitters are still delivering.

        Raises:
            EventDeliveryError: If the event stream can no longer deliver events
        """
        if self._stopping or self.observer is None:
            return

        if not self.observer.is_alive():
            raise EventDeliveryError(f"File system observer for {self.root} stopped unexpectedly")

        for emitter in list(self.observer.emitters):
            if not emitter.is_alive():
                raise EventDeliveryError(f"File system event emitter for {emitter.watch.path} stopped")

        if not self.root.is_dir():
            raise EventDeliveryError(f"Root directory disappeared: {self.root}")
