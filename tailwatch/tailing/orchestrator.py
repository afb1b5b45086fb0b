"""
Tail orchestrator for tailwatch.

Consumes filesystem events, admits each regular file exactly once and runs
one independent tail task per admitted file, forwarding lines to a sink.
"""

import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from tailwatch.models.schemas import (
    CollectorStatus,
    FileSystemEvent,
    StartPosition,
    TailedLine,
    TailState,
)
from tailwatch.tailing.reader import FileOpenError, LineReader
from tailwatch.tailing.sinks import LineSink
from tailwatch.tailing.watch_set import WatchedFileSet
from tailwatch.utils.helpers import file_identity, is_regular_file
from tailwatch.watchers.filesystem import FileSystemEventSource


class TailTask:
    """Tailing unit bound to exactly one file identity."""

    def __init__(self, path: Path):
        self.path = path
        self.state = TailState.PENDING
        self.task: Optional[asyncio.Task] = None
        self.lines_emitted = 0
        self.error: Optional[str] = None

    @property
    def done(self) -> bool:
        return self.task is not None and self.task.done()

    def __repr__(self) -> str:
        return f"TailTask(path={str(self.path)!r}, state={self.state.value})"


class TailOrchestrator:
    """
    Single consumer of the event source.

    Owns the WatchedFileSet and supervises the tail tasks it spawns. A shared
    stop event acts as the cancellation token for every suspension point.
    """

    def __init__(
        self,
        source: FileSystemEventSource,
        sink: LineSink,
        watch_set: Optional[WatchedFileSet] = None,
        poll_interval: float = 0.5,
        start_position: StartPosition = StartPosition.START,
        stop_event: Optional[asyncio.Event] = None,
        reader_class=LineReader,
    ):
        """
        Initialize orchestrator.

        Args:
            source: Filesystem event source (started by ``run`` if needed)
            sink: Receives every tailed line
            watch_set: Admission set (a fresh one if None)
            poll_interval: Idle wait of each line reader, in seconds
            start_position: Where readers start in newly admitted files
            stop_event: Cancellation token (a fresh one if None)
            reader_class: Line reader implementation
        """
        self.source = source
        self.sink = sink
        self.watch_set = watch_set if watch_set is not None else WatchedFileSet()
        self.poll_interval = poll_interval
        self.start_position = StartPosition(start_position)
        self.stop_event = stop_event if stop_event is not None else asyncio.Event()
        self.reader_class = reader_class

        self.tasks: Dict[str, TailTask] = {}

        # Counters
        self._started_at: Optional[datetime] = None
        self._events_seen = 0
        self._events_ignored = 0
        self._lines_emitted = 0

    async def run(self) -> None:
        """
        Consume events until stop is requested.

        Raises:
            WatchSetupError: If the event source cannot be started
            EventDeliveryError: If the event stream breaks
        """
        if not self.source.running:
            self.source.start()

        self._started_at = datetime.now(timezone.utc)
        stopper = asyncio.create_task(self._stop_when_requested())

        try:
            async for event in self.source:
                self.handle_event(event)
        finally:
            stopper.cancel()

    def handle_event(self, event: FileSystemEvent) -> List[TailTask]:
        """
        Admit the files referenced by one event and spawn their tail tasks.

        Args:
            event: Filesystem event

        Returns:
            Tail tasks spawned for this event
        """
        self._events_seen += 1

        if not event.is_relevant:
            self._events_ignored += 1
            logger.debug(f"Ignoring {event.kind.value} event: {event.paths}")
            return []

        spawned = []
        for path in event.paths:
            # Directories, dangling links and vanished paths
            if not is_regular_file(path):
                continue

            if not self.watch_set.try_admit(path):
                continue

            spawned.append(self._spawn(path))

        return spawned

    def request_stop(self) -> None:
        """Set the cancellation token and stop the event source."""
        self.stop_event.set()
        self.source.stop()

    async def shutdown(self, timeout: float = 5.0) -> None:
        """
        Stop consuming events and wait for tail tasks to finish.

        Tasks still running after ``timeout`` seconds are cancelled.
        """
        self.request_stop()
        await asyncio.to_thread(self.source.join, timeout)

        pending = [tail.task for tail in self.tasks.values() if tail.task and not tail.task.done()]
        if pending:
            _, not_done = await asyncio.wait(pending, timeout=timeout)
            for task in not_done:
                task.cancel()
            if not_done:
                logger.warning(f"Cancelled {len(not_done)} tail task(s) after {timeout}s")
                await asyncio.gather(*not_done, return_exceptions=True)

        logger.success("Tail orchestrator stopped")

    def status(self) -> CollectorStatus:
        """Get a snapshot of the orchestrator state."""
        return CollectorStatus(
            root=self.source.root,
            started_at=self._started_at,
            watched_files=len(self.watch_set),
            active_tasks=sum(1 for tail in self.tasks.values() if tail.state is TailState.ACTIVE),
            failed_tasks=sum(1 for tail in self.tasks.values() if tail.state is TailState.FAILED),
            events_seen=self._events_seen,
            events_ignored=self._events_ignored,
            lines_emitted=self._lines_emitted,
        )

    # Helper routines -----------------------------------------------------------------

    async def _stop_when_requested(self) -> None:
        await self.stop_event.wait()
        self.source.stop()

    def _spawn(self, path: Path) -> TailTask:
        identity = file_identity(path)
        tail = TailTask(Path(identity))
        self.tasks[identity] = tail
        tail.task = asyncio.create_task(self._tail(tail), name=f"tail:{identity}")
        logger.info(f"Watching: {identity}")
        return tail

    async def _tail(self, tail: TailTask) -> None:
        reader = self.reader_class(
            tail.path,
            poll_interval=self.poll_interval,
            start_position=self.start_position,
            stop_event=self.stop_event,
        )

        try:
            reader.open()
        except FileOpenError as e:
            # Admission is kept; the file is not retried
            tail.state = TailState.FAILED
            tail.error = str(e)
            logger.warning(f"{e}; abandoning file")
            return

        tail.state = TailState.ACTIVE
        lines = reader.lines()

        try:
            async for line in lines:
                self._forward(tail, line)
        except asyncio.CancelledError:
            tail.state = TailState.CANCELLED
            raise
        except Exception as e:
            tail.state = TailState.FAILED
            tail.error = str(e)
            logger.exception(f"Tail task failed for {tail.path}: {e}")
            return
        finally:
            await lines.aclose()

        tail.state = TailState.CANCELLED if self.stop_event.is_set() else TailState.FINISHED
        logger.info(f"Stopped tailing {tail.path} ({tail.lines_emitted} lines)")

    def _forward(self, tail: TailTask, line: TailedLine) -> None:
        self.sink.emit(line)
        tail.lines_emitted += 1
        self._lines_emitted += 1
