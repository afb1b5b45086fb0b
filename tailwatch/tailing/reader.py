"""
Polling line reader for tailed files.

Produces newly appended lines as they arrive, suspending between polls.
Handles truncation (reads again from the top), rotation (follows the new
file at the same path) and deletion (ends the sequence).
"""

import asyncio
import os
from pathlib import Path
from typing import AsyncIterator, BinaryIO, List, Optional, Union

from loguru import logger

from tailwatch.models.schemas import StartPosition, TailedLine

CHUNK_SIZE = 64 * 1024

# Outcomes of the end-of-file check
_UNCHANGED = "unchanged"
_TRUNCATED = "truncated"
_ROTATED = "rotated"
_GONE = "gone"


class FileOpenError(Exception):
    """Raised when a file cannot be opened for tailing."""

    def __init__(self, path: Union[str, Path], reason: object):
        super().__init__(f"Cannot open {path}: {reason}")
        self.path = Path(path)


class TransientReadError(Exception):
    """Raised when a single read attempt on an open file fails."""

    def __init__(self, path: Union[str, Path], reason: object):
        super().__init__(f"Read failed for {path}: {reason}")
        self.path = Path(path)


class LineReader:
    """
    Lazy, non-restartable sequence of lines appended to one file.

    Truncation is detected by the file shrinking below the read offset at
    end-of-file. A file truncated and then grown past that offset within a
    single poll interval is not detected; the reader continues from its old
    offset and the rewritten head of the file is skipped.

    Usage:
        reader = LineReader(path, poll_interval=0.5)
        reader.open()
        async for line in reader:
            ...
    """

    def __init__(
        self,
        path: Union[str, Path],
        poll_interval: float = 0.5,
        start_position: StartPosition = StartPosition.START,
        stop_event: Optional[asyncio.Event] = None,
    ):
        """
        Initialize line reader.

        Args:
            path: File to tail
            poll_interval: Seconds to wait when no new data is available
            start_position: Replay existing content or skip to the end
            stop_event: Cancellation token checked at every suspension point
        """
        self.path = Path(path)
        self.poll_interval = poll_interval
        self.start_position = StartPosition(start_position)
        self.stop_event = stop_event

        self._handle: Optional[BinaryIO] = None
        self._inode: Optional[int] = None
        self._position = 0
        self._buffer = b""
        self._consumed = False

    def open(self) -> None:
        """
        Open the file and seek to the configured start position.

        Raises:
            FileOpenError: If the file cannot be opened
        """
        if self._handle is not None:
            return

        try:
            handle = open(self.path, "rb")
        except OSError as e:
            raise FileOpenError(self.path, e) from e

        try:
            stats = os.fstat(handle.fileno())
            if self.start_position is StartPosition.END:
                handle.seek(0, os.SEEK_END)
        except OSError as e:
            handle.close()
            raise FileOpenError(self.path, e) from e

        self._handle = handle
        self._inode = stats.st_ino
        self._position = handle.tell()

    def close(self) -> None:
        """Close the underlying file handle."""
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __aiter__(self) -> AsyncIterator[TailedLine]:
        return self.lines()

    async def lines(self) -> AsyncIterator[TailedLine]:
        """
        Yield complete lines until the file is deleted or the stop event is set.

        Raises:
            FileOpenError: If the reader was not opened and opening fails
        """
        if self._consumed:
            raise RuntimeError(f"LineReader for {self.path} cannot be restarted")
        self._consumed = True
        self.open()

        try:
            while not self._stopped():
                try:
                    data = self._read_chunk()
                except TransientReadError as e:
                    logger.warning(f"{e}; retrying on next poll")
                    data = b""

                if data:
                    for line in self._split(data):
                        yield line
                    # Give sibling tasks a turn while draining a large backlog
                    await asyncio.sleep(0)
                    continue

                outcome = self._check_file()
                if outcome == _GONE:
                    for line in self._flush_partial():
                        yield line
                    break
                if outcome == _ROTATED:
                    for line in self._flush_partial():
                        yield line
                    continue
                if outcome == _TRUNCATED:
                    continue

                if await self._idle():
                    break
        finally:
            self.close()

    # Helper routines -----------------------------------------------------------------

    def _stopped(self) -> bool:
        return self.stop_event is not None and self.stop_event.is_set()

    async def _idle(self) -> bool:
        """Wait one poll interval. Returns True if the stop event fired."""
        if self.stop_event is None:
            await asyncio.sleep(self.poll_interval)
            return False

        try:
            await asyncio.wait_for(self.stop_event.wait(), timeout=self.poll_interval)
            return True
        except asyncio.TimeoutError:
            return False

    def _read_chunk(self) -> bytes:
        try:
            data = self._handle.read(CHUNK_SIZE)
        except OSError as e:
            raise TransientReadError(self.path, e) from e

        self._position += len(data)
        return data

    def _split(self, data: bytes) -> List[TailedLine]:
        self._buffer += data
        *complete, self._buffer = self._buffer.split(b"\n")
        return [self._make_line(raw) for raw in complete]

    def _flush_partial(self) -> List[TailedLine]:
        if not self._buffer:
            return []
        raw, self._buffer = self._buffer, b""
        return [self._make_line(raw)]

    def _make_line(self, raw: bytes) -> TailedLine:
        content = raw.decode("utf-8", errors="replace").rstrip("\r")
        return TailedLine(source=self.path, content=content)

    def _check_file(self) -> str:
        """Compare the path on disk with the open handle once EOF is reached."""
        try:
            stats = os.stat(self.path)
        except FileNotFoundError:
            logger.info(f"File removed, stopping tail: {self.path}")
            return _GONE
        except OSError as e:
            logger.warning(f"Cannot stat {self.path}: {e}")
            return _UNCHANGED

        if stats.st_ino != self._inode:
            return self._reopen()

        if stats.st_size < self._position:
            logger.info(f"File truncated, reading from start: {self.path}")
            self._handle.seek(0)
            self._position = 0
            self._buffer = b""
            return _TRUNCATED

        return _UNCHANGED

    def _reopen(self) -> str:
        try:
            handle = open(self.path, "rb")
        except FileNotFoundError:
            logger.info(f"File removed, stopping tail: {self.path}")
            return _GONE
        except OSError as e:
            logger.warning(f"Cannot reopen rotated file {self.path}: {e}")
            return _UNCHANGED

        logger.info(f"File rotated, following new file: {self.path}")
        self.close()
        self._handle = handle
        self._inode = os.fstat(handle.fileno()).st_ino
        self._position = 0
        return _ROTATED
