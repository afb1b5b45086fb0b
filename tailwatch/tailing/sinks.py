"""Output sinks receiving tailed lines."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import List, Optional, Protocol, TextIO, Union

from tailwatch.models.schemas import TailedLine
from tailwatch.utils.helpers import normalise_path


class LineSink(Protocol):
    """Anything that accepts tailed lines."""

    def emit(self, line: TailedLine) -> None:
        ...


class ConsoleSink:
    """Writes each line to a text stream as a single write call."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self._lock = threading.Lock()

    def emit(self, line: TailedLine) -> None:
        text = line.render() + "\n"
        with self._lock:
            self.stream.write(text)
            self.stream.flush()


class MemorySink:
    """Collects lines in memory."""

    def __init__(self) -> None:
        self.lines: List[TailedLine] = []
        self._lock = threading.Lock()

    def emit(self, line: TailedLine) -> None:
        with self._lock:
            self.lines.append(line)

    def lines_for(self, path: Union[str, Path]) -> List[str]:
        """Return the content of lines read from ``path``, in order."""
        target = normalise_path(path)
        with self._lock:
            return [line.content for line in self.lines if normalise_path(line.source) == target]

    def __len__(self) -> int:
        with self._lock:
            return len(self.lines)
