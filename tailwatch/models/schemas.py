"""
Pydantic models for tailwatch.

Shared data models across the collector.
"""

import os
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field


# =====================================================
# Filesystem Event Models
# =====================================================

class EventKind(str, Enum):
    """Filesystem notification category."""
    CREATE = "create"
    MODIFY = "modify"
    OTHER = "other"


class FileSystemEvent(BaseModel):
    """One notification from the event source."""
    kind: EventKind
    paths: List[Path] = Field(default_factory=list)

    @property
    def is_relevant(self) -> bool:
        """Only create and modify events can admit files."""
        return self.kind in (EventKind.CREATE, EventKind.MODIFY)


# =====================================================
# Tailing Models
# =====================================================

class StartPosition(str, Enum):
    """Where a newly admitted file starts being read."""
    START = "start"  # replay existing content
    END = "end"  # only lines appended after admission


class TailState(str, Enum):
    """Lifecycle of a tail task."""
    PENDING = "pending"
    ACTIVE = "active"
    FINISHED = "finished"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TailedLine(BaseModel):
    """A line read from a tailed file."""
    source: Path
    content: str

    def render(self) -> str:
        """Text form written to the console sink."""
        # Undecodable file name bytes are replaced rather than failing the write
        source = os.fsencode(self.source).decode("utf-8", errors="replace")
        return f"source: {source}, line: {self.content}"


# =====================================================
# Status Models
# =====================================================

class CollectorStatus(BaseModel):
    """Snapshot of the orchestrator's counters."""
    root: Optional[Path] = None
    started_at: Optional[datetime] = None
    watched_files: int = 0
    active_tasks: int = 0
    failed_tasks: int = 0
    events_seen: int = 0
    events_ignored: int = 0
    lines_emitted: int = 0
