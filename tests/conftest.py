"""Test fixtures for tailwatch tests."""

import asyncio
from pathlib import Path

import pytest

from tailwatch.models.schemas import EventKind, FileSystemEvent


class StubEventSource:
    """In-memory stand-in for FileSystemEventSource."""

    def __init__(self, root: Path):
        self.root = root
        self.running = False
        self.started = False
        self.stopped = False
        self.joined = False
        self.queue: asyncio.Queue = asyncio.Queue()

    def start(self):
        self.running = True
        self.started = True

    def stop(self):
        if self.stopped:
            return
        self.stopped = True
        self.running = False
        self.queue.put_nowait(None)

    def join(self, timeout=None):
        self.joined = True

    def push(self, kind: EventKind, *paths: Path):
        self.queue.put_nowait(FileSystemEvent(kind=kind, paths=list(paths)))

    async def __aiter__(self):
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event


async def _wait_until(predicate, timeout: float = 3.0, interval: float = 0.01):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError(f"Condition not met within {timeout}s")
        await asyncio.sleep(interval)


@pytest.fixture
def log_root(tmp_path, monkeypatch):
    """Directory to watch; also the cwd so no stray .env is picked up."""
    root = tmp_path / "logs"
    root.mkdir()
    monkeypatch.chdir(tmp_path)
    return root


@pytest.fixture
def stub_source(log_root):
    """Create an in-memory event source rooted at log_root."""
    return StubEventSource(log_root)


@pytest.fixture
def wait_until():
    """Poll a condition from async tests until it holds or times out."""
    return _wait_until


@pytest.fixture
def clean_env(monkeypatch):
    """Remove collector environment variables."""
    for name in (
        "ROOT_DIR",
        "POLLING_INTERVAL_MS",
        "START_POSITION",
        "EVENT_QUEUE_SIZE",
        "HEALTH_CHECK_INTERVAL_S",
        "SHUTDOWN_TIMEOUT_S",
        "LOG_LEVEL",
        "MONGODB_URI",
        "DATABASE",
        "COLLECTION",
    ):
        monkeypatch.delenv(name, raising=False)
