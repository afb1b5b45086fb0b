import io
import threading
from pathlib import Path

from tailwatch.models.schemas import TailedLine
from tailwatch.tailing.sinks import ConsoleSink, MemorySink


def test_console_sink_writes_source_and_line():
    stream = io.StringIO()
    sink = ConsoleSink(stream)

    sink.emit(TailedLine(source=Path("/logs/a.log"), content="l1"))
    sink.emit(TailedLine(source=Path("/logs/a.log"), content=""))

    assert stream.getvalue() == "source: /logs/a.log, line: l1\nsource: /logs/a.log, line: \n"


def test_console_sink_keeps_concurrent_lines_whole():
    stream = io.StringIO()
    sink = ConsoleSink(stream)

    def writer(name):
        for i in range(200):
            sink.emit(TailedLine(source=Path(f"/logs/{name}.log"), content=f"{name}-{i}"))

    threads = [threading.Thread(target=writer, args=(name,)) for name in ("a", "b", "c")]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    written = stream.getvalue().splitlines()
    assert len(written) == 600
    for name in ("a", "b", "c"):
        own = [line for line in written if line.startswith(f"source: /logs/{name}.log, ")]
        assert own == [f"source: /logs/{name}.log, line: {name}-{i}" for i in range(200)]


def test_memory_sink_groups_lines_by_source(tmp_path):
    sink = MemorySink()
    a = tmp_path / "a.log"
    b = tmp_path / "b.log"

    sink.emit(TailedLine(source=a, content="a1"))
    sink.emit(TailedLine(source=b, content="b1"))
    sink.emit(TailedLine(source=a, content="a2"))

    assert len(sink) == 3
    assert sink.lines_for(a) == ["a1", "a2"]
    assert sink.lines_for(str(b)) == ["b1"]


def test_console_sink_writes_undecodable_file_names():
    stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
    sink = ConsoleSink(stream)

    sink.emit(TailedLine(source=Path("/logs/trade-\udcff.log"), content="BUY 100 ACME"))

    stream.seek(0)
    assert stream.read() == "source: /logs/trade-\ufffd.log, line: BUY 100 ACME\n"
