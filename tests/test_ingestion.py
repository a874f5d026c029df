import asyncio
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import pytest

from conftest import FakeSink
from loglens.config import IngestionSettings, SearchBackendSettings, Settings
from loglens.services.ingestion import (
    BatchShipper,
    FileTailer,
    LogIngestionService,
    TailerState,
    run_ingestion_tick,
)
from loglens.services.ingestion.shipper import encode_bulk_body
from loglens.services.logparser import LogDocument, LogLineParser


def _lines(count: int, start: int = 0) -> str:
    return "".join(
        f"2024-05-01T12:00:{i % 60:02d}Z INFO line {i}\n" for i in range(start, start + count)
    )


def _tailer(sink: FakeSink, bulk_size: int = 200) -> FileTailer:
    shipper = BatchShipper(sink=sink, index="application-logs", bulk_size=bulk_size)
    return FileTailer(LogLineParser(), shipper, TailerState())


def _shipped_messages(sink: FakeSink) -> list[str]:
    messages = []
    for call in range(len(sink.bulk_bodies)):
        messages.extend(json.loads(line)["message"] for line in sink.bulk_documents(call))
    return messages


def _settings(paths: list[str], **ingestion) -> Settings:
    return Settings(
        search=SearchBackendSettings(enabled=True),
        ingestion=IngestionSettings(enabled=True, paths=paths, **ingestion),
    )


def test_encode_bulk_body() -> None:
    """Each document becomes an index action line followed by its JSON line."""
    document = LogDocument(
        timestamp=datetime(2024, 5, 1, tzinfo=timezone.utc),
        level="INFO",
        message='said "hi"',
        raw='2024-05-01T00:00:00Z INFO said "hi"',
        source="/logs/a.log",
    )
    body = encode_bulk_body([document, document], "application-logs")

    lines = body.split(b"\n")
    assert body.endswith(b"\n")
    assert len(lines) == 5 and lines[-1] == b""
    assert json.loads(lines[0]) == {"index": {"_index": "application-logs"}}
    assert json.loads(lines[1]) == document.to_dict()
    assert lines[2] == lines[0]


@pytest.mark.asyncio
async def test_tail_reads_only_appended_bytes(tmp_path: Path, fake_sink: FakeSink) -> None:
    """A second pass reads exactly the appended bytes and advances the offset."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(3), encoding="utf-8")
    first_size = log_file.stat().st_size
    tailer = _tailer(fake_sink)

    assert await tailer.tail(log_file) == 3
    assert tailer.state.offset(log_file) == first_size

    with open(log_file, "a", encoding="utf-8") as f:
        f.write(_lines(2, start=3))
    total_size = log_file.stat().st_size

    assert await tailer.tail(log_file) == 2
    assert tailer.state.offset(log_file) == total_size
    assert _shipped_messages(fake_sink) == [f"line {i}" for i in range(5)]


@pytest.mark.asyncio
async def test_tail_without_new_data_ships_nothing(tmp_path: Path, fake_sink: FakeSink) -> None:
    """An unchanged file produces no bulk request."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(2), encoding="utf-8")
    tailer = _tailer(fake_sink)

    await tailer.tail(log_file)
    await tailer.tail(log_file)

    assert len(fake_sink.bulk_bodies) == 1


@pytest.mark.asyncio
async def test_tail_detects_truncation(tmp_path: Path, fake_sink: FakeSink) -> None:
    """A file shorter than the stored offset is re-read from the start."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(10), encoding="utf-8")
    tailer = _tailer(fake_sink)
    await tailer.tail(log_file)

    log_file.write_text(_lines(1, start=100), encoding="utf-8")
    assert await tailer.tail(log_file) == 1

    assert tailer.rotations == 1
    assert tailer.state.offset(log_file) == log_file.stat().st_size
    assert _shipped_messages(fake_sink)[-1] == "line 100"


@pytest.mark.asyncio
async def test_tail_consumes_partial_last_line(tmp_path: Path, fake_sink: FakeSink) -> None:
    """A trailing line without newline is read and counted in the offset."""
    log_file = tmp_path / "app.log"
    log_file.write_bytes(b"2024-05-01T12:00:00Z INFO complete\n2024-05-01T12:00:01Z INFO partial")
    tailer = _tailer(fake_sink)

    assert await tailer.tail(log_file) == 2
    assert tailer.state.offset(log_file) == log_file.stat().st_size


@pytest.mark.asyncio
async def test_tail_decodes_utf8_and_crlf(tmp_path: Path, fake_sink: FakeSink) -> None:
    """Lines are decoded as UTF-8 and CRLF terminators are removed from raw."""
    log_file = tmp_path / "app.log"
    log_file.write_bytes("2024-05-01T12:00:00Z WARN Größe überschritten\r\n".encode("utf-8"))
    tailer = _tailer(fake_sink)

    await tailer.tail(log_file)

    document = json.loads(fake_sink.bulk_documents()[0])
    assert document["message"] == "Größe überschritten"
    assert document["raw"] == "2024-05-01T12:00:00Z WARN Größe überschritten"


@pytest.mark.asyncio
async def test_blank_lines_advance_offset(tmp_path: Path, fake_sink: FakeSink) -> None:
    """Blank lines produce no documents but are still consumed."""
    log_file = tmp_path / "app.log"
    log_file.write_text("\n\n   \n", encoding="utf-8")
    tailer = _tailer(fake_sink)

    assert await tailer.tail(log_file) == 3
    assert fake_sink.bulk_bodies == []
    assert tailer.state.offset(log_file) == 6


@pytest.mark.asyncio
async def test_flush_at_bulk_size_boundary(tmp_path: Path, fake_sink: FakeSink) -> None:
    """A full buffer is flushed mid-file, the remainder at end of file."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(7), encoding="utf-8")
    tailer = _tailer(fake_sink, bulk_size=3)

    await tailer.tail(log_file)

    assert [len(fake_sink.bulk_documents(i)) for i in range(len(fake_sink.bulk_bodies))] == [3, 3, 1]


@pytest.mark.asyncio
async def test_exact_multiple_of_bulk_size(tmp_path: Path, fake_sink: FakeSink) -> None:
    """No empty trailing request when the file fills whole batches."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(4), encoding="utf-8")
    tailer = _tailer(fake_sink, bulk_size=2)

    await tailer.tail(log_file)

    assert [len(fake_sink.bulk_documents(i)) for i in range(len(fake_sink.bulk_bodies))] == [2, 2]


@pytest.mark.asyncio
async def test_failed_flush_drops_batch_but_advances(tmp_path: Path) -> None:
    """Backend failures are swallowed; the offset still moves past the lines."""
    sink = FakeSink(fail_bulk=True)
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(5), encoding="utf-8")
    tailer = _tailer(sink, bulk_size=2)

    assert await tailer.tail(log_file) == 5

    assert len(sink.bulk_bodies) == 3
    assert tailer.shipper.failed_batches == 3
    assert tailer.shipper.documents_dropped == 5
    assert tailer.shipper.documents_shipped == 0
    assert tailer.shipper.pending == 0
    assert tailer.state.offset(log_file) == log_file.stat().st_size


@pytest.mark.asyncio
async def test_shipper_empty_flush_is_noop(fake_sink: FakeSink) -> None:
    """Flushing an empty buffer sends nothing."""
    shipper = BatchShipper(sink=fake_sink, index="application-logs", bulk_size=5)
    assert await shipper.flush() == 0
    assert fake_sink.bulk_bodies == []


def test_shipper_rejects_zero_bulk_size(fake_sink: FakeSink) -> None:
    with pytest.raises(ValueError):
        BatchShipper(sink=fake_sink, index="application-logs", bulk_size=0)


@pytest.mark.asyncio
async def test_missing_and_non_regular_paths_are_skipped(tmp_path: Path, fake_sink: FakeSink) -> None:
    """Missing files and directories are skipped without error."""
    tailer = _tailer(fake_sink)

    assert await tailer.tail(tmp_path / "missing.log") == 0
    assert await tailer.tail(tmp_path) == 0
    assert tailer.state.snapshot() == {}


class _FailingReader:
    """Async file stand-in that yields some lines, then fails mid-read."""

    def __init__(self, lines: list[bytes]) -> None:
        self.lines = lines

    async def __aenter__(self) -> "_FailingReader":
        return self

    async def __aexit__(self, *exc_info) -> bool:
        return False

    async def seek(self, offset: int) -> int:
        return offset

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for line in self.lines:
            yield line
        raise OSError("Input/output error")


@pytest.mark.asyncio
async def test_io_error_does_not_stop_other_paths(tmp_path: Path, fake_sink: FakeSink, monkeypatch) -> None:
    """A read failure discards the path's buffer, keeps its offset and moves on."""
    broken = tmp_path / "broken.log"
    broken.write_text(_lines(3), encoding="utf-8")
    healthy = tmp_path / "healthy.log"
    healthy.write_text(_lines(2, start=10), encoding="utf-8")
    tailer = _tailer(fake_sink)

    real_open = aiofiles.open

    def open_with_failure(path, *args, **kwargs):
        if Path(path).name == "broken.log":
            return _FailingReader(broken.read_bytes().splitlines(keepends=True)[:2])
        return real_open(path, *args, **kwargs)

    monkeypatch.setattr(aiofiles, "open", open_with_failure)
    await tailer.tail_all([str(broken), str(healthy)])

    assert tailer.shipper.pending == 0
    assert tailer.shipper.documents_dropped == 2
    assert tailer.state.offset(broken) == 0
    assert tailer.state.offset(healthy) == healthy.stat().st_size
    assert _shipped_messages(fake_sink) == ["line 10", "line 11"]


@pytest.mark.asyncio
async def test_non_object_bulk_reply_does_not_stop_ingestion(tmp_path: Path) -> None:
    """A bulk reply that is not a JSON object neither raises nor stalls offsets."""
    sink = FakeSink(bulk_response=["unexpected"])
    first = tmp_path / "a.log"
    second = tmp_path / "b.log"
    first.write_text(_lines(2), encoding="utf-8")
    second.write_text(_lines(1, start=2), encoding="utf-8")
    tailer = _tailer(sink)

    await tailer.tail_all([str(first), str(second)])

    assert len(sink.bulk_bodies) == 2
    assert tailer.state.offset(first) == first.stat().st_size
    assert tailer.state.offset(second) == second.stat().st_size
    assert tailer.shipper.documents_shipped == 3


@pytest.mark.asyncio
async def test_tail_all_uses_absolute_source(tmp_path: Path, fake_sink: FakeSink, monkeypatch) -> None:
    """Relative paths are resolved against the working directory."""
    monkeypatch.chdir(tmp_path)
    (tmp_path / "app.log").write_text(_lines(1), encoding="utf-8")
    tailer = _tailer(fake_sink)

    await tailer.tail_all(["app.log"])

    document = json.loads(fake_sink.bulk_documents()[0])
    assert document["source"] == os.path.join(os.getcwd(), "app.log")


@pytest.mark.asyncio
async def test_tick_noop_when_disabled(tmp_path: Path, fake_sink: FakeSink) -> None:
    """Disabled ingestion or backend makes the tick a no-op."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(1), encoding="utf-8")
    tailer = _tailer(fake_sink)

    disabled = Settings(
        search=SearchBackendSettings(enabled=True),
        ingestion=IngestionSettings(enabled=False, paths=[str(log_file)]),
    )
    backend_off = Settings(
        search=SearchBackendSettings(enabled=False),
        ingestion=IngestionSettings(enabled=True, paths=[str(log_file)]),
    )
    ingest_off = Settings(
        search=SearchBackendSettings(enabled=True, ingest_enabled=False),
        ingestion=IngestionSettings(enabled=True, paths=[str(log_file)]),
    )

    for settings in (disabled, backend_off, ingest_off):
        assert await run_ingestion_tick(settings, tailer) is False
    assert fake_sink.bulk_bodies == []


@pytest.mark.asyncio
async def test_tick_tails_all_paths(tmp_path: Path, fake_sink: FakeSink) -> None:
    """One tick runs a pass over every configured path."""
    first = tmp_path / "a.log"
    second = tmp_path / "b.log"
    first.write_text(_lines(1), encoding="utf-8")
    second.write_text(_lines(1, start=1), encoding="utf-8")
    tailer = _tailer(fake_sink)

    assert await run_ingestion_tick(_settings([str(first), str(second)]), tailer) is True
    assert _shipped_messages(fake_sink) == ["line 0", "line 1"]


@pytest.mark.asyncio
async def test_service_runs_ticks_and_stops(tmp_path: Path, fake_sink: FakeSink) -> None:
    """The background task ships new lines and stops cleanly."""
    log_file = tmp_path / "app.log"
    log_file.write_text(_lines(2), encoding="utf-8")
    settings = _settings([str(log_file)], poll_interval=0.01, initial_delay=0)
    service = LogIngestionService.from_settings(settings, sink=fake_sink)

    await service.start()
    assert service.is_running
    for _ in range(200):
        if service.documents_shipped >= 2:
            break
        await asyncio.sleep(0.01)
    await service.stop(timeout=2.0)

    assert not service.is_running
    assert service.documents_shipped == 2
    assert service.parsed_lines == 2
    assert service.ticks >= 1
    assert len(fake_sink.bulk_bodies) == 1


@pytest.mark.asyncio
async def test_service_stop_during_initial_delay(fake_sink: FakeSink) -> None:
    """Stopping before the first tick exits without running one."""
    settings = _settings(["unused.log"], initial_delay=60)
    service = LogIngestionService.from_settings(settings, sink=fake_sink)

    await service.start()
    await service.stop(timeout=2.0)

    assert service.ticks == 0
    assert not service.is_running


@pytest.mark.asyncio
async def test_service_start_twice_is_ignored(fake_sink: FakeSink) -> None:
    """A second start while running does not spawn another task."""
    settings = _settings(["unused.log"], initial_delay=60)
    service = LogIngestionService.from_settings(settings, sink=fake_sink)

    await service.start()
    task = service._ingestion_task
    await service.start()
    assert service._ingestion_task is task
    await service.stop(timeout=2.0)


@pytest.mark.asyncio
async def test_sleep_without_start_reports_stopped(fake_sink: FakeSink) -> None:
    """Waiting on a service that was never started returns immediately."""
    service = LogIngestionService.from_settings(_settings(["unused.log"]), sink=fake_sink)
    assert await service._sleep(60) is True
