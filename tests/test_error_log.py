from datetime import datetime
from pathlib import Path

import pytest

from datareader.error_log import ErrorLogWriter, log_file_name
from datareader.schemas import CpuUsage, IngestionResult, MemoryUsage


STARTED_AT = datetime(2025, 7, 15, 21, 47, 50, 123456)


def test_log_file_name_is_sortable_timestamp() -> None:
    assert log_file_name(STARTED_AT) == "processing-errors-2025-07-15T21-47-50-123Z.log"
    assert log_file_name(datetime(2025, 7, 15, 21, 47, 51)) > log_file_name(STARTED_AT)


def test_flush_without_errors_is_noop(tmp_path: Path) -> None:
    writer = ErrorLogWriter(tmp_path / "logs", STARTED_AT)

    assert writer.flush() is None
    assert not (tmp_path / "logs").exists()


def test_flush_writes_header_summary_and_errors_in_order(tmp_path: Path) -> None:
    writer = ErrorLogWriter(tmp_path / "logs", STARTED_AT)
    writer.record("Line 2 - N/A: first")
    writer.record("Line 5 - 77: second")
    summary = IngestionResult(
        success=True,
        total_records=10,
        saved_records=9,
        processing_time_ms=12.4,
        cpu_usage=CpuUsage(start=0.5, end=0.75, average=0.6),
        memory_usage=MemoryUsage(start=1024 * 1024, end=2 * 1024 * 1024, peak=3 * 1024 * 1024),
    )

    path = writer.flush(summary)

    assert path == tmp_path / "logs" / "processing-errors-2025-07-15T21-47-50-123Z.log"
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("Processing Errors - ")
    assert lines[1] == "Total Errors: 2"
    assert "Total Records: 10" in lines
    assert "Saved Records: 9" in lines
    assert "Memory Usage: start=1.00MB end=2.00MB peak=3.00MB" in lines
    assert lines[-2:] == ["Line 2 - N/A: first", "Line 5 - 77: second"]


def test_write_failure_is_swallowed(tmp_path: Path) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")
    writer = ErrorLogWriter(blocker, STARTED_AT)
    writer.record("boom")

    assert writer.flush() is None


def test_context_exit_records_exception_and_flushes(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError):
        with ErrorLogWriter(tmp_path, STARTED_AT) as writer:
            writer.record("Line 1 - N/A: bad")
            raise RuntimeError("disk went away")

    assert writer.errors == ["Line 1 - N/A: bad", "File processing error: disk went away"]
    assert writer.path.exists()
