from datetime import UTC, datetime
import logging
from pathlib import Path
from types import TracebackType
from typing import Protocol

from datareader.schemas import IngestionResult


logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class ErrorSink(Protocol):
    def record(self, message: str) -> None: ...


def log_file_name(started_at: datetime) -> str:
    # Lexicographic order of names follows run start order.
    stamp = started_at.strftime("%Y-%m-%dT%H-%M-%S") + f"-{started_at.microsecond // 1000:03d}Z"
    return f"processing-errors-{stamp}.log"


def format_mb(value: int) -> str:
    return f"{value / BYTES_PER_MB:.2f}MB"


def summary_lines(summary: IngestionResult) -> list[str]:
    lines = [
        f"Total Records: {summary.total_records}",
        f"Saved Records: {summary.saved_records}",
        f"Processing Time: {summary.processing_time_ms:.0f}ms",
    ]
    if summary.cpu_usage is not None:
        cpu = summary.cpu_usage
        lines.append(f"CPU Usage: start={cpu.start:.3f}s end={cpu.end:.3f}s average={cpu.average:.3f}s")
    if summary.memory_usage is not None:
        memory = summary.memory_usage
        lines.append(
            "Memory Usage: start={start} end={end} peak={peak}".format(
                start=format_mb(memory.start),
                end=format_mb(memory.end),
                peak=format_mb(memory.peak),
            )
        )
    return lines


class ErrorLogWriter:
    """Collects error messages for one run and writes them to a plain text log.

    Use as a context manager: leaving the block on an exception records it as a
    terminal error and flushes what has been collected so far.
    """

    def __init__(self, log_dir: str | Path, started_at: datetime) -> None:
        self.path = Path(log_dir) / log_file_name(started_at)
        self._errors: list[str] = []

    @property
    def errors(self) -> list[str]:
        return list(self._errors)

    def __len__(self) -> int:
        return len(self._errors)

    def record(self, message: str) -> None:
        self._errors.append(message)

    def flush(self, summary: IngestionResult | None = None) -> Path | None:
        if not self._errors:
            return None

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as outfile:
                outfile.write(f"Processing Errors - {datetime.now(UTC).isoformat()}\n")
                outfile.write(f"Total Errors: {len(self._errors)}\n")
                if summary is not None:
                    for line in summary_lines(summary):
                        outfile.write(f"{line}\n")
                outfile.write("\n")
                for message in self._errors:
                    outfile.write(f"{message}\n")
        except OSError:
            logger.warning("failed to write error log", exc_info=True, extra={"path": str(self.path)})
            return None

        return self.path

    def __enter__(self) -> "ErrorLogWriter":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if isinstance(exc, Exception):
            self.record(f"File processing error: {exc}")
            self.flush()
