from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
import logging
import os
from pathlib import Path
import time

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from datareader.batch_committer import BatchCommitter
from datareader.config import Settings
from datareader.error_log import ErrorLogWriter
from datareader.line_parser import parse_line
from datareader.person_store import SqlPersonStore
from datareader.resource_monitor import ResourceMonitor
from datareader.run_store import create_run, finish_run, get_run, utc_now
from datareader.schemas import IngestionResult, ParseError, PersonRecord, RawLine


logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    VALIDATING_FILE = "validating_file"
    STREAMING = "streaming"
    DRAINING_FINAL_BATCH = "draining_final_batch"
    FINALIZING = "finalizing"
    DONE = "done"


@dataclass
class RunContext:
    """Mutable state owned by a single run. Never shared between runs."""

    file_location: str
    started_at: datetime
    errors: ErrorLogWriter
    monitor: ResourceMonitor
    state: PipelineState = PipelineState.IDLE
    batch: list[PersonRecord] = field(default_factory=list)
    lines_read: int = 0
    batches_committed: int = 0
    total_records: int = 0
    saved_records: int = 0
    run_id: int | None = None


def iter_lines(path: Path) -> Iterator[RawLine]:
    """Yield one line at a time so the file is never held in memory."""
    # utf-8-sig drops a leading BOM; universal newlines handle CRLF input.
    # Undecodable bytes become U+FFFD so a bad line is judged on its own.
    with path.open("r", encoding="utf-8-sig", errors="replace") as infile:
        for line_number, text in enumerate(infile, start=1):
            yield RawLine(line_number=line_number, text=text.rstrip("\n"))


def check_file(path: Path) -> str | None:
    if not path.is_file():
        return f"File not found: {path}"
    if not os.access(path, os.R_OK):
        return f"File is not readable: {path}"
    return None


class IngestionPipeline:
    def __init__(
        self,
        settings: Settings,
        session_factory: sessionmaker[Session],
        monitor_factory=ResourceMonitor,
    ) -> None:
        self.settings = settings
        self.session_factory = session_factory
        self.monitor_factory = monitor_factory

    def run(self, file_location: str | Path) -> IngestionResult:
        path = Path(file_location)
        started_at = utc_now()
        clock_start = time.perf_counter()

        with self.session_factory() as db, ErrorLogWriter(self.settings.log_dir, started_at) as errors:
            ctx = RunContext(
                file_location=str(path),
                started_at=started_at,
                errors=errors,
                monitor=self.monitor_factory(),
            )
            self._begin_sampling(ctx)
            ctx.run_id = self._open_run_record(db, ctx)
            logger.info("ingestion run started", extra={"file_location": ctx.file_location, "run_id": ctx.run_id})

            self._transition(ctx, PipelineState.VALIDATING_FILE)
            problem = check_file(path)
            if problem is not None:
                logger.error("input file rejected", extra={"file_location": ctx.file_location, "reason": problem})
                errors.record(problem)
            else:
                committer = BatchCommitter(SqlPersonStore(db))
                try:
                    self._transition(ctx, PipelineState.STREAMING)
                    self._stream(ctx, path, committer)
                    self._transition(ctx, PipelineState.DRAINING_FINAL_BATCH)
                    if ctx.batch:
                        self._commit_batch(ctx, committer)
                except Exception as exc:
                    logger.exception(
                        "file processing failed",
                        extra={"file_location": ctx.file_location, "lines_read": ctx.lines_read},
                    )
                    errors.record(f"File processing error: {exc}")

            self._transition(ctx, PipelineState.FINALIZING)
            result = self._finalize(ctx, clock_start)
            self._close_run_record(db, ctx, result)
            self._transition(ctx, PipelineState.DONE)

        logger.info(
            "ingestion run completed",
            extra={
                "file_location": result.file_location,
                "success": result.success,
                "total_records": result.total_records,
                "saved_records": result.saved_records,
                "lines_read": ctx.lines_read,
                "batches": ctx.batches_committed,
                "error_count": result.error_count,
                "error_log_path": result.error_log_path,
            },
        )
        return result

    def _stream(self, ctx: RunContext, path: Path, committer: BatchCommitter) -> None:
        for raw in iter_lines(path):
            ctx.lines_read = raw.line_number
            if raw.line_number % self.settings.sample_interval == 0:
                self._sample(ctx)

            if not raw.text.strip():
                continue

            parsed = parse_line(raw.text, raw.line_number)
            if isinstance(parsed, ParseError):
                ctx.errors.record(str(parsed))
                continue

            ctx.batch.append(parsed)
            if len(ctx.batch) >= self.settings.batch_size:
                self._commit_batch(ctx, committer)

    def _commit_batch(self, ctx: RunContext, committer: BatchCommitter) -> None:
        batch, ctx.batch = ctx.batch, []
        result = committer.commit(batch, batch[0].line_number, ctx.errors)
        ctx.total_records += result.attempted
        ctx.saved_records += result.succeeded
        ctx.batches_committed += 1

    def _finalize(self, ctx: RunContext, clock_start: float) -> IngestionResult:
        cpu_usage, memory_usage = None, None
        try:
            cpu_usage, memory_usage = ctx.monitor.summarize()
        except Exception:
            logger.warning("resource sampling failed at finalize", exc_info=True, extra={"run_id": ctx.run_id})
        summary = IngestionResult(
            success=ctx.saved_records > 0,
            total_records=ctx.total_records,
            saved_records=ctx.saved_records,
            processing_time_ms=(time.perf_counter() - clock_start) * 1000,
            cpu_usage=cpu_usage,
            memory_usage=memory_usage,
            error_count=len(ctx.errors),
            run_id=ctx.run_id,
            file_location=ctx.file_location,
        )
        log_path = ctx.errors.flush(summary)
        if log_path is None:
            return summary
        return replace(summary, error_log_path=str(log_path))

    def _begin_sampling(self, ctx: RunContext) -> None:
        try:
            ctx.monitor.begin()
        except Exception:
            logger.warning("resource sampling unavailable", exc_info=True, extra={"file_location": ctx.file_location})

    def _sample(self, ctx: RunContext) -> None:
        try:
            ctx.monitor.sample()
        except Exception:
            logger.warning("resource sample skipped", exc_info=True, extra={"lines_read": ctx.lines_read})

    def _transition(self, ctx: RunContext, state: PipelineState) -> None:
        logger.debug("pipeline state %s -> %s", ctx.state.value, state.value, extra={"run_id": ctx.run_id})
        ctx.state = state

    def _open_run_record(self, db: Session, ctx: RunContext) -> int | None:
        try:
            return create_run(db, file_location=ctx.file_location, started_at=ctx.started_at).id
        except SQLAlchemyError:
            db.rollback()
            logger.warning("could not record ingestion run", exc_info=True)
            return None

    def _close_run_record(self, db: Session, ctx: RunContext, result: IngestionResult) -> None:
        if ctx.run_id is None:
            return
        try:
            run = get_run(db, ctx.run_id)
            if run is not None:
                finish_run(db, run, result)
        except Exception:
            db.rollback()
            logger.warning("could not update ingestion run", exc_info=True, extra={"run_id": ctx.run_id})
