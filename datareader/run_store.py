from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from datareader.db_models import IngestionRun
from datareader.schemas import IngestionResult


def utc_now() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def get_run(db: Session, run_id: int) -> IngestionRun | None:
    return db.get(IngestionRun, run_id)


def list_runs(db: Session, *, file_location: str | None = None) -> list[IngestionRun]:
    stmt = select(IngestionRun).order_by(IngestionRun.started_at, IngestionRun.id)
    if file_location is not None:
        stmt = stmt.where(IngestionRun.file_location == file_location)
    return list(db.execute(stmt).scalars().all())


def create_run(db: Session, *, file_location: str, started_at: datetime) -> IngestionRun:
    run = IngestionRun(file_location=file_location, status="running", started_at=started_at)
    db.add(run)
    db.commit()
    db.refresh(run)
    return run


def finish_run(db: Session, run: IngestionRun, result: IngestionResult) -> None:
    run.status = "completed" if result.success else "failed"
    run.total_records = result.total_records
    run.saved_records = result.saved_records
    run.error_count = result.error_count
    run.error_log_path = result.error_log_path
    run.duration_ms = result.processing_time_ms
    run.completed_at = utc_now()
    db.commit()
