import logging

from apscheduler.schedulers.blocking import BlockingScheduler
from sqlalchemy.orm import Session, sessionmaker

from datareader.config import Settings
from datareader.pipeline import IngestionPipeline


logger = logging.getLogger(__name__)


def _run_daily_import(settings: Settings, session_factory: sessionmaker[Session], file_location: str) -> None:
    pipeline = IngestionPipeline(settings, session_factory)
    result = pipeline.run(file_location)
    if not result.success:
        logger.error(
            "scheduled import saved no records",
            extra={
                "file_location": file_location,
                "total_records": result.total_records,
                "error_log_path": result.error_log_path,
            },
        )
        return
    logger.info(
        "scheduled import completed",
        extra={
            "file_location": file_location,
            "total_records": result.total_records,
            "saved_records": result.saved_records,
        },
    )


def build_scheduler(settings: Settings, session_factory: sessionmaker[Session], file_location: str) -> BlockingScheduler:
    scheduler = BlockingScheduler(timezone="UTC")
    scheduler.add_job(
        _run_daily_import,
        "cron",
        args=[settings, session_factory, file_location],
        hour=settings.schedule_hour_utc,
        minute=settings.schedule_minute_utc,
        id="daily_import",
        replace_existing=True,
        # One file, one run at a time.
        max_instances=1,
    )
    return scheduler


def start_scheduler(
    settings: Settings,
    session_factory: sessionmaker[Session],
    file_location: str,
    *,
    run_now: bool = False,
) -> None:
    scheduler = build_scheduler(settings, session_factory, file_location)

    logger.info(
        "scheduler started",
        extra={
            "file_location": file_location,
            "schedule_hour_utc": settings.schedule_hour_utc,
            "schedule_minute_utc": settings.schedule_minute_utc,
        },
    )

    if run_now:
        _run_daily_import(settings, session_factory, file_location)

    scheduler.start()
