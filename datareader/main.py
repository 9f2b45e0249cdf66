import argparse
import json
import logging

from datareader.config import get_settings
from datareader.database import build_session_factory
from datareader.pipeline import IngestionPipeline
from datareader.reporting import build_error_response, build_response
from datareader.scheduler import start_scheduler


logger = logging.getLogger(__name__)

EXIT_CODES = {200: 0, 400: 1, 500: 2}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import pipe-delimited person records")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="import one file")
    run_parser.add_argument("--file", required=True, dest="file_location", help="Path to the input file")

    schedule_parser = subparsers.add_parser("schedule", help="import a file every day")
    schedule_parser.add_argument("--file", required=True, dest="file_location", help="Path to the input file")
    schedule_parser.add_argument("--run-now", action="store_true", help="also run once immediately")

    return parser.parse_args()


def main() -> None:
    args = parse_args()
    settings = get_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    session_factory = build_session_factory(settings.database_url)
    if args.command == "schedule":
        start_scheduler(settings, session_factory, args.file_location, run_now=args.run_now)
        return

    pipeline = IngestionPipeline(settings, session_factory)
    try:
        result = pipeline.run(args.file_location)
    except Exception as exc:
        logger.exception("error processing file", extra={"file_location": args.file_location})
        status, payload = build_error_response(exc)
    else:
        status, payload = build_response(result)

    print(json.dumps({"status": status, **payload}, sort_keys=True))
    if status != 200:
        raise SystemExit(EXIT_CODES.get(status, 2))


if __name__ == "__main__":
    main()
