from datareader.error_log import format_mb
from datareader.schemas import IngestionResult


def build_response(result: IngestionResult) -> tuple[int, dict[str, object]]:
    """Map a finished run onto the status code and body returned to the caller."""
    if not result.success:
        return 400, {
            "error": "File processing failed",
            "totalRecords": result.total_records,
            "savedRecords": result.saved_records,
            "errorLogPath": result.error_log_path,
        }

    payload: dict[str, object] = {
        "message": "File processed successfully",
        "totalRecords": result.total_records,
        "savedRecords": result.saved_records,
        "processingTime": round(result.processing_time_ms, 2),
    }
    if result.cpu_usage is not None:
        payload["cpuUsage"] = {
            "start": result.cpu_usage.start,
            "end": result.cpu_usage.end,
            "average": result.cpu_usage.average,
        }
    if result.memory_usage is not None:
        payload["memoryUsage"] = {
            "start": format_mb(result.memory_usage.start),
            "end": format_mb(result.memory_usage.end),
            "peak": format_mb(result.memory_usage.peak),
        }
    if result.error_log_path is not None:
        payload["errorLogPath"] = result.error_log_path
    return 200, payload


def build_error_response(exc: Exception) -> tuple[int, dict[str, object]]:
    return 500, {"error": "Internal server error", "message": str(exc)}
