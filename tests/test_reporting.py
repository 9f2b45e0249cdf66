from datareader.reporting import build_error_response, build_response
from datareader.schemas import CpuUsage, IngestionResult, MemoryUsage


def make_result(**overrides) -> IngestionResult:
    values = {
        "success": True,
        "total_records": 3,
        "saved_records": 2,
        "processing_time_ms": 15.678,
        "cpu_usage": CpuUsage(start=0.1, end=0.3, average=0.2),
        "memory_usage": MemoryUsage(start=52428800, end=57671680, peak=62914560),
        "error_log_path": "logs/processing-errors-2025-07-15T21-47-50-123Z.log",
    }
    values.update(overrides)
    return IngestionResult(**values)


def test_success_response_formats_memory_in_megabytes() -> None:
    status, payload = build_response(make_result())

    assert status == 200
    assert payload["message"] == "File processed successfully"
    assert payload["totalRecords"] == 3
    assert payload["savedRecords"] == 2
    assert payload["processingTime"] == 15.68
    assert payload["cpuUsage"] == {"start": 0.1, "end": 0.3, "average": 0.2}
    assert payload["memoryUsage"] == {"start": "50.00MB", "end": "55.00MB", "peak": "60.00MB"}
    assert payload["errorLogPath"].endswith(".log")


def test_success_without_errors_omits_log_path() -> None:
    _, payload = build_response(make_result(error_log_path=None))

    assert "errorLogPath" not in payload


def test_failed_run_is_client_error() -> None:
    status, payload = build_response(make_result(success=False, saved_records=0))

    assert status == 400
    assert payload == {
        "error": "File processing failed",
        "totalRecords": 3,
        "savedRecords": 0,
        "errorLogPath": "logs/processing-errors-2025-07-15T21-47-50-123Z.log",
    }


def test_unexpected_exception_is_server_error() -> None:
    status, payload = build_error_response(RuntimeError("database unavailable"))

    assert status == 500
    assert payload["message"] == "database unavailable"
