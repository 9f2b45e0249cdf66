from dataclasses import dataclass
from datetime import date
from enum import Enum


UNKNOWN_PERSONAL_ID = "N/A"


class PersonStatus(str, Enum):
    ACTIVE = "Activo"
    INACTIVE = "Inactivo"


@dataclass(frozen=True)
class RawLine:
    line_number: int
    text: str


@dataclass(frozen=True)
class PersonRecord:
    name: str
    surname: str
    personal_id: str
    status: PersonStatus
    date_of_entry: date
    pep: bool
    os: bool
    line_number: int


@dataclass(frozen=True)
class ParseError:
    line_number: int
    personal_id: str
    reason: str
    error_type: str

    def __str__(self) -> str:
        return f"Line {self.line_number} - {self.personal_id}: {self.reason}"


@dataclass(frozen=True)
class InsertOutcome:
    line_number: int
    personal_id: str
    uuid: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __str__(self) -> str:
        if self.ok:
            return f"Line {self.line_number} - {self.personal_id}: saved as {self.uuid}"
        return f"Line {self.line_number} - {self.personal_id}: {self.error}"


@dataclass(frozen=True)
class BatchResult:
    attempted: int
    succeeded: int
    outcomes: tuple[InsertOutcome, ...] = ()

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def errors(self) -> list[InsertOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]


@dataclass(frozen=True)
class CpuUsage:
    """Process CPU time (user + system) in seconds."""

    start: float
    end: float
    average: float


@dataclass(frozen=True)
class MemoryUsage:
    """Resident set size in bytes."""

    start: int
    end: int
    peak: int


@dataclass(frozen=True)
class IngestionResult:
    success: bool
    total_records: int
    saved_records: int
    processing_time_ms: float
    cpu_usage: CpuUsage | None = None
    memory_usage: MemoryUsage | None = None
    error_count: int = 0
    error_log_path: str | None = None
    run_id: int | None = None
    file_location: str = ""
