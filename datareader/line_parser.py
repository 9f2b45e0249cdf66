from datetime import date, datetime
import re

from datareader.schemas import UNKNOWN_PERSONAL_ID, ParseError, PersonRecord, PersonStatus


FIELD_DELIMITER = "|"
EXPECTED_FIELD_COUNT = 7
FIELD_NAMES = ("name", "surname", "personalId", "status", "dateOfEntry", "pep", "os")
REQUIRED_FIELDS = ("name", "surname", "personalId", "status", "dateOfEntry")

NAME_MAX_LENGTH = 50
PERSONAL_ID_MAX_LENGTH = 10

# Tried in order after ISO 8601.
DATE_FORMATS = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%d %B %Y",
    "%d %b %Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%a, %d %b %Y %H:%M:%S",
    "%a %b %d %Y",
)

# Year or year-month; resolves to the first day of the period.
PARTIAL_ISO_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?$")


class LineValidationError(ValueError):
    pass


class FieldCountError(LineValidationError):
    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Invalid number of fields. Expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class MissingFieldError(LineValidationError):
    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required fields: {', '.join(missing)}")
        self.missing = missing


class InvalidEnumError(LineValidationError):
    def __init__(self, value: str) -> None:
        allowed = "' or '".join(status.value for status in PersonStatus)
        super().__init__(f"Invalid status: {value}. Must be '{allowed}'")
        self.value = value


class InvalidDateError(LineValidationError):
    def __init__(self, value: str) -> None:
        super().__init__(f"Invalid date format: {value}")
        self.value = value


class FieldLengthError(LineValidationError):
    def __init__(self, field_name: str, max_length: int, actual: int) -> None:
        super().__init__(f"Field {field_name} exceeds {max_length} characters (got {actual})")
        self.field_name = field_name
        self.max_length = max_length


def parse_date(value: str) -> date:
    cleaned = value.strip()
    try:
        return datetime.fromisoformat(cleaned.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(cleaned, fmt).date()
        except ValueError:
            continue

    partial = PARTIAL_ISO_DATE.match(cleaned)
    if partial:
        year, month = partial.groups()
        try:
            return date(int(year), int(month or 1), 1)
        except ValueError:
            pass
    raise InvalidDateError(value)


def parse_bool(value: str) -> bool:
    # Anything other than "true" is False; malformed values are not errors.
    return value.strip().lower() == "true"


def split_fields(line: str) -> list[str]:
    return [field.strip() for field in line.split(FIELD_DELIMITER)]


def build_record(fields: list[str], line_number: int) -> PersonRecord:
    if len(fields) != EXPECTED_FIELD_COUNT:
        raise FieldCountError(EXPECTED_FIELD_COUNT, len(fields))

    values = dict(zip(FIELD_NAMES, fields))
    missing = [name for name in REQUIRED_FIELDS if not values[name]]
    if missing:
        raise MissingFieldError(missing)

    for field_name, max_length in (
        ("name", NAME_MAX_LENGTH),
        ("surname", NAME_MAX_LENGTH),
        ("personalId", PERSONAL_ID_MAX_LENGTH),
    ):
        if len(values[field_name]) > max_length:
            raise FieldLengthError(field_name, max_length, len(values[field_name]))

    try:
        status = PersonStatus(values["status"])
    except ValueError as exc:
        raise InvalidEnumError(values["status"]) from exc

    return PersonRecord(
        name=values["name"],
        surname=values["surname"],
        personal_id=values["personalId"],
        status=status,
        date_of_entry=parse_date(values["dateOfEntry"]),
        pep=parse_bool(values["pep"]),
        os=parse_bool(values["os"]),
        line_number=line_number,
    )


def parse_line(line: str, line_number: int) -> PersonRecord | ParseError:
    """Parse one pipe-delimited line into a record, or describe why it was rejected."""
    fields = split_fields(line)
    try:
        return build_record(fields, line_number)
    except LineValidationError as exc:
        personal_id = UNKNOWN_PERSONAL_ID
        if len(fields) == EXPECTED_FIELD_COUNT and fields[2]:
            personal_id = fields[2]
        return ParseError(
            line_number=line_number,
            personal_id=personal_id,
            reason=str(exc),
            error_type=type(exc).__name__,
        )
