from collections.abc import Sequence
import logging

from datareader.error_log import ErrorSink
from datareader.person_store import PersonStore, StorageError
from datareader.schemas import BatchResult, InsertOutcome, PersonRecord


logger = logging.getLogger(__name__)


class BatchCommitter:
    def __init__(self, store: PersonStore) -> None:
        self.store = store

    def commit(
        self,
        records: Sequence[PersonRecord],
        start_line_number: int,
        errors: ErrorSink | None = None,
    ) -> BatchResult:
        """Insert each record on its own so one failure never blocks the rest of the batch.

        Failed inserts are appended to ``errors`` in batch order, tagged with the
        record's source line and personal id.
        """
        outcomes: list[InsertOutcome] = []
        for offset, record in enumerate(records):
            outcome = self._insert_one(record, line_number=record.line_number or start_line_number + offset)
            outcomes.append(outcome)
            if not outcome.ok and errors is not None:
                errors.record(str(outcome))

        result = BatchResult(
            attempted=len(records),
            succeeded=sum(1 for outcome in outcomes if outcome.ok),
            outcomes=tuple(outcomes),
        )
        logger.info(
            "batch committed",
            extra={
                "start_line": start_line_number,
                "attempted": result.attempted,
                "succeeded": result.succeeded,
                "failed": result.failed,
            },
        )
        return result

    def _insert_one(self, record: PersonRecord, *, line_number: int) -> InsertOutcome:
        try:
            identity = self.store.insert(record)
        except StorageError as exc:
            logger.warning(
                "record insert failed",
                extra={"line_number": line_number, "personal_id": record.personal_id, "error": str(exc)},
            )
            return InsertOutcome(line_number=line_number, personal_id=record.personal_id, error=str(exc))
        return InsertOutcome(line_number=line_number, personal_id=record.personal_id, uuid=identity)
