from typing import Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from datareader.db_models import Person, new_uuid
from datareader.schemas import PersonRecord


class StorageError(RuntimeError):
    pass


class UniqueConstraintError(StorageError):
    pass


class OtherStorageError(StorageError):
    pass


class PersonStore(Protocol):
    def insert(self, record: PersonRecord) -> str: ...


def _is_unique_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate" in message


class SqlPersonStore:
    """Inserts people one row at a time, committing each insert on its own."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def insert(self, record: PersonRecord) -> str:
        person = Person(
            uuid=new_uuid(),
            name=record.name,
            surname=record.surname,
            personal_id=record.personal_id,
            status=record.status.value,
            date_of_entry=record.date_of_entry,
            pep=record.pep,
            os=record.os,
        )
        self.db.add(person)
        try:
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            if _is_unique_violation(exc):
                if "personal_id" in str(exc.orig):
                    message = f"Duplicate key: personalId {record.personal_id} already exists"
                else:
                    message = f"Duplicate key: {exc.orig}"
                raise UniqueConstraintError(message) from exc
            raise OtherStorageError(f"Integrity error: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise OtherStorageError(f"Storage error: {exc}") from exc

        return person.uuid
