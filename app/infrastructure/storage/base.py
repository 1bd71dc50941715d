"""
Shared repository plumbing: integrity-error classification and DB error wrapping
"""
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.infrastructure.storage.errors import StorageError

# PostgreSQL SQLSTATE codes
UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"


def integrity_kind(exc: IntegrityError) -> Optional[str]:
    """
    Классифицировать IntegrityError: "unique" / "foreign_key" / None

    psycopg отдаёт sqlstate, SQLite - только текст сообщения.
    """
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == UNIQUE_VIOLATION:
        return "unique"
    if code == FOREIGN_KEY_VIOLATION:
        return "foreign_key"

    message = str(orig).upper()
    if "UNIQUE" in message:
        return "unique"
    if "FOREIGN KEY" in message:
        return "foreign_key"
    return None


class Repository:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _db_errors(self, op: str):
        """Wrap unexpected SQLAlchemy errors into StorageError, rolling back the session."""
        try:
            yield
        except StorageError:
            raise
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(f"{op}: {exc}") from exc

    def commit(self) -> None:
        with self._db_errors("storage.commit"):
            self.db.commit()

    def rollback(self) -> None:
        self.db.rollback()
