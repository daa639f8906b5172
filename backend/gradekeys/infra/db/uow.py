"""SQLAlchemy Unit of Work — one session shared by all repositories."""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from gradekeys.domain.common.uow import UnitOfWork
from gradekeys.infra.db.repositories.correction_repo import SqlCorrectionRepository
from gradekeys.infra.db.repositories.exam_repo import SqlExamRepository
from gradekeys.infra.db.repositories.key_change_repo import SqlKeyChangeRepository


class SqlUnitOfWork(UnitOfWork):
    """Open a session on enter, roll back on error, close on exit."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory
        self._session: Session | None = None

    def __enter__(self) -> SqlUnitOfWork:
        self._session = self._session_factory()
        self.exams = SqlExamRepository(self._session)
        self.corrections = SqlCorrectionRepository(self._session)
        self.key_changes = SqlKeyChangeRepository(self._session)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            if exc_type is not None:
                self.rollback()
        finally:
            self._session.close()
            self._session = None

    def commit(self) -> None:
        self._session.commit()

    def rollback(self) -> None:
        self._session.rollback()
