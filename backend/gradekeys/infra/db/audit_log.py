"""SQLAlchemy-backed AuditLog for standalone engine use.

Each append runs in its own short transaction.  Key changes made through
ModifyGradingKeyUseCase go through ``SqlUnitOfWork.key_changes`` instead,
so the record commits or rolls back with the key it describes.
"""

from __future__ import annotations

from collections.abc import Callable

from sqlalchemy.orm import Session

from gradekeys.domain.grading.audit_log import AuditLog
from gradekeys.domain.grading.models import ChangeRecord
from gradekeys.infra.db.repositories.key_change_repo import SqlKeyChangeRepository


class SqlAuditLog(AuditLog):
    """Append-only grading_key_changes table."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def append(self, key_id: str, record: ChangeRecord) -> None:
        session = self._session_factory()
        try:
            SqlKeyChangeRepository(session).append(key_id, record)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def get_history(self, key_id: str) -> tuple[ChangeRecord, ...]:
        session = self._session_factory()
        try:
            return SqlKeyChangeRepository(session).get_history(key_id)
        finally:
            session.close()
