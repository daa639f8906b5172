"""SQLAlchemy access to the grading_key_changes table on a caller's session."""

from __future__ import annotations

from sqlalchemy.orm import Session

from gradekeys.domain.grading.audit_log import AuditLog
from gradekeys.domain.grading.models import ChangeRecord
from gradekeys.infra.serialization import (
    dump_grading_key,
    ensure_utc,
    load_grading_key,
)
from gradekeys.models.grading_key_change import GradingKeyChangeRecord


def _to_domain(row: GradingKeyChangeRecord) -> ChangeRecord:
    return ChangeRecord(
        id=row.id,
        timestamp=ensure_utc(row.timestamp),
        previous_key=load_grading_key(row.previous_key),
        new_key=load_grading_key(row.new_key),
        reason=row.reason,
        changed_by=row.changed_by,
    )


class SqlKeyChangeRepository(AuditLog):
    """Change records written through the Unit of Work session.

    Nothing is committed here; a record becomes visible to other sessions
    only together with the key change it describes.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def append(self, key_id: str, record: ChangeRecord) -> None:
        self._session.add(
            GradingKeyChangeRecord(
                id=record.id,
                key_id=key_id,
                timestamp=record.timestamp,
                previous_key=dump_grading_key(record.previous_key),
                new_key=dump_grading_key(record.new_key),
                reason=record.reason,
                changed_by=record.changed_by,
            )
        )
        self._session.flush()

    def get_history(self, key_id: str) -> tuple[ChangeRecord, ...]:
        rows = (
            self._session.query(GradingKeyChangeRecord)
            .filter(GradingKeyChangeRecord.key_id == key_id)
            .order_by(GradingKeyChangeRecord.pk)
            .all()
        )
        return tuple(_to_domain(row) for row in rows)
