"""SQLAlchemy implementation of CorrectionRepository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from gradekeys.domain.common.errors import (
    ConcurrencyConflictError,
    EntityNotFoundError,
)
from gradekeys.domain.grading.models import CorrectionEntry, CorrectionStatus
from gradekeys.domain.grading.ports import CorrectionRepository
from gradekeys.infra.serialization import (
    dump_comments,
    dump_grade,
    dump_support_tips,
    dump_task_scores,
    ensure_utc,
    load_comments,
    load_grade,
    load_support_tips,
    load_task_scores,
)
from gradekeys.models.correction_entry import CorrectionEntryRecord


def _to_domain(row: CorrectionEntryRecord) -> CorrectionEntry:
    return CorrectionEntry(
        id=row.id,
        exam_id=row.exam_id,
        candidate_id=row.candidate_id,
        task_scores=load_task_scores(row.task_scores),
        total_points=row.total_points,
        total_grade=load_grade(row.total_grade),
        percentage_score=row.percentage_score,
        comments=load_comments(row.comments),
        support_tips=load_support_tips(row.support_tips),
        status=CorrectionStatus(row.status),
        corrected_by=row.corrected_by,
        corrected_at=ensure_utc(row.corrected_at),
        last_modified=ensure_utc(row.last_modified),
    )


def _apply(row: CorrectionEntryRecord, entry: CorrectionEntry) -> None:
    row.exam_id = entry.exam_id
    row.candidate_id = entry.candidate_id
    row.task_scores = dump_task_scores(entry.task_scores)
    row.total_points = entry.total_points
    row.total_grade = dump_grade(entry.total_grade)
    row.percentage_score = entry.percentage_score
    row.comments = dump_comments(entry.comments)
    row.support_tips = dump_support_tips(entry.support_tips)
    row.status = CorrectionStatus(entry.status).value
    row.corrected_by = entry.corrected_by
    row.corrected_at = entry.corrected_at
    row.last_modified = entry.last_modified


class SqlCorrectionRepository(CorrectionRepository):
    """Persist and retrieve correction entries via SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def find_by_id(self, entry_id: str) -> CorrectionEntry | None:
        row = self._session.get(CorrectionEntryRecord, entry_id)
        return _to_domain(row) if row is not None else None

    def find_by_exam_and_candidate(
        self, exam_id: str, candidate_id: str
    ) -> CorrectionEntry | None:
        row = (
            self._session.query(CorrectionEntryRecord)
            .filter(
                CorrectionEntryRecord.exam_id == exam_id,
                CorrectionEntryRecord.candidate_id == candidate_id,
            )
            .first()
        )
        return _to_domain(row) if row is not None else None

    def find_by_exam(self, exam_id: str) -> list[CorrectionEntry]:
        rows = (
            self._session.query(CorrectionEntryRecord)
            .filter(CorrectionEntryRecord.exam_id == exam_id)
            .order_by(CorrectionEntryRecord.candidate_id)
            .all()
        )
        return [_to_domain(r) for r in rows]

    def create(self, entry: CorrectionEntry) -> CorrectionEntry:
        row = CorrectionEntryRecord(id=entry.id)
        _apply(row, entry)
        self._session.add(row)
        self._session.flush()  # surfaces the (exam, candidate) unique constraint
        return entry

    def update(
        self,
        entry: CorrectionEntry,
        *,
        expected_last_modified: datetime | None = None,
    ) -> CorrectionEntry:
        row = self._session.get(CorrectionEntryRecord, entry.id)
        if row is None:
            raise EntityNotFoundError("CorrectionEntry", entry.id)
        if (
            expected_last_modified is not None
            and ensure_utc(row.last_modified) != ensure_utc(expected_last_modified)
        ):
            raise ConcurrencyConflictError("CorrectionEntry", entry.id)
        _apply(row, entry)
        self._session.flush()
        return entry
