"""SQLAlchemy implementation of ExamRepository."""

from __future__ import annotations

from sqlalchemy.orm import Session

from gradekeys.domain.common.errors import EntityNotFoundError
from gradekeys.domain.grading.models import Exam, GradingKey
from gradekeys.domain.grading.ports import ExamRepository
from gradekeys.infra.serialization import dump_grading_key, load_grading_key
from gradekeys.models.exam import ExamRecord


class SqlExamRepository(ExamRepository):
    """Persist and retrieve exam rows via SQLAlchemy."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, exam: Exam) -> Exam:
        self._session.add(
            ExamRecord(
                id=exam.id,
                title=exam.title,
                grading_key=dump_grading_key(exam.grading_key),
            )
        )
        self._session.flush()
        return exam

    def find_by_id(self, exam_id: str) -> Exam | None:
        row = self._session.get(ExamRecord, exam_id)
        if row is None:
            return None
        return Exam(
            id=row.id,
            title=row.title,
            grading_key=load_grading_key(row.grading_key),
        )

    def update_grading_key(self, exam_id: str, key: GradingKey) -> None:
        row = self._session.get(ExamRecord, exam_id)
        if row is None:
            raise EntityNotFoundError("Exam", exam_id)
        row.grading_key = dump_grading_key(key)
        self._session.flush()
