"""Ports (abstract interfaces) for the grading domain.

These define WHAT the domain needs from the outside world without
specifying HOW it's provided.  Concrete implementations live in infra/.

Note: No infrastructure types (Session, Engine) appear here.
Repositories receive their session through the UnitOfWork, not
through method parameters.
"""

from __future__ import annotations

import abc
from datetime import datetime

from .models import CorrectionEntry, Exam, GradingKey


class ExamRepository(abc.ABC):
    """Load exams and store their current grading key."""

    @abc.abstractmethod
    def find_by_id(self, exam_id: str) -> Exam | None:
        ...

    @abc.abstractmethod
    def update_grading_key(self, exam_id: str, key: GradingKey) -> None:
        ...


class CorrectionRepository(abc.ABC):
    """Persist and retrieve correction entries."""

    @abc.abstractmethod
    def find_by_id(self, entry_id: str) -> CorrectionEntry | None:
        ...

    @abc.abstractmethod
    def find_by_exam_and_candidate(
        self, exam_id: str, candidate_id: str
    ) -> CorrectionEntry | None:
        ...

    @abc.abstractmethod
    def find_by_exam(self, exam_id: str) -> list[CorrectionEntry]:
        ...

    @abc.abstractmethod
    def create(self, entry: CorrectionEntry) -> CorrectionEntry:
        ...

    @abc.abstractmethod
    def update(
        self,
        entry: CorrectionEntry,
        *,
        expected_last_modified: datetime | None = None,
    ) -> CorrectionEntry:
        """Overwrite the stored entry with the same id.

        When *expected_last_modified* is given and differs from the stored
        value, raise ConcurrencyConflictError instead of writing.
        """
        ...


__all__ = ["ExamRepository", "CorrectionRepository"]
