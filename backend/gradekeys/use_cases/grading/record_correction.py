"""RecordCorrectionUseCase — create or update a candidate's correction entry.

Business rules:
  1. Verify the exam exists (raise EntityNotFoundError if not); nothing
     is written in that case
  2. Load the entry for (exam, candidate) or start a new in-progress one
  3. A non-empty list of task scores REPLACES the stored scores
  4. Total points, grade and percentage are recomputed on every call
     from the exam's current grading key
  5. Comments are APPENDED, support tips are REPLACED
  6. Finalizing moves the entry to COMPLETED; nothing moves it back
  7. Update the existing row or insert a new one, so every
     (exam, candidate) pair has exactly one row

The use case depends ONLY on domain ports — never on SQLAlchemy or any
other infrastructure.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from gradekeys.domain.common.errors import EntityNotFoundError
from gradekeys.domain.common.uow import UnitOfWork
from gradekeys.domain.grading.models import (
    AssignedSupportTip,
    CommentLevel,
    CorrectionComment,
    CorrectionEntry,
    CorrectionStatus,
    OutOfRangePolicy,
    TaskScore,
)
from gradekeys.domain.grading.resolver import apply_rounding, calculate_grade

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


# ── Command (input) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class NewComment:
    """A comment as submitted by the grader, before id/timestamp stamping."""

    text: str
    level: CommentLevel = CommentLevel.EXAM
    task_id: str | None = None
    printable: bool = True
    available_after_return: bool = True


@dataclass(frozen=True)
class SupportTipAssignment:
    """A support tip as submitted, before the assignment timestamp."""

    support_tip_id: str
    task_id: str | None = None
    weight: float | None = None
    notes: str | None = None


@dataclass(frozen=True)
class RecordCorrectionCommand:
    """Immutable value object describing one correction submission."""

    exam_id: str
    candidate_id: str
    task_scores: tuple[TaskScore, ...] | None = None
    comments: tuple[NewComment, ...] | None = None
    support_tips: tuple[SupportTipAssignment, ...] | None = None
    finalize_correction: bool = False
    corrected_by: str | None = None

    def __post_init__(self) -> None:
        for name in ("task_scores", "comments", "support_tips"):
            value = getattr(self, name)
            if value is not None:
                object.__setattr__(self, name, tuple(value))


# ── Result (output) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class RecordCorrectionResult:
    """What the use case returns to the caller."""

    entry: CorrectionEntry
    created: bool


# ── Use Case ─────────────────────────────────────────────────────────────


class RecordCorrectionUseCase:
    """Merge a submission into the candidate's correction entry and grade it."""

    def __init__(
        self,
        *,
        out_of_range: OutOfRangePolicy = OutOfRangePolicy.LOWEST,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._out_of_range = out_of_range
        self._clock = clock
        self._new_id = id_factory

    def execute(
        self, uow: UnitOfWork, cmd: RecordCorrectionCommand
    ) -> RecordCorrectionResult:
        with uow:
            exam = uow.exams.find_by_id(cmd.exam_id)
            if exam is None:
                raise EntityNotFoundError("Exam", cmd.exam_id)

            now = self._clock()
            loaded = uow.corrections.find_by_exam_and_candidate(
                cmd.exam_id, cmd.candidate_id
            )
            entry = loaded or CorrectionEntry(
                id=self._new_id(),
                exam_id=cmd.exam_id,
                candidate_id=cmd.candidate_id,
                last_modified=now,
            )

            task_scores = entry.task_scores
            if cmd.task_scores:
                task_scores = tuple(
                    ts if ts.timestamp is not None else replace(ts, timestamp=now)
                    for ts in cmd.task_scores
                )

            total_points = sum(ts.points for ts in task_scores)
            key = exam.grading_key
            result = calculate_grade(
                total_points, key, out_of_range=self._out_of_range
            )

            comments = entry.comments
            if cmd.comments:
                comments = comments + tuple(
                    CorrectionComment(
                        id=self._new_id(),
                        text=c.text,
                        level=c.level,
                        timestamp=now,
                        task_id=c.task_id,
                        printable=c.printable,
                        available_after_return=c.available_after_return,
                    )
                    for c in cmd.comments
                )

            support_tips = entry.support_tips
            if cmd.support_tips:
                support_tips = tuple(
                    AssignedSupportTip(
                        support_tip_id=t.support_tip_id,
                        assigned_at=now,
                        task_id=t.task_id,
                        weight=t.weight,
                        notes=t.notes,
                    )
                    for t in cmd.support_tips
                )

            entry = replace(
                entry,
                task_scores=task_scores,
                total_points=total_points,
                total_grade=result.grade,
                percentage_score=apply_rounding(result.percentage, key.rounding_rule),
                comments=comments,
                support_tips=support_tips,
                last_modified=now,
            )
            if cmd.finalize_correction:
                entry = replace(
                    entry,
                    status=CorrectionStatus.COMPLETED,
                    corrected_at=now,
                    corrected_by=cmd.corrected_by or entry.corrected_by,
                )

            existing = uow.corrections.find_by_id(entry.id)
            if existing is not None:
                # Reject the write if someone saved since we loaded.
                uow.corrections.update(
                    entry,
                    expected_last_modified=(
                        loaded.last_modified if loaded is not None else None
                    ),
                )
            else:
                uow.corrections.create(entry)
            uow.commit()

        logger.info(
            "Correction %s for exam %s / candidate %s %s: %s points, grade %s (%s)",
            entry.id,
            entry.exam_id,
            entry.candidate_id,
            "updated" if existing is not None else "created",
            entry.total_points,
            entry.total_grade,
            CorrectionStatus(entry.status).value,
        )
        return RecordCorrectionResult(entry=entry, created=existing is None)
