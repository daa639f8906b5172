"""ModifyGradingKeyUseCase — change an exam's grading key after correction.

Business rules:
  1. Verify the exam exists (raise EntityNotFoundError if not)
  2. Validate the key the new boundaries would produce; an invalid key
     raises ValidationError and nothing is written or audited
  3. Append one ChangeRecord to the Unit of Work, so the audit entry
     commits or rolls back together with the key change
  4. Store the modified key on the exam
  5. Report every candidate whose grade changes
  6. Optionally rewrite grade and percentage of the exam's corrections,
     stamping last_modified so stale copies fail the optimistic check
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from gradekeys.domain.common.errors import EntityNotFoundError, ValidationError
from gradekeys.domain.common.uow import UnitOfWork
from gradekeys.domain.grading.key_engine import KeyVersioningEngine
from gradekeys.domain.grading.models import (
    AffectedGrade,
    ChangeRecord,
    GradeBoundary,
    GradingKey,
    OutOfRangePolicy,
)
from gradekeys.domain.grading.resolver import apply_rounding, calculate_grade

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Command (input) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class ModifyGradingKeyCommand:
    """Immutable value object describing the key change."""

    exam_id: str
    new_boundaries: tuple[GradeBoundary, ...]
    reason: str | None = None
    changed_by: str | None = None
    recalculate_corrections: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "new_boundaries", tuple(self.new_boundaries))


# ── Result (output) ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class GradingKeyModificationResult:
    """What the use case returns to the caller."""

    old_key: GradingKey
    new_key: GradingKey
    affected_grades: tuple[AffectedGrade, ...]
    change_record: ChangeRecord
    corrections_updated: int = 0

    @property
    def change_count(self) -> int:
        return len(self.affected_grades)


# ── Use Case ─────────────────────────────────────────────────────────────


class ModifyGradingKeyUseCase:
    """Apply new boundaries to an exam's key and report the fallout."""

    def __init__(
        self,
        engine: KeyVersioningEngine,
        *,
        out_of_range: OutOfRangePolicy = OutOfRangePolicy.LOWEST,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = engine
        self._out_of_range = out_of_range
        self._clock = clock

    def execute(
        self, uow: UnitOfWork, cmd: ModifyGradingKeyCommand
    ) -> GradingKeyModificationResult:
        with uow:
            exam = uow.exams.find_by_id(cmd.exam_id)
            if exam is None:
                raise EntityNotFoundError("Exam", cmd.exam_id)
            old_key = exam.grading_key

            candidate = replace(old_key, grade_boundaries=cmd.new_boundaries)
            validation = self._engine.validate_grading_key(candidate)
            if not validation.valid:
                raise ValidationError(
                    f"Invalid grading key for exam {cmd.exam_id}",
                    list(validation.errors),
                )

            change_record = self._engine.build_change_record(
                old_key, cmd.new_boundaries, cmd.reason, cmd.changed_by
            )
            new_key = change_record.new_key
            uow.key_changes.append(old_key.id, change_record)
            uow.exams.update_grading_key(exam.id, new_key)

            corrections = uow.corrections.find_by_exam(exam.id)
            impact = self._engine.recalculate_grades_for_batch(
                corrections, old_key, new_key
            )

            updated = 0
            if cmd.recalculate_corrections:
                now = self._clock()
                for entry in corrections:
                    result = calculate_grade(
                        entry.total_points, new_key, out_of_range=self._out_of_range
                    )
                    percentage = apply_rounding(
                        result.percentage, new_key.rounding_rule
                    )
                    if (
                        result.grade == entry.total_grade
                        and percentage == entry.percentage_score
                    ):
                        continue
                    uow.corrections.update(
                        replace(
                            entry,
                            total_grade=result.grade,
                            percentage_score=percentage,
                            last_modified=now,
                        ),
                        expected_last_modified=entry.last_modified,
                    )
                    updated += 1
            uow.commit()

        logger.info(
            "Exam %s: grading key %s changed by %s (change %s), "
            "%d grade(s) affected, %d correction(s) rewritten",
            cmd.exam_id,
            old_key.id,
            cmd.changed_by or "unknown",
            change_record.id,
            impact.change_count,
            updated,
        )
        return GradingKeyModificationResult(
            old_key=old_key,
            new_key=new_key,
            affected_grades=impact.affected_grades,
            change_record=change_record,
            corrections_updated=updated,
        )
