"""Domain models for the grading bounded context.

Pure value objects and enums that describe grading keys, their audit
trail and the per-candidate correction record, independently of any
infrastructure (ORM, HTTP, JSON).  All dataclasses use frozen=True;
changes produce new instances via ``dataclasses.replace``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from ..common.types import Grade


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class GradingKeyType(str, Enum):
    """Which threshold pair of a GradeBoundary is authoritative."""

    PERCENTAGE = "percentage"
    POINTS = "points"


class RoundingType(str, Enum):
    """Rounding direction of a RoundingRule."""

    UP = "up"
    DOWN = "down"
    NEAREST = "nearest"
    NONE = "none"


class CorrectionStatus(str, Enum):
    """Lifecycle states of a correction entry."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class OutOfRangePolicy(str, Enum):
    """What to resolve when no boundary range contains the score."""

    LOWEST = "lowest"  # fail-safe to worst grade
    HIGHEST = "highest"  # above-the-top scores get the best grade


class CommentLevel(str, Enum):
    EXAM = "exam"
    TASK = "task"
    SUBTASK = "subtask"


# Grade reported for keys without any boundary.
NO_BOUNDARY_GRADE = "N/A"


# ---------------------------------------------------------------------------
# Grading Key
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RoundingRule:
    """Rounding direction plus precision.

    ``type`` is kept as a plain string-compatible value so that rules
    loaded from storage with an unknown type still construct; they
    round as ``none``.
    """

    type: RoundingType | str = RoundingType.NEAREST
    decimal_places: int = 1

    def __post_init__(self) -> None:
        if self.decimal_places < 0:
            raise ValueError(
                f"decimal_places must be >= 0, got {self.decimal_places}"
            )


DEFAULT_ROUNDING_RULE = RoundingRule(RoundingType.NEAREST, 1)


@dataclass(frozen=True)
class GradeBoundary:
    """One grade's matching range within a grading key."""

    grade: Grade
    display_value: str
    min_percentage: float | None = None
    max_percentage: float | None = None
    min_points: float | None = None
    max_points: float | None = None


@dataclass(frozen=True)
class GradingKey:
    """Versioned configuration mapping score ranges to grades.

    ``grade_boundaries`` is stored in evaluation order (descending by
    threshold) and is never re-sorted when read.
    """

    id: str
    name: str
    type: GradingKeyType
    total_points: float
    grade_boundaries: tuple[GradeBoundary, ...]
    rounding_rule: RoundingRule = DEFAULT_ROUNDING_RULE
    error_points_to_grade: bool = False
    customizable: bool = False
    modified_after_correction: bool = False
    preset_id: str | None = None

    def __post_init__(self) -> None:
        # Accept any sequence but freeze it.
        object.__setattr__(
            self, "grade_boundaries", tuple(self.grade_boundaries)
        )


@dataclass(frozen=True)
class GradingPreset:
    """Reusable boundary template, e.g. the German 1-6 scale."""

    id: str
    name: str
    description: str
    system: str
    boundaries: tuple[GradeBoundary, ...]
    default_rounding: RoundingRule = DEFAULT_ROUNDING_RULE

    def __post_init__(self) -> None:
        object.__setattr__(self, "boundaries", tuple(self.boundaries))


@dataclass(frozen=True)
class ChangeRecord:
    """One audited edit to a grading key, with before/after snapshots."""

    id: str
    timestamp: datetime
    previous_key: GradingKey
    new_key: GradingKey
    reason: str | None = None
    changed_by: str | None = None


# ---------------------------------------------------------------------------
# Exam & Correction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Exam:
    """The slice of an exam this engine needs: its current grading key."""

    id: str
    title: str
    grading_key: GradingKey


@dataclass(frozen=True)
class TaskScore:
    """Points awarded for one exam task."""

    task_id: str
    points: float
    max_points: float
    timestamp: datetime | None = None
    comment: str | None = None


@dataclass(frozen=True)
class CorrectionComment:
    id: str
    text: str
    level: CommentLevel
    timestamp: datetime
    task_id: str | None = None
    printable: bool = True
    available_after_return: bool = True


@dataclass(frozen=True)
class AssignedSupportTip:
    support_tip_id: str
    assigned_at: datetime
    task_id: str | None = None
    weight: float | None = None
    notes: str | None = None


@dataclass(frozen=True)
class CorrectionEntry:
    """A candidate's graded result for one exam.

    ``status`` is monotonic: once COMPLETED it never reverts implicitly.
    """

    id: str
    exam_id: str
    candidate_id: str
    last_modified: datetime
    task_scores: tuple[TaskScore, ...] = ()
    total_points: float = 0.0
    total_grade: Grade = NO_BOUNDARY_GRADE
    percentage_score: float = 0.0
    comments: tuple[CorrectionComment, ...] = ()
    support_tips: tuple[AssignedSupportTip, ...] = ()
    status: CorrectionStatus = CorrectionStatus.IN_PROGRESS
    corrected_by: str | None = None
    corrected_at: datetime | None = None


# ---------------------------------------------------------------------------
# Results of grading operations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class GradeResult:
    grade: Grade
    percentage: float
    display_value: str = NO_BOUNDARY_GRADE


@dataclass(frozen=True)
class AffectedGrade:
    """A candidate whose resolved grade differs between two keys."""

    candidate_id: str
    old_grade: Grade
    new_grade: Grade


@dataclass(frozen=True)
class BatchRecalculation:
    affected_grades: tuple[AffectedGrade, ...]

    @property
    def change_count(self) -> int:
        return len(self.affected_grades)


@dataclass(frozen=True)
class ErrorPointsResult:
    grade: Grade
    calculated_points: float


@dataclass(frozen=True)
class KeyValidation:
    errors: tuple[str, ...] = ()

    @property
    def valid(self) -> bool:
        return len(self.errors) == 0


@dataclass(frozen=True)
class KeyComparison:
    changes: tuple[str, ...] = ()

    @property
    def is_same(self) -> bool:
        return len(self.changes) == 0


@dataclass(frozen=True)
class TargetShare:
    """Desired share (0-100) of candidates receiving *grade*."""

    grade: Grade
    percentage: float


@dataclass(frozen=True)
class AdjustmentSuggestion:
    suggestion: tuple[GradeBoundary, ...]
    reasoning: tuple[str, ...] = field(default_factory=tuple)
    distribution: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "GradingKeyType",
    "RoundingType",
    "CorrectionStatus",
    "OutOfRangePolicy",
    "CommentLevel",
    "NO_BOUNDARY_GRADE",
    "RoundingRule",
    "DEFAULT_ROUNDING_RULE",
    "GradeBoundary",
    "GradingKey",
    "GradingPreset",
    "ChangeRecord",
    "Exam",
    "TaskScore",
    "CorrectionComment",
    "AssignedSupportTip",
    "CorrectionEntry",
    "GradeResult",
    "AffectedGrade",
    "BatchRecalculation",
    "ErrorPointsResult",
    "KeyValidation",
    "KeyComparison",
    "TargetShare",
    "AdjustmentSuggestion",
]
