"""KeyVersioningEngine — grading key lifecycle and change impact.

Construction, percentage->points conversion, validated mutation with an
audit trail, diffing, cloning and batch impact analysis.  Everything
except ``modify_grading_key_after_correction`` (which appends to the
injected AuditLog) is free of side effects.
"""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Any

from ..common.errors import ValidationError
from .audit_log import AuditLog
from .models import (
    DEFAULT_ROUNDING_RULE,
    AdjustmentSuggestion,
    AffectedGrade,
    BatchRecalculation,
    ChangeRecord,
    CorrectionEntry,
    ErrorPointsResult,
    GradeBoundary,
    GradingKey,
    GradingKeyType,
    GradingPreset,
    KeyComparison,
    KeyValidation,
    OutOfRangePolicy,
    RoundingRule,
    TargetShare,
)
from .resolver import calculate_grade

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


_KEY_FIELDS = frozenset(f.name for f in fields(GradingKey))


class KeyVersioningEngine:
    """Manage grading keys and record every post-correction change."""

    def __init__(
        self,
        audit_log: AuditLog,
        *,
        out_of_range: OutOfRangePolicy = OutOfRangePolicy.LOWEST,
        default_rounding: RoundingRule = DEFAULT_ROUNDING_RULE,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._audit_log = audit_log
        self._out_of_range = out_of_range
        self._default_rounding = default_rounding
        self._clock = clock
        self._new_id = id_factory

    # ── Construction ────────────────────────────────────────────────────

    def create_custom_grading_key(
        self,
        name: str,
        total_points: float,
        boundaries: Iterable[GradeBoundary],
        rounding_rule: RoundingRule | None = None,
    ) -> GradingKey:
        """Build a customizable percentage key, boundaries sorted descending."""
        if total_points <= 0:
            raise ValidationError(f"total_points must be > 0, got {total_points}")
        # sorted() is stable, so equal thresholds keep their input order.
        ordered = sorted(
            boundaries, key=lambda b: b.min_percentage or 0, reverse=True
        )
        return GradingKey(
            id=self._new_id(),
            name=name,
            type=GradingKeyType.PERCENTAGE,
            total_points=total_points,
            grade_boundaries=tuple(ordered),
            rounding_rule=rounding_rule or self._default_rounding,
            error_points_to_grade=False,
            customizable=True,
            modified_after_correction=False,
        )

    def create_preset(
        self,
        name: str,
        description: str,
        system: str,
        boundaries: Iterable[GradeBoundary],
        default_rounding: RoundingRule | None = None,
    ) -> GradingPreset:
        return GradingPreset(
            id=self._new_id(),
            name=name,
            description=description,
            system=system,
            boundaries=tuple(boundaries),
            default_rounding=default_rounding or self._default_rounding,
        )

    def create_key_from_preset(
        self,
        preset: GradingPreset,
        total_points: float,
        name: str | None = None,
    ) -> GradingKey:
        key = self.create_custom_grading_key(
            name or preset.name,
            total_points,
            preset.boundaries,
            preset.default_rounding,
        )
        return replace(key, preset_id=preset.id)

    def convert_to_points_based(
        self, key: GradingKey, total_points: float
    ) -> GradingKey:
        """Add ``min_points`` to every boundary and switch the key to POINTS.

        Boundary order and percentage fields are kept as they are.  The
        key's ``total_points`` becomes *total_points*, which is the upper
        limit the points matcher uses for boundaries without ``max_points``.
        """
        boundaries = tuple(
            replace(
                b,
                min_points=math.ceil((b.min_percentage or 0) * total_points / 100),
            )
            for b in key.grade_boundaries
        )
        return replace(
            key,
            type=GradingKeyType.POINTS,
            total_points=total_points,
            grade_boundaries=boundaries,
        )

    # ── Mutation with audit trail ───────────────────────────────────────

    def build_change_record(
        self,
        old_key: GradingKey,
        new_boundaries: Iterable[GradeBoundary],
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> ChangeRecord:
        """Describe a post-correction change without storing it.

        ``record.new_key`` is *old_key* with the new boundaries and the
        modified-after-correction flag set.  Callers that persist the key
        inside a transaction append the record to that transaction's log.
        """
        modified = replace(
            old_key,
            grade_boundaries=tuple(new_boundaries),
            modified_after_correction=True,
        )
        return ChangeRecord(
            id=self._new_id(),
            timestamp=self._clock(),
            previous_key=old_key,
            new_key=modified,
            reason=reason,
            changed_by=changed_by,
        )

    def modify_grading_key_after_correction(
        self,
        old_key: GradingKey,
        new_boundaries: Iterable[GradeBoundary],
        reason: str | None = None,
        changed_by: str | None = None,
    ) -> GradingKey:
        """Return *old_key* with new boundaries and append one ChangeRecord.

        Existing corrections are not touched; use
        ``recalculate_grades_for_batch`` to see who is affected.
        """
        record = self.build_change_record(old_key, new_boundaries, reason, changed_by)
        self._audit_log.append(old_key.id, record)
        logger.info(
            "Grading key %s modified after correction by %s (change %s)",
            old_key.id,
            changed_by or "unknown",
            record.id,
        )
        return record.new_key

    def get_change_history(self, key_id: str) -> tuple[ChangeRecord, ...]:
        return self._audit_log.get_history(key_id)

    def clone_with_modifications(
        self, source_key: GradingKey, modifications: Mapping[str, Any]
    ) -> GradingKey:
        """Copy *source_key* with *modifications* applied under a fresh id."""
        unknown = set(modifications) - _KEY_FIELDS
        if unknown:
            raise ValidationError(
                "Unknown grading key fields", sorted(unknown)
            )
        return replace(
            source_key,
            **{
                **modifications,
                "id": self._new_id(),
                "modified_after_correction": False,
            },
        )

    # ── Impact analysis ─────────────────────────────────────────────────

    def recalculate_grades_for_batch(
        self,
        corrections: Iterable[CorrectionEntry],
        old_key: GradingKey,
        new_key: GradingKey,
    ) -> BatchRecalculation:
        """List candidates whose grade differs between *old_key* and *new_key*."""
        affected: list[AffectedGrade] = []
        for correction in corrections:
            old = calculate_grade(
                correction.total_points, old_key, out_of_range=self._out_of_range
            )
            new = calculate_grade(
                correction.total_points, new_key, out_of_range=self._out_of_range
            )
            if old.grade != new.grade:
                affected.append(
                    AffectedGrade(
                        candidate_id=correction.candidate_id,
                        old_grade=old.grade,
                        new_grade=new.grade,
                    )
                )
        return BatchRecalculation(affected_grades=tuple(affected))

    def convert_error_points_to_grade(
        self,
        total_points: float,
        error_points: float,
        max_points: float,
        key: GradingKey,
    ) -> ErrorPointsResult:
        """Grade for ``max_points - error_points``, never below 0 points.

        *total_points* is accepted for call-site compatibility; the grade
        depends only on the error deduction.
        """
        calculated = max(0, max_points - error_points)
        result = calculate_grade(calculated, key, out_of_range=self._out_of_range)
        return ErrorPointsResult(grade=result.grade, calculated_points=calculated)

    # ── Validation & diffing ────────────────────────────────────────────

    @staticmethod
    def validate_grading_key(key: GradingKey) -> KeyValidation:
        """Collect every consistency problem of *key*; never raises."""
        errors: list[str] = []
        boundaries = key.grade_boundaries

        if key.type == GradingKeyType.PERCENTAGE:
            for current, following in zip(boundaries, boundaries[1:]):
                cur_min = current.min_percentage or 0
                next_min = following.min_percentage or 0
                if cur_min <= next_min:
                    errors.append(
                        f"Boundary order error: Grade {current.display_value} "
                        f"({cur_min}%) should be higher than Grade "
                        f"{following.display_value} ({next_min}%)"
                    )

        if len(boundaries) < 2:
            errors.append("Grading key must have at least 2 grade boundaries")

        if boundaries and (boundaries[-1].min_percentage or 0) > 0:
            errors.append("Lowest grade boundary must start at 0%")

        return KeyValidation(errors=tuple(errors))

    @staticmethod
    def compare_grading_keys(key1: GradingKey, key2: GradingKey) -> KeyComparison:
        changes: list[str] = []
        if key1.name != key2.name:
            changes.append(f'Name changed: "{key1.name}" → "{key2.name}"')
        if key1.type != key2.type:
            changes.append(
                f"Type changed: {GradingKeyType(key1.type).value} → "
                f"{GradingKeyType(key2.type).value}"
            )
        if key1.grade_boundaries != key2.grade_boundaries:
            changes.append("Grade boundaries modified")
        if key1.rounding_rule != key2.rounding_rule:
            changes.append("Rounding rule changed")
        return KeyComparison(changes=tuple(changes))

    # ── Advisory ────────────────────────────────────────────────────────

    def suggest_grading_key_adjustments(
        self,
        corrections: Sequence[CorrectionEntry],
        current_key: GradingKey,
        target_distribution: Sequence[TargetShare] | None = None,
    ) -> AdjustmentSuggestion:
        """Heuristic boundary advice from the current grade distribution.

        Without a target distribution the boundaries are returned
        unchanged, only the reasoning describes the histogram.  With one,
        each boundary's minimum percentage is moved to the score that lets
        the requested cumulative share of candidates reach that grade.
        """
        boundaries = current_key.grade_boundaries
        reasoning: list[str] = []
        results = [
            calculate_grade(c.total_points, current_key, out_of_range=self._out_of_range)
            for c in corrections
        ]
        histogram = Counter(str(r.grade) for r in results)
        distribution = {
            str(b.grade): histogram.get(str(b.grade), 0) for b in boundaries
        }
        for grade, count in histogram.items():
            distribution.setdefault(grade, count)

        if not results:
            reasoning.append("No corrections to analyse")
            return AdjustmentSuggestion(
                suggestion=boundaries,
                reasoning=tuple(reasoning),
                distribution=distribution,
            )

        reasoning.append(
            "Current distribution: "
            + ", ".join(f"{grade}:{count}" for grade, count in distribution.items())
        )

        # Mean rank over boundary positions; 0 is the best grade.
        rank = {str(b.grade): i for i, b in enumerate(boundaries)}
        ranked = [rank[str(r.grade)] for r in results if str(r.grade) in rank]
        if ranked and len(boundaries) > 1:
            mean_rank = sum(ranked) / len(ranked)
            midpoint = (len(boundaries) - 1) / 2
            if mean_rank > midpoint + 1:
                reasoning.append(
                    "Grade distribution is skewed toward lower grades. "
                    "Consider lowering boundaries."
                )
            elif mean_rank < midpoint - 1:
                reasoning.append(
                    "Grade distribution is skewed toward higher grades. "
                    "Consider raising boundaries."
                )

        if not target_distribution or current_key.type != GradingKeyType.PERCENTAGE:
            return AdjustmentSuggestion(
                suggestion=boundaries,
                reasoning=tuple(reasoning),
                distribution=distribution,
            )

        targets = {str(t.grade): t.percentage for t in target_distribution}
        percentages = sorted((r.percentage for r in results), reverse=True)
        suggestion: list[GradeBoundary] = []
        cumulative = 0.0
        for boundary in boundaries[:-1]:
            cumulative += targets.get(str(boundary.grade), 0.0)
            reach = round(cumulative / 100 * len(percentages))
            if reach <= 0:
                suggestion.append(boundary)
                continue
            threshold = round(percentages[min(reach, len(percentages)) - 1], 1)
            if threshold != boundary.min_percentage:
                reasoning.append(
                    f"Grade {boundary.display_value}: move minimum from "
                    f"{boundary.min_percentage}% to {threshold}% to reach "
                    f"{cumulative:.0f}% of candidates"
                )
            suggestion.append(replace(boundary, min_percentage=threshold))
        suggestion.append(boundaries[-1])

        if not self.validate_grading_key(
            replace(current_key, grade_boundaries=tuple(suggestion))
        ).valid:
            reasoning.append(
                "Target distribution cannot be met with strictly descending "
                "boundaries; keeping the current key"
            )
            suggestion = list(boundaries)

        return AdjustmentSuggestion(
            suggestion=tuple(suggestion),
            reasoning=tuple(reasoning),
            distribution=distribution,
        )

    # ── Reporting ───────────────────────────────────────────────────────

    def export_change_history(self, key_id: str) -> str:
        """Plain-text report of every recorded change of *key_id*."""
        history = self._audit_log.get_history(key_id)
        if not history:
            return "No changes recorded"

        lines = [
            f"Grading Key Change History (ID: {key_id})",
            f"Generated: {self._clock().isoformat()}",
            "=" * 60,
            "",
        ]
        for change in history:
            lines.append(f"Change ID: {change.id}")
            lines.append(f"Timestamp: {change.timestamp.isoformat()}")
            if change.changed_by:
                lines.append(f"Changed by: {change.changed_by}")
            if change.reason:
                lines.append(f"Reason: {change.reason}")
            diff = self.compare_grading_keys(change.previous_key, change.new_key)
            if diff.changes:
                lines.append("Changes:")
                lines.extend(f"  - {item}" for item in diff.changes)
            lines.append("")
        return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Helpers on single keys
# ---------------------------------------------------------------------------


def is_modified_after_correction(key: GradingKey) -> bool:
    return key.modified_after_correction


def mark_as_modified_after_correction(key: GradingKey) -> GradingKey:
    return replace(key, modified_after_correction=True)


def format_boundary(
    boundary: GradeBoundary, key_type: GradingKeyType = GradingKeyType.PERCENTAGE
) -> str:
    """Human-readable range of one boundary, e.g. ``Grade 2: 81%-100%``."""
    if GradingKeyType(key_type) == GradingKeyType.POINTS:
        low = boundary.min_points if boundary.min_points is not None else 0
        high = boundary.max_points if boundary.max_points is not None else 100
        return f"Grade {boundary.display_value}: {low:g}-{high:g} points"
    low = boundary.min_percentage if boundary.min_percentage is not None else 0
    high = boundary.max_percentage if boundary.max_percentage is not None else 100
    return f"Grade {boundary.display_value}: {low:g}%-{high:g}%"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "KeyVersioningEngine",
    "is_modified_after_correction",
    "mark_as_modified_after_correction",
    "format_boundary",
]
