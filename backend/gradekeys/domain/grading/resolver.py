"""Boundary resolution: turn a point score into a grade.

All functions are pure: no I/O, no side effects, fully deterministic.
Range matching is delegated to a BoundaryMatcher chosen by the key's
type; boundaries are evaluated in their stored order.
"""

from __future__ import annotations

import abc
import logging
import math
from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal

from ..common.errors import ValidationError
from .models import (
    NO_BOUNDARY_GRADE,
    GradeBoundary,
    GradeResult,
    GradingKey,
    GradingKeyType,
    OutOfRangePolicy,
    RoundingRule,
    RoundingType,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Boundary Matchers
# ---------------------------------------------------------------------------


class BoundaryMatcher(abc.ABC):
    """Decide whether a score falls inside one boundary's range."""

    @abc.abstractmethod
    def matches(
        self,
        boundary: GradeBoundary,
        points: float,
        percentage: float,
        key: GradingKey,
    ) -> bool:
        ...


class PercentageBoundaryMatcher(BoundaryMatcher):
    """Half-open ``[min_percentage, max_percentage)``, defaults 0 and 100."""

    def matches(self, boundary, points, percentage, key) -> bool:
        low = boundary.min_percentage if boundary.min_percentage is not None else 0.0
        high = boundary.max_percentage if boundary.max_percentage is not None else 100.0
        return low <= percentage < high


class PointsBoundaryMatcher(BoundaryMatcher):
    """Half-open ``[min_points, max_points)``, defaults 0 and total_points."""

    def matches(self, boundary, points, percentage, key) -> bool:
        low = boundary.min_points if boundary.min_points is not None else 0.0
        high = boundary.max_points if boundary.max_points is not None else key.total_points
        return low <= points < high


_MATCHERS: dict[GradingKeyType, BoundaryMatcher] = {
    GradingKeyType.PERCENTAGE: PercentageBoundaryMatcher(),
    GradingKeyType.POINTS: PointsBoundaryMatcher(),
}


def matcher_for(key_type: GradingKeyType) -> BoundaryMatcher:
    """Return the matcher registered for *key_type*."""
    try:
        return _MATCHERS[GradingKeyType(key_type)]
    except (KeyError, ValueError):
        raise ValidationError(f"No boundary matcher for key type {key_type!r}")


# ---------------------------------------------------------------------------
# Grade Calculation
# ---------------------------------------------------------------------------


def _percentage_of(points: float, total_points: float) -> float:
    if total_points <= 0:
        return 0.0
    return points * 100 / total_points


def _min_threshold(boundary: GradeBoundary, key: GradingKey) -> float:
    if key.type == GradingKeyType.POINTS and boundary.min_points is not None:
        return _percentage_of(boundary.min_points, key.total_points)
    return boundary.min_percentage or 0.0


def calculate_grade(
    points: float,
    key: GradingKey,
    *,
    out_of_range: OutOfRangePolicy = OutOfRangePolicy.LOWEST,
) -> GradeResult:
    """Resolve *points* to a grade under *key*.

    The first boundary (in stored order) whose range contains the score
    wins.  A key without boundaries yields ``NO_BOUNDARY_GRADE``.  When no
    range contains the score, the lowest-ranked boundary is returned
    unless *out_of_range* is HIGHEST and the score reaches the top
    boundary's minimum.
    """
    percentage = _percentage_of(points, key.total_points)
    boundaries = key.grade_boundaries
    if not boundaries:
        return GradeResult(grade=NO_BOUNDARY_GRADE, percentage=percentage)

    matcher = matcher_for(key.type)
    for boundary in boundaries:
        if matcher.matches(boundary, points, percentage, key):
            return GradeResult(
                grade=boundary.grade,
                percentage=percentage,
                display_value=boundary.display_value,
            )

    top, lowest = boundaries[0], boundaries[-1]
    fallback = lowest
    if (
        OutOfRangePolicy(out_of_range) == OutOfRangePolicy.HIGHEST
        and percentage >= _min_threshold(top, key)
    ):
        fallback = top
    logger.warning(
        "No boundary of key %s contains %.2f points (%.2f%%); falling back to grade %s",
        key.id,
        points,
        percentage,
        fallback.display_value,
    )
    return GradeResult(
        grade=fallback.grade,
        percentage=percentage,
        display_value=fallback.display_value,
    )


# ---------------------------------------------------------------------------
# Rounding & Percentages
# ---------------------------------------------------------------------------

_DECIMAL_MODES = {
    RoundingType.UP: ROUND_CEILING,
    RoundingType.DOWN: ROUND_FLOOR,
    RoundingType.NEAREST: ROUND_HALF_UP,  # half away from zero
}


def apply_rounding(value: float, rule: RoundingRule) -> float:
    """Round *value* according to *rule*; unknown types act as ``none``."""
    try:
        rounding_type = RoundingType(rule.type)
    except ValueError:
        logger.debug("Unknown rounding type %r, leaving value unrounded", rule.type)
        return value

    mode = _DECIMAL_MODES.get(rounding_type)
    if mode is None or not math.isfinite(value):
        return value

    # str() avoids binary artefacts such as 2.675 -> 2.67499999...
    quantum = Decimal(1).scaleb(-rule.decimal_places)
    return float(Decimal(str(value)).quantize(quantum, rounding=mode))


def calculate_percentage(points: float, max_points: float) -> float:
    """Percentage rounded to one decimal place; 0 when *max_points* is 0."""
    if max_points == 0:
        return 0.0
    return apply_rounding(
        points * 100 / max_points, RoundingRule(RoundingType.NEAREST, 1)
    )


def points_to_next_grade(current_points: float, key: GradingKey) -> int:
    """Points still missing to reach the next better grade.

    Returns 0 when no boundary starts above the current percentage.
    """
    current = calculate_grade(current_points, key).percentage
    candidates = [
        b.min_percentage
        for b in key.grade_boundaries
        if b.min_percentage is not None and b.min_percentage > current
    ]
    if not candidates:
        return 0
    next_min = min(candidates)
    return math.ceil(next_min * key.total_points / 100 - current_points)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    "BoundaryMatcher",
    "PercentageBoundaryMatcher",
    "PointsBoundaryMatcher",
    "matcher_for",
    "calculate_grade",
    "apply_rounding",
    "calculate_percentage",
    "points_to_next_grade",
]
