"""Shared serialization helpers for the infrastructure layer.

Nested grading structures are stored as JSON text.  Every conversion
between that text and the typed domain model happens here, validated
through the pydantic schemas, so domain code never sees raw JSON.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime, timezone

from pydantic import TypeAdapter

from gradekeys.domain.common.types import Grade
from gradekeys.domain.grading.models import (
    AssignedSupportTip,
    CorrectionComment,
    GradingKey,
    TaskScore,
)
from gradekeys.schemas.grading import (
    AssignedSupportTipSchema,
    CorrectionCommentSchema,
    GradingKeySchema,
    TaskScoreSchema,
)

_TASK_SCORES = TypeAdapter(list[TaskScoreSchema])
_COMMENTS = TypeAdapter(list[CorrectionCommentSchema])
_SUPPORT_TIPS = TypeAdapter(list[AssignedSupportTipSchema])


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def dump_grading_key(key: GradingKey) -> str:
    return GradingKeySchema.from_domain(key).model_dump_json()


def load_grading_key(text: str) -> GradingKey:
    return GradingKeySchema.model_validate_json(text).to_domain()


def dump_task_scores(scores: Iterable[TaskScore]) -> str:
    return _TASK_SCORES.dump_json(
        [TaskScoreSchema.model_validate(s) for s in scores]
    ).decode()


def load_task_scores(text: str | None) -> tuple[TaskScore, ...]:
    if not text:
        return ()
    return tuple(s.to_domain() for s in _TASK_SCORES.validate_json(text))


def dump_comments(comments: Iterable[CorrectionComment]) -> str:
    return _COMMENTS.dump_json(
        [CorrectionCommentSchema.model_validate(c) for c in comments]
    ).decode()


def load_comments(text: str | None) -> tuple[CorrectionComment, ...]:
    if not text:
        return ()
    return tuple(c.to_domain() for c in _COMMENTS.validate_json(text))


def dump_support_tips(tips: Iterable[AssignedSupportTip]) -> str:
    return _SUPPORT_TIPS.dump_json(
        [AssignedSupportTipSchema.model_validate(t) for t in tips]
    ).decode()


def load_support_tips(text: str | None) -> tuple[AssignedSupportTip, ...]:
    if not text:
        return ()
    return tuple(t.to_domain() for t in _SUPPORT_TIPS.validate_json(text))


def dump_grade(grade: Grade) -> str:
    """JSON scalar so that 2 and "2" stay distinguishable."""
    return json.dumps(grade)


def load_grade(text: str) -> Grade:
    return json.loads(text)
