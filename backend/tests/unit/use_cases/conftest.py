"""Shared test fakes and fixtures for grading use case tests.

Consolidates all in-memory fake implementations of domain ports.
Each fake stores real data and returns it — verifying actual behavior,
not just "was method X called?".

Other test files outside this directory can import these fakes directly::

    from tests.unit.use_cases.conftest import FakeCorrectionRepository, FakeUnitOfWork
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from gradekeys.domain.common.errors import ConcurrencyConflictError
from gradekeys.domain.common.uow import UnitOfWork
from gradekeys.domain.grading.audit_log import InMemoryAuditLog
from gradekeys.domain.grading.key_engine import KeyVersioningEngine
from gradekeys.domain.grading.models import (
    ChangeRecord,
    CorrectionEntry,
    Exam,
    GradeBoundary,
    GradingKey,
    GradingKeyType,
    RoundingRule,
    RoundingType,
)
from gradekeys.domain.grading.ports import CorrectionRepository, ExamRepository


T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Deterministic clock & ids
# ---------------------------------------------------------------------------


class FakeClock:
    """Advances one minute per call, starting at T0."""

    def __init__(self, start: datetime = T0) -> None:
        self._now = start
        self.calls = 0

    def __call__(self) -> datetime:
        value = self._now
        self._now += timedelta(minutes=1)
        self.calls += 1
        return value


class SequentialIds:
    """Returns "<prefix>-1", "<prefix>-2", ..."""

    def __init__(self, prefix: str = "id") -> None:
        self._prefix = prefix
        self._n = 0

    def __call__(self) -> str:
        self._n += 1
        return f"{self._prefix}-{self._n}"


# ---------------------------------------------------------------------------
# Fake repositories
# ---------------------------------------------------------------------------


class FakeExamRepository(ExamRepository):
    def __init__(self, exams: list[Exam] | None = None) -> None:
        self.exams: dict[str, Exam] = {e.id: e for e in exams or []}
        self.key_updates: list[tuple[str, GradingKey]] = []

    def add(self, exam: Exam) -> Exam:
        self.exams[exam.id] = exam
        return exam

    def find_by_id(self, exam_id: str) -> Exam | None:
        return self.exams.get(exam_id)

    def update_grading_key(self, exam_id: str, key: GradingKey) -> None:
        self.exams[exam_id] = replace(self.exams[exam_id], grading_key=key)
        self.key_updates.append((exam_id, key))


class FakeCorrectionRepository(CorrectionRepository):
    """In-memory correction store keyed by entry id.

    ``rows`` keeps insertion order so tests can count physical rows.
    """

    def __init__(self, entries: list[CorrectionEntry] | None = None) -> None:
        self.rows: dict[str, CorrectionEntry] = {}
        self.created: list[str] = []
        self.updated: list[str] = []
        for entry in entries or []:
            self.rows[entry.id] = entry

    def find_by_id(self, entry_id: str) -> CorrectionEntry | None:
        return self.rows.get(entry_id)

    def find_by_exam_and_candidate(
        self, exam_id: str, candidate_id: str
    ) -> CorrectionEntry | None:
        return next(
            (
                e
                for e in self.rows.values()
                if e.exam_id == exam_id and e.candidate_id == candidate_id
            ),
            None,
        )

    def find_by_exam(self, exam_id: str) -> list[CorrectionEntry]:
        return [e for e in self.rows.values() if e.exam_id == exam_id]

    def create(self, entry: CorrectionEntry) -> CorrectionEntry:
        if entry.id in self.rows:
            raise ValueError(f"Duplicate correction id: {entry.id}")
        self.rows[entry.id] = entry
        self.created.append(entry.id)
        return entry

    def update(self, entry, *, expected_last_modified=None):
        stored = self.rows.get(entry.id)
        if stored is None:
            raise ValueError(f"Cannot update non-existent correction: {entry.id}")
        if (
            expected_last_modified is not None
            and stored.last_modified != expected_last_modified
        ):
            raise ConcurrencyConflictError("CorrectionEntry", entry.id)
        self.rows[entry.id] = entry
        self.updated.append(entry.id)
        return entry

    def rows_for(self, exam_id: str, candidate_id: str) -> list[CorrectionEntry]:
        return [
            e
            for e in self.rows.values()
            if e.exam_id == exam_id and e.candidate_id == candidate_id
        ]


class FakeKeyChangeLog(InMemoryAuditLog):
    """Buffers appended records until the owning UoW commits.

    ``get_history`` only returns committed records, matching what another
    session would see.
    """

    def __init__(self) -> None:
        super().__init__()
        self.pending: list[tuple[str, ChangeRecord]] = []

    def append(self, key_id: str, record: ChangeRecord) -> None:
        self.pending.append((key_id, record))

    def flush_pending(self) -> None:
        for key_id, record in self.pending:
            super().append(key_id, record)
        self.pending.clear()

    def discard_pending(self) -> None:
        self.pending.clear()


# ---------------------------------------------------------------------------
# Fake unit of work
# ---------------------------------------------------------------------------


class FakeUnitOfWork(UnitOfWork):
    """In-memory UoW wiring up all fake repositories."""

    def __init__(
        self,
        *,
        exams: ExamRepository | None = None,
        corrections: CorrectionRepository | None = None,
        key_changes: FakeKeyChangeLog | None = None,
    ) -> None:
        self.exams = exams or FakeExamRepository()
        self.corrections = corrections or FakeCorrectionRepository()
        self.key_changes = key_changes or FakeKeyChangeLog()
        self.committed = 0
        self.rolled_back = 0

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is not None:
            self.rollback()

    def commit(self):
        self.key_changes.flush_pending()
        self.committed += 1

    def rollback(self):
        self.key_changes.discard_pending()
        self.rolled_back += 1


# ---------------------------------------------------------------------------
# Domain object helpers
# ---------------------------------------------------------------------------


GERMAN_THRESHOLDS = [(1, 92), (2, 81), (3, 70), (4, 60), (5, 50), (6, 0)]


def make_boundaries(thresholds=GERMAN_THRESHOLDS) -> tuple[GradeBoundary, ...]:
    return tuple(
        GradeBoundary(grade=g, display_value=str(g), min_percentage=pct)
        for g, pct in thresholds
    )


def make_key(**overrides: Any) -> GradingKey:
    """German 1-6 percentage key over 100 points."""
    defaults: dict[str, Any] = dict(
        id="key-1",
        name="Test Key",
        type=GradingKeyType.PERCENTAGE,
        total_points=100,
        grade_boundaries=make_boundaries(),
        rounding_rule=RoundingRule(RoundingType.NEAREST, 1),
        customizable=True,
    )
    defaults.update(overrides)
    return GradingKey(**defaults)


def make_exam(exam_id: str = "exam-1", **key_overrides: Any) -> Exam:
    return Exam(id=exam_id, title="Klassenarbeit 1", grading_key=make_key(**key_overrides))


def make_entry(
    candidate_id: str = "cand-1",
    total_points: float = 75,
    **overrides: Any,
) -> CorrectionEntry:
    defaults: dict[str, Any] = dict(
        id=f"corr-{candidate_id}",
        exam_id="exam-1",
        candidate_id=candidate_id,
        total_points=total_points,
        last_modified=T0,
    )
    defaults.update(overrides)
    return CorrectionEntry(**defaults)


def setup_exam(uow: FakeUnitOfWork, exam_id: str = "exam-1", **key_overrides: Any) -> Exam:
    """Pre-populate an exam so the use case doesn't raise NotFound."""
    return uow.exams.add(make_exam(exam_id, **key_overrides))


# ---------------------------------------------------------------------------
# pytest fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_uow() -> FakeUnitOfWork:
    return FakeUnitOfWork()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def key_engine(audit_log, clock) -> KeyVersioningEngine:
    return KeyVersioningEngine(audit_log, clock=clock, id_factory=SequentialIds("chg"))
