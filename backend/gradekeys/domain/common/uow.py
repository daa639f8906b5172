"""Transaction port shared by the grading use cases.

A correction save, or a key change together with its ChangeRecord and the
regraded corrections, either lands completely or not at all.
infra/db/uow.py provides the SQLAlchemy-backed version; tests use an
in-memory fake.
"""

from __future__ import annotations

import abc
from typing import TYPE_CHECKING, Self

if TYPE_CHECKING:
    from gradekeys.domain.grading.audit_log import AuditLog
    from gradekeys.domain.grading.ports import (
        CorrectionRepository,
        ExamRepository,
    )


class UnitOfWork(abc.ABC):
    """Groups exam and correction writes into one transaction.

    Usage in a use case::

        with uow:
            uow.exams.update_grading_key(exam_id, new_key)
            uow.commit()
        # leaving the block without commit() rolls back
    """

    exams: ExamRepository
    corrections: CorrectionRepository
    key_changes: AuditLog

    @abc.abstractmethod
    def __enter__(self) -> Self:
        ...

    @abc.abstractmethod
    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        ...

    @abc.abstractmethod
    def commit(self) -> None:
        ...

    @abc.abstractmethod
    def rollback(self) -> None:
        ...
