"""Append-only audit trail of grading key changes.

The log is an explicit port handed to KeyVersioningEngine, so each
engine (and each test) sees exactly the history it was given.
"""

from __future__ import annotations

import abc
import threading
from collections import defaultdict

from .models import ChangeRecord


class AuditLog(abc.ABC):
    """Store ChangeRecords per grading key id; records are never mutated."""

    @abc.abstractmethod
    def append(self, key_id: str, record: ChangeRecord) -> None:
        ...

    @abc.abstractmethod
    def get_history(self, key_id: str) -> tuple[ChangeRecord, ...]:
        """Return the records for *key_id* in append order."""
        ...


class InMemoryAuditLog(AuditLog):
    """Process-local audit log, safe for concurrent appenders."""

    def __init__(self) -> None:
        self._records: dict[str, list[ChangeRecord]] = defaultdict(list)
        self._lock = threading.Lock()

    def append(self, key_id: str, record: ChangeRecord) -> None:
        with self._lock:
            self._records[key_id].append(record)

    def get_history(self, key_id: str) -> tuple[ChangeRecord, ...]:
        with self._lock:
            return tuple(self._records.get(key_id, ()))


__all__ = ["AuditLog", "InMemoryAuditLog"]
