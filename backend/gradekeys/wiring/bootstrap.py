"""Dependency injection bootstrap — the single place that binds ports to adapters.

Application code never imports concrete implementations directly; it
depends on the abstractions returned by these factories.

Example usage::

    from gradekeys.wiring.bootstrap import get_record_correction_use_case, get_uow

    result = get_record_correction_use_case().execute(get_uow(), command)
"""

from __future__ import annotations

import logging

from gradekeys.config import Settings, settings
from gradekeys.database import SessionLocal
from gradekeys.domain.grading.audit_log import AuditLog
from gradekeys.domain.grading.key_engine import KeyVersioningEngine
from gradekeys.domain.grading.models import OutOfRangePolicy, RoundingRule, RoundingType
from gradekeys.infra.db.audit_log import SqlAuditLog
from gradekeys.infra.db.uow import SqlUnitOfWork
from gradekeys.use_cases.grading.modify_grading_key import ModifyGradingKeyUseCase
from gradekeys.use_cases.grading.record_correction import RecordCorrectionUseCase


def configure_logging(config: Settings = settings) -> None:
    logging.basicConfig(
        level=config.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def _policy(config: Settings) -> OutOfRangePolicy:
    return OutOfRangePolicy(config.out_of_range_policy)


# ── Unit of Work ─────────────────────────────────────────────────────────


def get_uow() -> SqlUnitOfWork:
    """Return a fresh SqlUnitOfWork bound to SessionLocal."""
    return SqlUnitOfWork(SessionLocal)


# ── Grading engine ───────────────────────────────────────────────────────

_audit_log: AuditLog | None = None
_key_engine: KeyVersioningEngine | None = None


def get_audit_log() -> AuditLog:
    """Return the process-wide AuditLog (built once, shared by reference)."""
    global _audit_log
    if _audit_log is None:
        _audit_log = SqlAuditLog(SessionLocal)
    return _audit_log


def get_key_engine(config: Settings = settings) -> KeyVersioningEngine:
    """Return a singleton KeyVersioningEngine wired to the shared AuditLog."""
    global _key_engine
    if _key_engine is None:
        _key_engine = KeyVersioningEngine(
            get_audit_log(),
            out_of_range=_policy(config),
            default_rounding=RoundingRule(
                RoundingType(config.default_rounding_type),
                config.default_rounding_decimal_places,
            ),
        )
    return _key_engine


# ── Use cases ────────────────────────────────────────────────────────────


def get_record_correction_use_case(config: Settings = settings) -> RecordCorrectionUseCase:
    return RecordCorrectionUseCase(out_of_range=_policy(config))


def get_modify_grading_key_use_case(config: Settings = settings) -> ModifyGradingKeyUseCase:
    return ModifyGradingKeyUseCase(get_key_engine(config), out_of_range=_policy(config))
