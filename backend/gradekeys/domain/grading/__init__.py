"""Grading domain — boundary resolution, key versioning, audit trail."""

from .audit_log import AuditLog, InMemoryAuditLog  # noqa: F401 – re-export for convenience
from .key_engine import KeyVersioningEngine  # noqa: F401
from .resolver import (  # noqa: F401
    apply_rounding,
    calculate_grade,
    calculate_percentage,
    points_to_next_grade,
)
