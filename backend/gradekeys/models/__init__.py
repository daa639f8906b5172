"""SQLAlchemy models"""
from .exam import ExamRecord
from .correction_entry import CorrectionEntryRecord
from .grading_key_change import GradingKeyChangeRecord

__all__ = [
    "ExamRecord",
    "CorrectionEntryRecord",
    "GradingKeyChangeRecord",
]
