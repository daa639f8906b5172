"""Append-only audit trail of grading key changes"""
from sqlalchemy import Column, Integer, String, DateTime, Text
from ..database import Base


class GradingKeyChangeRecord(Base):
    """
    One audited edit of a grading key. Rows are inserted, never updated.
    """
    __tablename__ = "grading_key_changes"

    pk = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), nullable=False, unique=True)
    key_id = Column(String(36), nullable=False, index=True)
    timestamp = Column(DateTime(timezone=True), nullable=False)
    previous_key = Column(Text, nullable=False)  # JSON snapshot
    new_key = Column(Text, nullable=False)  # JSON snapshot
    reason = Column(Text, nullable=True)
    changed_by = Column(String(255), nullable=True)
