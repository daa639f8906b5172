"""Per-candidate correction results"""
from sqlalchemy import Column, String, Float, DateTime, Text, UniqueConstraint
from ..database import Base


class CorrectionEntryRecord(Base):
    """
    One row per (exam, candidate). Nested lists are stored as JSON text.
    """
    __tablename__ = "correction_entries"
    __table_args__ = (
        UniqueConstraint("exam_id", "candidate_id", name="uq_correction_exam_candidate"),
    )

    id = Column(String(36), primary_key=True)
    exam_id = Column(String(36), nullable=False, index=True)
    candidate_id = Column(String(36), nullable=False, index=True)

    task_scores = Column(Text, nullable=False, default="[]")  # JSON list
    total_points = Column(Float, nullable=False, default=0.0)
    total_grade = Column(Text, nullable=False)  # JSON scalar, keeps int vs str
    percentage_score = Column(Float, nullable=False, default=0.0)
    comments = Column(Text, nullable=False, default="[]")  # JSON list
    support_tips = Column(Text, nullable=False, default="[]")  # JSON list

    status = Column(String(20), nullable=False, default="in-progress")
    corrected_by = Column(String(255), nullable=True)
    corrected_at = Column(DateTime(timezone=True), nullable=True)
    last_modified = Column(DateTime(timezone=True), nullable=False)
