"""Exams and the grading key currently attached to them"""
from sqlalchemy import Column, String, DateTime, Text
from sqlalchemy.sql import func
from ..database import Base


class ExamRecord(Base):
    """
    Exam row. Only the fields the grading engine needs are mapped.
    """
    __tablename__ = "exams"

    id = Column(String(36), primary_key=True)
    title = Column(String(500), nullable=False)
    grading_key = Column(Text, nullable=False)  # JSON string of the GradingKey

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
