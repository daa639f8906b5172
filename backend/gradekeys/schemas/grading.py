"""Schemas for grading keys and correction payloads stored as JSON"""
from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..domain.grading.models import (
    AssignedSupportTip,
    CommentLevel,
    CorrectionComment,
    GradeBoundary,
    GradingKey,
    GradingKeyType,
    RoundingRule,
    RoundingType,
    TaskScore,
)


# ================= Grading Key Schemas =================

class RoundingRuleSchema(BaseModel):
    """Rounding rule; unknown types are kept verbatim"""
    type: str = RoundingType.NEAREST.value
    decimal_places: int = Field(default=1, ge=0)

    @classmethod
    def from_domain(cls, rule: RoundingRule) -> "RoundingRuleSchema":
        rule_type = rule.type.value if isinstance(rule.type, RoundingType) else str(rule.type)
        return cls(type=rule_type, decimal_places=rule.decimal_places)

    def to_domain(self) -> RoundingRule:
        try:
            rule_type: Union[RoundingType, str] = RoundingType(self.type)
        except ValueError:
            rule_type = self.type
        return RoundingRule(type=rule_type, decimal_places=self.decimal_places)


class GradeBoundarySchema(BaseModel):
    """One grade's range"""
    model_config = ConfigDict(from_attributes=True)

    grade: Union[int, str]
    display_value: str
    min_percentage: Optional[float] = None
    max_percentage: Optional[float] = None
    min_points: Optional[float] = None
    max_points: Optional[float] = None

    def to_domain(self) -> GradeBoundary:
        return GradeBoundary(**self.model_dump())


class GradingKeySchema(BaseModel):
    """Full grading key snapshot"""
    id: str
    name: str
    type: GradingKeyType
    total_points: float = Field(gt=0)
    grade_boundaries: List[GradeBoundarySchema]
    rounding_rule: RoundingRuleSchema = Field(default_factory=RoundingRuleSchema)
    error_points_to_grade: bool = False
    customizable: bool = False
    modified_after_correction: bool = False
    preset_id: Optional[str] = None

    @classmethod
    def from_domain(cls, key: GradingKey) -> "GradingKeySchema":
        return cls(
            id=key.id,
            name=key.name,
            type=key.type,
            total_points=key.total_points,
            grade_boundaries=[
                GradeBoundarySchema.model_validate(b) for b in key.grade_boundaries
            ],
            rounding_rule=RoundingRuleSchema.from_domain(key.rounding_rule),
            error_points_to_grade=key.error_points_to_grade,
            customizable=key.customizable,
            modified_after_correction=key.modified_after_correction,
            preset_id=key.preset_id,
        )

    def to_domain(self) -> GradingKey:
        return GradingKey(
            id=self.id,
            name=self.name,
            type=self.type,
            total_points=self.total_points,
            grade_boundaries=tuple(b.to_domain() for b in self.grade_boundaries),
            rounding_rule=self.rounding_rule.to_domain(),
            error_points_to_grade=self.error_points_to_grade,
            customizable=self.customizable,
            modified_after_correction=self.modified_after_correction,
            preset_id=self.preset_id,
        )


# ================= Correction Schemas =================

class TaskScoreSchema(BaseModel):
    """Points for one task"""
    model_config = ConfigDict(from_attributes=True)

    task_id: str
    points: float
    max_points: float
    timestamp: Optional[datetime] = None
    comment: Optional[str] = None

    def to_domain(self) -> TaskScore:
        return TaskScore(**self.model_dump())


class CorrectionCommentSchema(BaseModel):
    """Grader comment"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    text: str
    level: CommentLevel = CommentLevel.EXAM
    timestamp: datetime
    task_id: Optional[str] = None
    printable: bool = True
    available_after_return: bool = True

    def to_domain(self) -> CorrectionComment:
        return CorrectionComment(**self.model_dump())


class AssignedSupportTipSchema(BaseModel):
    """Support tip attached to a correction"""
    model_config = ConfigDict(from_attributes=True)

    support_tip_id: str
    assigned_at: datetime
    task_id: Optional[str] = None
    weight: Optional[float] = None
    notes: Optional[str] = None

    def to_domain(self) -> AssignedSupportTip:
        return AssignedSupportTip(**self.model_dump())
