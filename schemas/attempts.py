from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AttemptOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: int
    created_at: datetime | None
    student_id: str | None = None
    assessment_id: int | None = None
    parent_id: int | None = None
    version: int
    total_score: float
    max_score: float
    percentage: float
    pending_manual_grading: bool
    passed: bool | None = None
    duration_ms: int | None = None
    # keep items optional; usually excluded in list views
    items: list[Any] | None = None


class ManualGradeRequest(BaseModel):
    """Either a raw `earned_points`, or one chosen level per criterion of the question's rubric."""

    question_id: str
    earned_points: Optional[float] = Field(default=None, ge=0)
    rubric_levels: Optional[Dict[str, int]] = None
    feedback: Optional[str] = None

    @model_validator(mode="after")
    def _one_way_to_score(self):
        if (self.earned_points is None) == (self.rubric_levels is None):
            raise ValueError("send exactly one of earned_points or rubric_levels")
        return self
