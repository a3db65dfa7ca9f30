# services/grading/schemas/marking.py
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, Field

from aggregation import AssessmentResult, GradingOptions

# ---------- Evaluate ----------


class EvaluateRequest(BaseModel):
    expr: str


class EvaluateResponse(BaseModel):
    ok: bool
    value: Optional[float] = None
    feedback: Optional[str] = None


# ---------- Grade single ----------


class GradeRequest(BaseModel):
    question_id: str
    answer: Any = None
    student_id: Optional[str] = None
    attempt: int = Field(default=1, ge=1)


# ---------- Grade batch ----------


class GradeItem(BaseModel):
    question_id: str
    answer: Any = None


class GradeBatchRequest(BaseModel):
    items: List[GradeItem] = Field(min_length=1)
    # fixed order the student saw; defaults to the order of `items`
    question_ids: Optional[List[str]] = None
    student_id: Optional[str] = None
    assessment_id: Optional[int] = None
    attempt: int = Field(default=1, ge=1)
    passing_score_ratio: Optional[float] = Field(default=None, ge=0, le=1)
    late: bool = False
    options: Optional[GradingOptions] = None
    # Client may send it, but server computes its own duration otherwise.
    duration_ms: Optional[int] = None


class GradeBatchResponse(BaseModel):
    ok: bool
    attempt_id: Optional[int] = None
    duration_ms: Optional[int] = None
    result: AssessmentResult
