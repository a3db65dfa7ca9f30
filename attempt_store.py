# services/grading/attempt_store.py
"""Maps AssessmentResults to `attempts` rows and back. A re-grade is a new row, never an update."""

from __future__ import annotations

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from aggregation import AssessmentResult, GradingOptions
from errors import NotFoundError, StaleStateError
from grading import GradeResult
from models import Attempt


def save_result(
    db: Session,
    result: AssessmentResult,
    question_ids: List[str],
    student_id: Optional[str] = None,
    assessment_id: Optional[int] = None,
    options: Optional[GradingOptions] = None,
    duration_ms: Optional[int] = None,
    parent: Optional[Attempt] = None,
) -> Attempt:
    attempt = Attempt(
        student_id=student_id,
        assessment_id=assessment_id,
        parent_id=parent.id if parent is not None else None,
        version=result.version,
        total_score=result.total_score,
        max_score=result.max_score,
        percentage=result.percentage,
        passing_score_ratio=result.passing_score_ratio,
        pending_manual_grading=result.pending_manual_grading,
        passed=result.passed,
        late=result.late,
        options=options.model_dump() if options is not None else None,
        question_ids=list(question_ids),
        items=[r.model_dump() for r in result.results],
        duration_ms=duration_ms,
    )
    if parent is not None:
        _ensure_latest(db, parent)
    db.add(attempt)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if parent is None:
            raise
        # another re-grade of `parent` committed between the check and the insert
        raise StaleStateError(f"attempt {parent.id} was re-graded concurrently; re-fetch and retry") from e
    db.refresh(attempt)
    return attempt


def _ensure_latest(db: Session, parent: Attempt) -> None:
    child = db.scalar(select(Attempt.id).where(Attempt.parent_id == parent.id))
    if child is not None:
        raise StaleStateError(
            f"attempt {parent.id} already has re-grade {child} (version {parent.version + 1}); "
            "grade the latest version"
        )


def get_attempt(db: Session, attempt_id: int) -> Attempt:
    attempt = db.get(Attempt, attempt_id)
    if attempt is None:
        raise NotFoundError(f"attempt {attempt_id} not found")
    return attempt


def load_result(attempt: Attempt) -> AssessmentResult:
    return AssessmentResult(
        results=[GradeResult.model_validate(item) for item in attempt.items],
        total_score=attempt.total_score,
        max_score=attempt.max_score,
        percentage=attempt.percentage,
        passing_score_ratio=attempt.passing_score_ratio,
        pending_manual_grading=attempt.pending_manual_grading,
        passed=attempt.passed,
        late=attempt.late,
        version=attempt.version,
    )


def load_options(attempt: Attempt) -> Optional[GradingOptions]:
    return GradingOptions.model_validate(attempt.options) if attempt.options else None
