# services/grading/aggregation.py
"""
Submission aggregator: per-question GradeResults -> one AssessmentResult.

Aggregation is a barrier, not a lock. Ungraded or manually-pending items make
the result provisional (`pending_manual_grading=True`, `passed=None`) instead
of blocking.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from errors import ConfigurationError, InvalidAssessmentError, NotFoundError
from grading import GradeResult
from questions import Question

PASS_EPS = 1e-9


class GradingOptions(BaseModel):
    late_penalty_percent: float = Field(default=0.0, ge=0, le=100)
    round_to_nearest: Optional[float] = Field(default=None, gt=0)


class AssessmentResult(BaseModel):
    results: List[GradeResult]
    total_score: float
    max_score: float
    percentage: float
    passing_score_ratio: float
    pending_manual_grading: bool
    passed: Optional[bool] = None
    late: bool = False
    version: int = 1
    finalized: bool = False


class ResultsSummary(BaseModel):
    count: int
    average_score: float = 0.0
    average_percentage: float = 0.0
    pass_rate: float = 0.0
    pending: int = 0


def _adjust_total(total: float, max_score: float, options: Optional[GradingOptions], late: bool) -> float:
    if options is not None:
        if late and options.late_penalty_percent:
            total *= 1 - options.late_penalty_percent / 100
        if options.round_to_nearest:
            total = round(total / options.round_to_nearest) * options.round_to_nearest
    return min(max(total, 0.0), max_score)


def aggregate_results(
    questions: Sequence[Question],
    grade_results: Iterable[GradeResult],
    passing_score_ratio: float,
    options: Optional[GradingOptions] = None,
    late: bool = False,
    version: int = 1,
) -> AssessmentResult:
    """
    `questions` must already be the fixed, ordered list the student saw
    (pool selection and shuffling happen before grading).
    """
    if not 0 <= passing_score_ratio <= 1:
        raise ConfigurationError(f"passing_score_ratio {passing_score_ratio} not in [0, 1]")

    by_question = {}
    for r in grade_results:
        if r.question_id in by_question:
            raise InvalidAssessmentError(f"more than one grade result for {r.question_id!r}")
        by_question[r.question_id] = r

    known = {q.id for q in questions}
    dangling = sorted(set(by_question) - known)
    if dangling:
        raise NotFoundError(f"grade results for questions not in this assessment: {dangling}")

    max_score = sum(q.points for q in questions)
    if max_score <= 0:
        raise InvalidAssessmentError("assessment has no gradable points")

    ordered: List[GradeResult] = []
    total = 0.0
    pending = False
    for q in questions:
        r = by_question.get(q.id)
        if r is None:
            # not graded yet: keep a placeholder so the result lines up with the questions
            r = GradeResult(question_id=q.id, requires_manual_grading=True, feedback="Not graded yet.")
        if r.earned_points is None:
            pending = True
        else:
            total += min(r.earned_points, q.points)
        ordered.append(r)

    total = _adjust_total(total, max_score, options, late)
    passed = None if pending else (total / max_score + PASS_EPS >= passing_score_ratio)

    return AssessmentResult(
        results=ordered,
        total_score=total,
        max_score=max_score,
        percentage=round(total / max_score * 100, 2),
        passing_score_ratio=passing_score_ratio,
        pending_manual_grading=pending,
        passed=passed,
        late=late,
        version=version,
    )


def regrade(
    previous: AssessmentResult,
    questions: Sequence[Question],
    grade_results: Iterable[GradeResult],
    options: Optional[GradingOptions] = None,
) -> AssessmentResult:
    """A re-grade never edits `previous`; it yields the next version."""
    return aggregate_results(
        questions,
        grade_results,
        previous.passing_score_ratio,
        options=options,
        late=previous.late,
        version=previous.version + 1,
    )


def finalize(result: AssessmentResult) -> AssessmentResult:
    if result.pending_manual_grading:
        raise InvalidAssessmentError("cannot finalize while items await manual grading")
    return result.model_copy(update={"finalized": True})


def summarize_results(results: Iterable[AssessmentResult]) -> ResultsSummary:
    results = list(results)
    done = [r for r in results if not r.pending_manual_grading]
    if not done:
        return ResultsSummary(count=len(results), pending=len(results))
    return ResultsSummary(
        count=len(results),
        average_score=sum(r.total_score for r in done) / len(done),
        average_percentage=sum(r.percentage for r in done) / len(done),
        pass_rate=sum(1 for r in done if r.passed) / len(done) * 100,
        pending=len(results) - len(done),
    )
