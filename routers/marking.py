from __future__ import annotations

import logging
import os
import time
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aggregation import aggregate_results
from attempt_store import save_result
from bank import questions_by_id
from db import get_db
from errors import InvalidAssessmentError, NotFoundError
from grading import GradeResult, evaluate_expression, grade_all, grade_by_id
from notifications import notifier
from questions import Question, Submission
from review_store import ReviewStore
from schemas.marking import (
    EvaluateRequest,
    EvaluateResponse,
    GradeBatchRequest,
    GradeBatchResponse,
    GradeRequest,
)
from workflow import ensure_assignable

log = logging.getLogger(__name__)

# --- Grading policy ----------------------------------------------------------------
# Used when a batch request does not carry its own ratio.
DEFAULT_PASSING_SCORE_RATIO = float(os.getenv("PASSING_SCORE_RATIO", "0.6"))

router = APIRouter(tags=["marking"])


@router.post("/evaluate", response_model=EvaluateResponse)
def evaluate(req: EvaluateRequest):
    try:
        return {"ok": True, "value": evaluate_expression(req.expr)}
    except ValueError as e:
        return {"ok": False, "value": None, "feedback": str(e)}


@router.post("/grade", response_model=GradeResult)
def grade(req: GradeRequest):
    submission = Submission(
        question_id=req.question_id,
        student_id=req.student_id,
        attempt=req.attempt,
        answer=req.answer,
    )
    return grade_by_id(questions_by_id(), submission)


def _ordered_questions(qmap: dict, ids: List[str]) -> List[Question]:
    missing = [qid for qid in ids if qid not in qmap]
    if missing:
        raise NotFoundError(f"unknown question ids: {missing}")
    return [qmap[qid] for qid in ids]


def _assessment_order(approved: List[str], requested: Optional[List[str]]) -> List[str]:
    # a client order is only a permutation of what was approved
    if requested is None:
        return list(approved)
    if sorted(requested) != sorted(approved):
        raise InvalidAssessmentError(
            f"question_ids {requested} do not match the approved assessment {approved}"
        )
    return list(requested)


@router.post("/grade-batch", response_model=GradeBatchResponse)
def grade_batch(req: GradeBatchRequest, db: Session = Depends(get_db)):
    t0 = time.perf_counter()
    qmap = questions_by_id()

    order = req.question_ids
    if req.assessment_id is not None:
        assessment = ReviewStore(db).get(req.assessment_id)
        ensure_assignable(assessment)
        order = _assessment_order(assessment.question_ids, req.question_ids)
    if not order:
        order = [it.question_id for it in req.items]

    submissions = [
        Submission(
            question_id=it.question_id,
            student_id=req.student_id,
            attempt=req.attempt,
            answer=it.answer,
        )
        for it in req.items
    ]
    results = grade_all(qmap, submissions)

    ratio = (
        req.passing_score_ratio
        if req.passing_score_ratio is not None
        else DEFAULT_PASSING_SCORE_RATIO
    )
    result = aggregate_results(
        _ordered_questions(qmap, order), results, ratio, options=req.options, late=req.late
    )

    measured_ms = int(round((time.perf_counter() - t0) * 1000))
    duration_ms = req.duration_ms if req.duration_ms is not None else measured_ms

    attempt = save_result(
        db,
        result,
        order,
        student_id=req.student_id,
        assessment_id=req.assessment_id,
        options=req.options,
        duration_ms=duration_ms,
    )
    log.info(
        "attempt=%s student=%s score=%s/%s pending=%s",
        attempt.id,
        req.student_id,
        result.total_score,
        result.max_score,
        result.pending_manual_grading,
    )
    notifier.grade_completed(attempt.id, req.student_id, result.model_dump())

    return {"ok": True, "attempt_id": attempt.id, "duration_ms": duration_ms, "result": result}
