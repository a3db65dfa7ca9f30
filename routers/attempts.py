# grading/routers/attempts.py

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aggregation import regrade
from attempt_store import get_attempt, load_options, load_result, save_result
from bank import questions_by_id
from db import get_db
from deps.auth import get_actor, require_admin
from errors import InvalidScoreError, NotFoundError
from grading import GradeResult, apply_manual_grade, apply_rubric_grade
from models import Attempt
from notifications import notifier
from questions import EssayKey, Question
from schemas.attempts import AttemptOut, ManualGradeRequest
from workflow import Actor, Role

router = APIRouter(prefix="/attempts", tags=["attempts"])

GRADER_ROLES = {Role.TEACHER, Role.COORDINATOR, Role.ADMIN}


@router.get("/recent-list", dependencies=[Depends(require_admin)])
def attempts_recent(limit: int = 20, db: Session = Depends(get_db)):
    limit = max(1, min(limit, 100))
    items = db.query(Attempt).order_by(Attempt.created_at.desc()).limit(limit).all()

    # Reuse schema; exclude potentially large JSON "items"
    rows = [AttemptOut.model_validate(a).model_dump(exclude={"items"}) for a in items]
    return {"ok": True, "items": rows, "count": len(rows)}


@router.get("/{attempt_id}", response_model=AttemptOut)
def read_attempt(attempt_id: int, db: Session = Depends(get_db)):
    return AttemptOut.model_validate(get_attempt(db, attempt_id))


def _score_by_hand(
    question: Question, result: GradeResult, req: ManualGradeRequest, actor: Actor
) -> GradeResult:
    if req.rubric_levels is None:
        return apply_manual_grade(
            question, result, req.earned_points, feedback=req.feedback, graded_by=actor.id
        )
    key = question.answer_key
    if not isinstance(key, EssayKey) or key.rubric is None:
        raise InvalidScoreError(f"question {question.id!r} has no rubric")
    return apply_rubric_grade(
        question, result, key.rubric, req.rubric_levels, feedback=req.feedback, graded_by=actor.id
    )


@router.post("/{attempt_id}/manual-grade", response_model=AttemptOut)
def manual_grade(
    attempt_id: int,
    req: ManualGradeRequest,
    actor: Actor = Depends(get_actor),
    db: Session = Depends(get_db),
):
    """Score one item by hand. The graded attempt stays as it was; a new version is stored."""
    if actor.role not in GRADER_ROLES:
        raise HTTPException(status_code=403, detail="Only teachers, coordinators or admins grade.")

    attempt = get_attempt(db, attempt_id)
    previous = load_result(attempt)

    qmap = questions_by_id()
    missing = [qid for qid in attempt.question_ids if qid not in qmap]
    if missing:
        raise NotFoundError(f"questions no longer in the bank: {missing}")
    questions = [qmap[qid] for qid in attempt.question_ids]

    if req.question_id not in attempt.question_ids:
        raise NotFoundError(f"question {req.question_id!r} is not part of attempt {attempt_id}")

    results = []
    for r in previous.results:
        if r.question_id == req.question_id:
            r = _score_by_hand(qmap[r.question_id], r, req, actor)
        results.append(r)

    options = load_options(attempt)
    result = regrade(previous, questions, results, options=options)
    new_attempt = save_result(
        db,
        result,
        attempt.question_ids,
        student_id=attempt.student_id,
        assessment_id=attempt.assessment_id,
        options=options,
        duration_ms=attempt.duration_ms,
        parent=attempt,
    )
    notifier.grade_completed(new_attempt.id, new_attempt.student_id, result.model_dump())
    return AttemptOut.model_validate(new_attempt)
