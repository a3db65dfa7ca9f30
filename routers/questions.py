from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Query

from bank import get_question, get_questions
from pool import select_questions
from questions import QuestionType
from schemas.questions import QuestionOut

router = APIRouter(tags=["questions"])


@router.get("/questions", response_model=List[QuestionOut])
def list_questions(
    topic: Optional[str] = None,
    type: Optional[QuestionType] = None,
    difficulty: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1, le=100),
    random: bool = Query(default=False, description="If true, shuffle before limiting"),
    seed: Optional[int] = Query(default=None, description="Makes a shuffled listing repeatable"),
):
    qs = list(get_questions())

    if topic:
        qs = [q for q in qs if q.metadata.topic == topic]
    if type:
        qs = [q for q in qs if q.type is type]
    if difficulty:
        qs = [q for q in qs if q.metadata.difficulty == difficulty]

    qs = select_questions(qs, seed=seed, shuffle=random, limit=limit)
    return [QuestionOut.from_question(q) for q in qs]


@router.get("/questions/{qid}", response_model=QuestionOut)
def get_question_detail(qid: str):
    # NotFoundError -> 404 via the app's exception handlers
    return QuestionOut.from_question(get_question(qid))
