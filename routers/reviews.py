from __future__ import annotations

import os
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from db import get_db
from deps.auth import get_actor
from review_store import ReviewStore
from schemas.reviews import ReviewCreate, TransitionRequest
from workflow import Actor, ReviewableAssessment, Role, TransitionRecord

# If set, submitting an assessment immediately claims it for coordinator review.
REVIEW_AUTO_CLAIM = os.getenv("REVIEW_AUTO_CLAIM", "").lower() in ("1", "true", "yes")

router = APIRouter(prefix="/reviews", tags=["reviews"])


def get_store(db: Session = Depends(get_db)) -> ReviewStore:
    return ReviewStore(db, auto_claim=REVIEW_AUTO_CLAIM)


@router.post("", response_model=ReviewableAssessment, status_code=201)
def create_review(
    req: ReviewCreate,
    actor: Actor = Depends(get_actor),
    store: ReviewStore = Depends(get_store),
):
    if actor.role is not Role.TEACHER:
        raise HTTPException(status_code=403, detail="Only teachers author assessments.")
    return store.create_draft(
        req.title, actor.id, content=req.content, question_ids=req.question_ids
    )


@router.get("/{assessment_id}", response_model=ReviewableAssessment)
def read_review(assessment_id: int, store: ReviewStore = Depends(get_store)):
    return store.get(assessment_id)


@router.post("/{assessment_id}/transition", response_model=ReviewableAssessment)
def transition_review(
    assessment_id: int,
    req: TransitionRequest,
    actor: Actor = Depends(get_actor),
    store: ReviewStore = Depends(get_store),
):
    # InvalidTransitionError -> 400, StaleStateError -> 409 (see main.py)
    return store.transition_by_id(
        assessment_id, req.target, actor, note=req.note, expected_version=req.expected_version
    )


@router.get("/{assessment_id}/history", response_model=List[TransitionRecord])
def review_history(assessment_id: int, store: ReviewStore = Depends(get_store)):
    return store.history(assessment_id)
