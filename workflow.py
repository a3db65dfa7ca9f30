# services/grading/workflow.py
"""
Review workflow for teacher-authored assessments.

    draft -> submitted -> coordinator_review -> admin_review -> approved
                                   |                  |
                                   +---> rejected <---+
    rejected -> draft

`transition` is pure: it validates the move and returns the next snapshot with
`version + 1`. Making that stick against concurrent reviewers is the store's
job (see review_store.py).
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field

from errors import InvalidTransitionError


class ReviewStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    COORDINATOR_REVIEW = "coordinator_review"
    ADMIN_REVIEW = "admin_review"
    APPROVED = "approved"
    REJECTED = "rejected"


class Role(str, Enum):
    TEACHER = "teacher"
    COORDINATOR = "coordinator"
    ADMIN = "admin"
    SYSTEM = "system"


class Actor(BaseModel):
    id: str
    role: Role


class TransitionRecord(BaseModel):
    from_status: ReviewStatus
    to_status: ReviewStatus
    actor_id: str
    actor_role: Role
    at: datetime
    note: Optional[str] = None


class ReviewableAssessment(BaseModel):
    id: Optional[int] = None
    title: str
    content: str = ""
    question_ids: List[str] = Field(default_factory=list)
    author_id: str
    status: ReviewStatus = ReviewStatus.DRAFT
    version: int = 0
    coordinator_note: Optional[str] = None
    coordinator_approved_at: Optional[datetime] = None
    admin_note: Optional[str] = None
    admin_approved_at: Optional[datetime] = None
    history: List[TransitionRecord] = Field(default_factory=list)


_AUTHOR = "author"
_ANYONE = "anyone"

S = ReviewStatus
# (from, to) -> who may take that edge. Anything not listed is invalid.
TRANSITIONS: Dict[Tuple[ReviewStatus, ReviewStatus], FrozenSet[str]] = {
    (S.DRAFT, S.SUBMITTED): frozenset({_AUTHOR}),
    (S.SUBMITTED, S.COORDINATOR_REVIEW): frozenset({Role.COORDINATOR.value, Role.SYSTEM.value}),
    (S.COORDINATOR_REVIEW, S.ADMIN_REVIEW): frozenset({Role.COORDINATOR.value}),
    (S.COORDINATOR_REVIEW, S.REJECTED): frozenset({Role.COORDINATOR.value}),
    (S.ADMIN_REVIEW, S.APPROVED): frozenset({Role.ADMIN.value}),
    (S.ADMIN_REVIEW, S.REJECTED): frozenset({Role.ADMIN.value}),
    (S.REJECTED, S.DRAFT): frozenset({_ANYONE}),
}


def allowed_targets(status: ReviewStatus) -> List[ReviewStatus]:
    return [to for (frm, to) in TRANSITIONS if frm is status]


def _may_act(entity: ReviewableAssessment, actor: Actor, who: FrozenSet[str]) -> bool:
    if _ANYONE in who:
        return True
    if _AUTHOR in who and actor.id == entity.author_id:
        return True
    return actor.role.value in who


def _check_ready_for_review(entity: ReviewableAssessment) -> None:
    missing = []
    if not entity.title.strip():
        missing.append("title")
    if not entity.content.strip():
        missing.append("content")
    if not entity.question_ids:
        missing.append("question_ids")
    if missing:
        raise InvalidTransitionError(f"cannot submit: missing {', '.join(missing)}")


def transition(
    entity: ReviewableAssessment,
    target: ReviewStatus,
    actor: Actor,
    note: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ReviewableAssessment:
    try:
        target = ReviewStatus(target)
    except ValueError as e:
        raise InvalidTransitionError(f"unknown status {target!r}") from e
    who = TRANSITIONS.get((entity.status, target))
    if who is None:
        raise InvalidTransitionError(
            f"cannot move from {entity.status.value} to {target.value}"
        )
    if not _may_act(entity, actor, who):
        raise InvalidTransitionError(
            f"{actor.role.value} {actor.id!r} may not move {entity.status.value} to {target.value}"
        )
    if target is S.SUBMITTED:
        _check_ready_for_review(entity)

    now = now or datetime.now(UTC)
    update = {
        "status": target,
        "version": entity.version + 1,
        "history": [
            *entity.history,
            TransitionRecord(
                from_status=entity.status,
                to_status=target,
                actor_id=actor.id,
                actor_role=actor.role,
                at=now,
                note=note,
            ),
        ],
    }

    if entity.status is S.COORDINATOR_REVIEW:
        update["coordinator_note"] = note
        if target is S.ADMIN_REVIEW:
            update["coordinator_approved_at"] = now
    elif entity.status is S.ADMIN_REVIEW:
        update["admin_note"] = note
        if target is S.APPROVED:
            update["admin_approved_at"] = now
    elif target is S.DRAFT:
        # new review cycle on the same entity; the history keeps the old one
        update.update(
            coordinator_approved_at=None,
            admin_approved_at=None,
        )

    return entity.model_copy(update=update)


def ensure_assignable(entity: ReviewableAssessment) -> None:
    """Only approved assessments may be handed to students."""
    if entity.status is not S.APPROVED:
        raise InvalidTransitionError(
            f"assessment {entity.id} is {entity.status.value}; only approved assessments can be assigned"
        )
