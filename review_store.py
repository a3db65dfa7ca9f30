# services/grading/review_store.py
"""
Persistence for the review workflow.

Every transition is written with a compare-and-set on the row's `version`:

    UPDATE reviewable_assessments SET ... WHERE id = :id AND version = :expected

so when two reviewers act on the same snapshot exactly one UPDATE matches and
the other gets StaleStateError. No application-level locks are taken.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from errors import NotFoundError, StaleStateError
from models import ReviewRecord, ReviewTransition
from notifications import Notifier, notifier as default_notifier
from workflow import (
    Actor,
    ReviewableAssessment,
    ReviewStatus,
    Role,
    TransitionRecord,
    transition as apply_transition,
)

log = logging.getLogger(__name__)

SYSTEM_ACTOR = Actor(id="system", role=Role.SYSTEM)


def _to_domain(rec: ReviewRecord) -> ReviewableAssessment:
    return ReviewableAssessment(
        id=rec.id,
        title=rec.title,
        content=rec.content or "",
        question_ids=list(rec.question_ids or []),
        author_id=rec.author_id,
        status=ReviewStatus(rec.status),
        version=rec.version,
        coordinator_note=rec.coordinator_note,
        coordinator_approved_at=rec.coordinator_approved_at,
        admin_note=rec.admin_note,
        admin_approved_at=rec.admin_approved_at,
        history=[
            TransitionRecord(
                from_status=t.from_status,
                to_status=t.to_status,
                actor_id=t.actor_id,
                actor_role=t.actor_role,
                at=t.at,
                note=t.note,
            )
            for t in rec.transitions
        ],
    )


class ReviewStore:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None, auto_claim: bool = False):
        self.db = db
        self.notifier = notifier or default_notifier
        # when set, a submitted assessment is claimed for coordinator review right away
        self.auto_claim = auto_claim

    def create_draft(
        self, title: str, author_id: str, content: str = "", question_ids: Optional[List[str]] = None
    ) -> ReviewableAssessment:
        rec = ReviewRecord(
            title=title,
            content=content,
            question_ids=list(question_ids or []),
            author_id=author_id,
            status=ReviewStatus.DRAFT.value,
            version=0,
        )
        self.db.add(rec)
        self.db.commit()
        self.db.refresh(rec)
        return _to_domain(rec)

    def get(self, assessment_id: int) -> ReviewableAssessment:
        rec = self.db.get(ReviewRecord, assessment_id)
        if rec is None:
            raise NotFoundError(f"assessment {assessment_id} not found")
        self.db.refresh(rec)
        return _to_domain(rec)

    def transition(
        self,
        entity: ReviewableAssessment,
        target: ReviewStatus,
        actor: Actor,
        note: Optional[str] = None,
    ) -> ReviewableAssessment:
        if entity.id is None:
            raise NotFoundError("assessment has not been saved")

        nxt = apply_transition(entity, target, actor, note)
        record = nxt.history[-1]

        res = self.db.execute(
            update(ReviewRecord)
            .where(ReviewRecord.id == entity.id, ReviewRecord.version == entity.version)
            .values(
                status=nxt.status.value,
                version=nxt.version,
                coordinator_note=nxt.coordinator_note,
                coordinator_approved_at=nxt.coordinator_approved_at,
                admin_note=nxt.admin_note,
                admin_approved_at=nxt.admin_approved_at,
                updated_at=record.at,
            )
            .execution_options(synchronize_session=False)
        )
        if res.rowcount != 1:
            self.db.rollback()
            log.warning(
                "stale transition assessment=%s expected_version=%s target=%s actor=%s",
                entity.id,
                entity.version,
                nxt.status.value,
                actor.id,
            )
            raise StaleStateError(
                f"assessment {entity.id} changed since version {entity.version}; re-fetch and retry"
            )

        self.db.add(
            ReviewTransition(
                assessment_id=entity.id,
                from_status=record.from_status.value,
                to_status=record.to_status.value,
                actor_id=record.actor_id,
                actor_role=record.actor_role.value,
                note=record.note,
                at=record.at,
            )
        )
        self.db.commit()
        log.info(
            "assessment=%s %s -> %s by %s (v%s)",
            entity.id,
            record.from_status.value,
            record.to_status.value,
            actor.id,
            nxt.version,
        )
        self.notifier.transition_applied(
            entity.id, record.from_status.value, record.to_status.value, actor.id, note
        )

        if self.auto_claim and nxt.status is ReviewStatus.SUBMITTED:
            return self.transition(nxt, ReviewStatus.COORDINATOR_REVIEW, SYSTEM_ACTOR)
        return nxt

    def transition_by_id(
        self,
        assessment_id: int,
        target: ReviewStatus,
        actor: Actor,
        note: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> ReviewableAssessment:
        entity = self.get(assessment_id)
        if expected_version is not None and entity.version != expected_version:
            raise StaleStateError(
                f"assessment {assessment_id} is at version {entity.version}, not {expected_version}"
            )
        return self.transition(entity, target, actor, note)

    def history(self, assessment_id: int) -> List[TransitionRecord]:
        return self.get(assessment_id).history