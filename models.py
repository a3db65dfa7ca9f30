from __future__ import annotations

from datetime import UTC, datetime
from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from db import Base


def _now() -> datetime:
    return datetime.now(UTC)


class Attempt(Base):
    """One graded attempt. A re-grade inserts a new row pointing at its parent."""

    __tablename__ = "attempts"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now, index=True)
    student_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    assessment_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    # one re-grade per attempt: versions form a chain, never siblings
    parent_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("attempts.id"), nullable=True, unique=True
    )
    version: Mapped[int] = mapped_column(Integer, default=1)
    total_score: Mapped[float] = mapped_column(Float)
    max_score: Mapped[float] = mapped_column(Float)
    percentage: Mapped[float] = mapped_column(Float)
    passing_score_ratio: Mapped[float] = mapped_column(Float)
    pending_manual_grading: Mapped[bool] = mapped_column(Boolean, default=False)
    passed: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    late: Mapped[bool] = mapped_column(Boolean, default=False)
    options: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)  # GradingOptions used
    question_ids: Mapped[list] = mapped_column(JSON)  # fixed order the attempt was graded in
    items: Mapped[list] = mapped_column(JSON)  # serialized GradeResults
    duration_ms: Mapped[Optional[int]] = mapped_column(sa.Integer, nullable=True)


class ReviewRecord(Base):
    __tablename__ = "reviewable_assessments"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text, default="")
    question_ids: Mapped[list] = mapped_column(JSON, default=list)
    author_id: Mapped[str] = mapped_column(String(64), index=True)
    status: Mapped[str] = mapped_column(String(32), index=True)
    # compare-and-set counter; every transition bumps it
    version: Mapped[int] = mapped_column(Integer, default=0)
    coordinator_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    coordinator_approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    admin_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    transitions: Mapped[List["ReviewTransition"]] = relationship(
        back_populates="assessment", order_by="ReviewTransition.id"
    )


class ReviewTransition(Base):
    """Append-only audit trail of workflow moves."""

    __tablename__ = "review_transitions"
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    assessment_id: Mapped[int] = mapped_column(
        ForeignKey("reviewable_assessments.id"), index=True
    )
    from_status: Mapped[str] = mapped_column(String(32))
    to_status: Mapped[str] = mapped_column(String(32))
    actor_id: Mapped[str] = mapped_column(String(64))
    actor_role: Mapped[str] = mapped_column(String(32))
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_now)

    assessment: Mapped[ReviewRecord] = relationship(back_populates="transitions")
