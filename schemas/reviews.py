from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from workflow import ReviewStatus


class ReviewCreate(BaseModel):
    title: str = Field(min_length=1)
    content: str = ""
    question_ids: List[str] = Field(default_factory=list)


class TransitionRequest(BaseModel):
    target: ReviewStatus
    note: Optional[str] = None
    expected_version: Optional[int] = None
