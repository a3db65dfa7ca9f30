# services/grading/schemas/questions.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from questions import (
    DragDropKey,
    FillBlankKey,
    HotspotKey,
    LikertKey,
    MatchingKey,
    MultipleAnswerKey,
    MultipleChoiceKey,
    Option,
    Question,
    QuestionMetadata,
    SequenceKey,
)


class QuestionOut(BaseModel):
    """Student-facing view: what is needed to render the question, never the answer."""

    id: str
    type: str
    prompt: str
    points: float
    metadata: QuestionMetadata
    options: Optional[List[Option]] = None
    blanks: Optional[List[str]] = None
    statements: Optional[List[str]] = None
    items: Optional[List[str]] = None
    targets: Optional[List[str]] = None
    scale: Optional[List[int]] = None

    @classmethod
    def from_question(cls, q: Question) -> "QuestionOut":
        out = cls(
            id=q.id,
            type=q.type.value,
            prompt=q.prompt,
            points=q.points,
            metadata=q.metadata,
        )
        key = q.answer_key
        if isinstance(key, (MultipleChoiceKey, MultipleAnswerKey)):
            out.options = key.options
        elif isinstance(key, HotspotKey):
            out.options = [Option(id=r.id, text=r.label) for r in key.regions]
        elif isinstance(key, FillBlankKey):
            out.blanks = [b.id for b in key.blanks]
        elif isinstance(key, (MatchingKey, DragDropKey)):
            mapping = key.pairs if isinstance(key, MatchingKey) else key.placements
            out.items = sorted(mapping)
            out.targets = sorted(set(mapping.values()))
        elif isinstance(key, SequenceKey):
            # sorted so the listing does not give the order away
            out.items = sorted(key.order)
        elif isinstance(key, LikertKey):
            out.statements = key.statements
            out.scale = [key.scale_min, key.scale_max]
        return out
