# services/grading/pool.py
"""Resolve question pools / randomized order into the fixed list an attempt is graded against."""

from __future__ import annotations

import random
from typing import Dict, List, Optional, Sequence

from errors import ConfigurationError
from questions import Question


def _draw(rng: random.Random, questions: List[Question], field: str, quotas: Dict[str, int]) -> List[Question]:
    picked: List[Question] = []
    for bucket, n in quotas.items():
        candidates = [q for q in questions if getattr(q.metadata, field) == bucket]
        if n < 0 or n > len(candidates):
            raise ConfigurationError(
                f"pool asks for {n} questions with {field}={bucket!r}, {len(candidates)} available"
            )
        picked.extend(rng.sample(candidates, n))
    return picked


def select_questions(
    questions: Sequence[Question],
    seed: Optional[int] = None,
    shuffle: bool = False,
    limit: Optional[int] = None,
    per_difficulty: Optional[Dict[str, int]] = None,
    per_bloom_level: Optional[Dict[str, int]] = None,
) -> List[Question]:
    """
    Same inputs and seed -> same list. Without quotas, shuffle, or limit the
    input order is returned unchanged.
    """
    if per_difficulty and per_bloom_level:
        raise ConfigurationError("use either per_difficulty or per_bloom_level, not both")

    rng = random.Random(seed)
    qs = list(questions)

    if per_difficulty:
        qs = _draw(rng, qs, "difficulty", per_difficulty)
    elif per_bloom_level:
        qs = _draw(rng, qs, "bloom_level", per_bloom_level)

    if shuffle:
        rng.shuffle(qs)

    if limit is not None:
        if limit < 1:
            raise ConfigurationError("limit must be at least 1")
        qs = qs[:limit]

    return qs
