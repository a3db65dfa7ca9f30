# services/grading/questions.py
"""
Question model: a closed set of question types, each with its own answer-key
record. The key is a tagged union discriminated by `type`, so a question's key
shape is checked when the Question is built rather than when it is graded.
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from errors import ConfigurationError


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    MULTIPLE_ANSWER = "multiple-answer"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    NUMERIC = "numeric"
    ESSAY = "essay"
    FILL_BLANK = "fill-blank"
    MATCHING = "matching"
    SEQUENCE = "sequence"
    DRAG_DROP = "drag-drop"
    HOTSPOT = "hotspot"
    LIKERT = "likert"


# ---------- Answer keys ----------


class Option(BaseModel):
    id: str
    text: str = ""


class MultipleChoiceKey(BaseModel):
    type: Literal["multiple-choice"] = "multiple-choice"
    options: List[Option] = Field(min_length=2)
    correct_option_id: str

    @model_validator(mode="after")
    def _correct_is_an_option(self):
        if self.correct_option_id not in {o.id for o in self.options}:
            raise ConfigurationError(
                f"correct option {self.correct_option_id!r} is not one of the options"
            )
        return self


class MultipleAnswerKey(BaseModel):
    type: Literal["multiple-answer"] = "multiple-answer"
    options: List[Option] = Field(min_length=2)
    correct_option_ids: List[str] = Field(min_length=1)
    partial_credit: bool = False

    @model_validator(mode="after")
    def _correct_are_options(self):
        unknown = set(self.correct_option_ids) - {o.id for o in self.options}
        if unknown:
            raise ConfigurationError(f"correct options not among the options: {sorted(unknown)}")
        return self


class TrueFalseKey(BaseModel):
    type: Literal["true-false"] = "true-false"
    correct: bool


class NumericKey(BaseModel):
    """Either `expected` +/- `tolerance`, or an inclusive [min_value, max_value] range."""

    type: Literal["numeric"] = "numeric"
    expected: Optional[float] = None
    tolerance: float = Field(default=0.0, ge=0)
    min_value: Optional[float] = None
    max_value: Optional[float] = None
    unit: str = ""

    @model_validator(mode="after")
    def _expected_or_range(self):
        has_range = self.min_value is not None and self.max_value is not None
        if self.expected is None and not has_range:
            raise ConfigurationError("numeric key needs `expected` or both range bounds")
        if has_range and self.min_value > self.max_value:
            raise ConfigurationError("numeric range has min_value > max_value")
        return self


class ShortAnswerKey(BaseModel):
    type: Literal["short-answer"] = "short-answer"
    accepted: List[str] = Field(default_factory=list)
    patterns: List[str] = Field(default_factory=list)
    case_sensitive: bool = False

    @model_validator(mode="after")
    def _something_to_match(self):
        if not any(a.strip() for a in self.accepted) and not self.patterns:
            raise ConfigurationError("short-answer key needs accepted answers or patterns")
        for p in self.patterns:
            try:
                re.compile(p)
            except re.error as e:
                raise ConfigurationError(f"invalid answer pattern {p!r}: {e}") from e
        return self


class Blank(BaseModel):
    id: str
    accepted: List[str] = Field(min_length=1)
    case_sensitive: bool = False


class FillBlankKey(BaseModel):
    type: Literal["fill-blank"] = "fill-blank"
    blanks: List[Blank] = Field(min_length=1)
    partial_credit: bool = False

    @model_validator(mode="after")
    def _unique_blanks(self):
        ids = [b.id for b in self.blanks]
        if len(ids) != len(set(ids)):
            raise ConfigurationError("fill-blank key has duplicate blank ids")
        return self


class MatchingKey(BaseModel):
    type: Literal["matching"] = "matching"
    pairs: Dict[str, str] = Field(min_length=1)


class SequenceKey(BaseModel):
    type: Literal["sequence"] = "sequence"
    order: List[str] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_items(self):
        if len(self.order) != len(set(self.order)):
            raise ConfigurationError("sequence key has duplicate items")
        return self


class DragDropKey(BaseModel):
    type: Literal["drag-drop"] = "drag-drop"
    placements: Dict[str, str] = Field(min_length=1)  # item -> zone


class Region(BaseModel):
    id: str
    label: str = ""


class HotspotKey(BaseModel):
    type: Literal["hotspot"] = "hotspot"
    regions: List[Region] = Field(min_length=1)
    correct_region_ids: List[str] = Field(min_length=1)
    partial_credit: bool = False

    @model_validator(mode="after")
    def _correct_are_regions(self):
        unknown = set(self.correct_region_ids) - {r.id for r in self.regions}
        if unknown:
            raise ConfigurationError(f"correct regions not among the regions: {sorted(unknown)}")
        return self


class LikertKey(BaseModel):
    type: Literal["likert"] = "likert"
    statements: List[str] = Field(min_length=1)
    scale_min: int = 1
    scale_max: int = 5

    @model_validator(mode="after")
    def _scale(self):
        if self.scale_min >= self.scale_max:
            raise ConfigurationError("likert scale_min must be below scale_max")
        return self


class RubricLevel(BaseModel):
    level: int
    name: str = ""
    points: float = Field(ge=0)


class RubricCriterion(BaseModel):
    id: str
    name: str = ""
    weight: float = Field(default=1.0, gt=0)  # relative to the other criteria
    levels: List[RubricLevel] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_levels(self):
        nums = [lv.level for lv in self.levels]
        if len(nums) != len(set(nums)):
            raise ConfigurationError(f"rubric criterion {self.id!r} repeats a level")
        if max(lv.points for lv in self.levels) <= 0:
            raise ConfigurationError(f"rubric criterion {self.id!r} has no level worth points")
        return self

    @property
    def max_points(self) -> float:
        return max(lv.points for lv in self.levels)


class Rubric(BaseModel):
    criteria: List[RubricCriterion] = Field(min_length=1)

    @model_validator(mode="after")
    def _unique_criteria(self):
        ids = [c.id for c in self.criteria]
        if len(ids) != len(set(ids)):
            raise ConfigurationError("rubric has duplicate criterion ids")
        return self


class EssayKey(BaseModel):
    type: Literal["essay"] = "essay"
    min_words: Optional[int] = Field(default=None, ge=0)
    max_words: Optional[int] = Field(default=None, ge=1)
    rubric: Optional[Rubric] = None

    @model_validator(mode="after")
    def _word_range(self):
        if self.min_words is not None and self.max_words is not None and self.min_words > self.max_words:
            raise ConfigurationError("essay key has min_words > max_words")
        return self


AnswerKey = Annotated[
    Union[
        MultipleChoiceKey,
        MultipleAnswerKey,
        TrueFalseKey,
        NumericKey,
        ShortAnswerKey,
        FillBlankKey,
        MatchingKey,
        SequenceKey,
        DragDropKey,
        HotspotKey,
        LikertKey,
        EssayKey,
    ],
    Field(discriminator="type"),
]


# ---------- Question ----------


class QuestionMetadata(BaseModel):
    # informational only; the pool filters on these, grading never reads them
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    bloom_level: Optional[str] = None
    explanation: Optional[str] = None


class Question(BaseModel):
    id: str
    type: QuestionType
    prompt: str
    answer_key: Optional[AnswerKey] = None
    points: float = Field(default=1.0, ge=0)
    metadata: QuestionMetadata = Field(default_factory=QuestionMetadata)

    @model_validator(mode="before")
    @classmethod
    def _tag_answer_key(cls, data: Any) -> Any:
        # Bank files may omit the key's own `type`; it is the question's type.
        if isinstance(data, dict):
            key = data.get("answer_key")
            if isinstance(key, dict) and "type" not in key and data.get("type"):
                qtype = data["type"]
                data = {**data, "answer_key": {**key, "type": getattr(qtype, "value", qtype)}}
        return data

    @model_validator(mode="after")
    def _key_matches_type(self):
        if self.answer_key is not None and self.answer_key.type != self.type.value:
            raise ConfigurationError(
                f"question {self.id}: answer key is {self.answer_key.type!r} "
                f"but question type is {self.type.value!r}"
            )
        return self

    @property
    def auto_gradable(self) -> bool:
        return self.type is not QuestionType.ESSAY and self.answer_key is not None


def parse_question(raw: Dict[str, Any]) -> Question:
    """Build a Question from bank/API data; any shape problem is a ConfigurationError."""
    try:
        return Question.model_validate(raw)
    except ValidationError as e:
        qid = raw.get("id") if isinstance(raw, dict) else None
        raise ConfigurationError(f"invalid question {qid!r}: {e}") from e


# ---------- Submission ----------


class Submission(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    student_id: Optional[str] = None
    attempt: int = Field(default=1, ge=1)
    answer: Any = None
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
