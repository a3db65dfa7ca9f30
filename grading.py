# services/grading/grading.py
"""
Grading engine: one Question + one Submission -> GradeResult.

Pure computation. Persistence and notification are the caller's job.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from pydantic import BaseModel
from sympy import nan, oo, postorder_traversal, zoo
from sympy.core.power import Pow
from sympy.parsing.sympy_parser import (
    convert_xor,
    implicit_multiplication_application,
    parse_expr,
    standard_transformations,
)

from errors import (
    ConfigurationError,
    InvalidAssessmentError,
    InvalidScoreError,
    NotFoundError,
)
from questions import (
    DragDropKey,
    EssayKey,
    FillBlankKey,
    HotspotKey,
    LikertKey,
    MatchingKey,
    MultipleAnswerKey,
    MultipleChoiceKey,
    NumericKey,
    Question,
    QuestionType,
    Rubric,
    SequenceKey,
    ShortAnswerKey,
    Submission,
    TrueFalseKey,
)

AUTO_GRADER = "auto"

# Float noise allowance at the numeric tolerance boundary (3.15 vs 3.14 +/- 0.01).
BOUNDARY_EPS = 1e-9

_WRONG_SHAPE_MSG = "Answer is not in the expected format for this question."
_MANUAL_MSG = "Requires manual grading."
_NO_KEY_MSG = "No answer key; requires manual grading."


class GradeResult(BaseModel):
    question_id: str
    earned_points: Optional[float] = None
    is_correct: Optional[bool] = None
    feedback: Optional[str] = None
    requires_manual_grading: bool = False
    graded_by: Optional[str] = None


# --- Numeric expression evaluation ---------------------------------------------

LEN_LIMIT = 100
_INVALID_CHARS_MSG = (
    "Only numeric expressions using digits, spaces, + - * / ^ . and parentheses are allowed."
)
_NON_FINITE_MSG = "Expression is not finite (e.g., division by zero)."
_TOO_COMPLEX_MSG = "Expression is too complex."
_ALLOWED_RE = re.compile(r"^[0-9+\-*/^().\s]{1,100}$")

TRANSFORMS = standard_transformations + (
    convert_xor,
    implicit_multiplication_application,
)

_MAX_OPS = 200
_MAX_INT_DIGITS = 200
_MAX_EXPONENT_ABS = 2000


def validate_expression_text(s: Any) -> Optional[str]:
    """Return a user-facing message if `s` is not an acceptable expression, else None."""
    if s is None or not isinstance(s, str) or not s.strip():
        return "Answer required."
    if len(s) > LEN_LIMIT:
        return f"Answer too long (> {LEN_LIMIT})."
    if _ALLOWED_RE.fullmatch(s) is None:
        return _INVALID_CHARS_MSG
    return None


def _to_float(sym: Any) -> float:
    try:
        return float(sym.evalf())
    except (TypeError, OverflowError):
        # complex infinity, nan or a value past float range
        return math.inf


def _check_complexity(sym: Any) -> None:
    """
    Runs on the unevaluated tree. Exponents are checked innermost first so a
    tower like 9^9^9 is rejected before anything big is computed.
    """
    if sym in (oo, -oo, zoo, nan):
        raise ValueError(_NON_FINITE_MSG)
    if getattr(sym, "is_Number", False):
        return
    if sym.count_ops() > _MAX_OPS:
        raise ValueError(_TOO_COMPLEX_MSG)
    for node in postorder_traversal(sym):
        if getattr(node, "is_Integer", False) and len(str(abs(int(node)))) > _MAX_INT_DIGITS:
            raise ValueError(_TOO_COMPLEX_MSG)
        if isinstance(node, Pow) and getattr(node.exp, "is_number", False):
            e = _to_float(node.exp)
            if not math.isfinite(e) or abs(e) > _MAX_EXPONENT_ABS:
                raise ValueError(_TOO_COMPLEX_MSG)


def evaluate_expression(expr: str) -> float:
    """Evaluate a plain arithmetic expression. Raises ValueError with a user-facing message."""
    msg = validate_expression_text(expr)
    if msg:
        raise ValueError(msg)
    try:
        sym = parse_expr(expr, transformations=TRANSFORMS, evaluate=False)
    except Exception as e:
        raise ValueError(_INVALID_CHARS_MSG) from e
    _check_complexity(sym)
    val = _to_float(sym)
    if not math.isfinite(val):
        raise ValueError(_NON_FINITE_MSG)
    return val


# --- Per-type rules ------------------------------------------------------------
# Each rule returns (fraction in [0, 1], feedback).

Outcome = Tuple[float, Optional[str]]


def _normalize_text(s: str, case_sensitive: bool) -> str:
    s = " ".join(s.split())
    return s if case_sensitive else s.casefold()


def _text_matches(answer: str, accepted: Iterable[str], case_sensitive: bool) -> bool:
    got = _normalize_text(answer, case_sensitive)
    return any(got == _normalize_text(a, case_sensitive) for a in accepted)


def _as_id_set(answer: Any) -> Optional[set]:
    if isinstance(answer, (list, tuple, set, frozenset)) and all(
        isinstance(a, str) for a in answer
    ):
        return set(answer)
    return None


def _set_overlap(correct: set, submitted: set, partial_credit: bool) -> Outcome:
    if submitted == correct:
        return 1.0, None
    if not partial_credit:
        return 0.0, None
    # Jaccard: wrong picks cost as much as missed ones
    return len(correct & submitted) / len(correct | submitted), None


def _pairwise(expected: Mapping[str, str], answer: Any) -> Outcome:
    if not isinstance(answer, Mapping):
        return 0.0, _WRONG_SHAPE_MSG
    hits = sum(1 for k, v in expected.items() if answer.get(k) == v)
    return hits / len(expected), None


def _grade_multiple_choice(key: MultipleChoiceKey, answer: Any) -> Outcome:
    if not isinstance(answer, str):
        return 0.0, _WRONG_SHAPE_MSG
    return (1.0 if answer == key.correct_option_id else 0.0), None


def _grade_multiple_answer(key: MultipleAnswerKey, answer: Any) -> Outcome:
    submitted = _as_id_set(answer)
    if submitted is None:
        return 0.0, _WRONG_SHAPE_MSG
    return _set_overlap(set(key.correct_option_ids), submitted, key.partial_credit)


def _grade_true_false(key: TrueFalseKey, answer: Any) -> Outcome:
    if isinstance(answer, str) and answer.strip().lower() in ("true", "false"):
        answer = answer.strip().lower() == "true"
    if not isinstance(answer, bool):
        return 0.0, _WRONG_SHAPE_MSG
    return (1.0 if answer is key.correct else 0.0), None


def _grade_numeric(key: NumericKey, answer: Any) -> Outcome:
    if isinstance(answer, bool):
        return 0.0, _WRONG_SHAPE_MSG
    if isinstance(answer, (int, float)):
        try:
            value = float(answer)
        except OverflowError:
            return 0.0, _NON_FINITE_MSG
        if not math.isfinite(value):
            return 0.0, _NON_FINITE_MSG
    else:
        try:
            value = evaluate_expression(answer)
        except ValueError as e:
            return 0.0, str(e)

    if key.expected is not None:
        ok = abs(value - key.expected) <= key.tolerance + BOUNDARY_EPS
    else:
        ok = key.min_value - BOUNDARY_EPS <= value <= key.max_value + BOUNDARY_EPS
    return (1.0 if ok else 0.0), None


def _grade_short_answer(key: ShortAnswerKey, answer: Any) -> Outcome:
    if not isinstance(answer, str):
        return 0.0, _WRONG_SHAPE_MSG
    if _text_matches(answer, key.accepted, key.case_sensitive):
        return 1.0, None
    flags = 0 if key.case_sensitive else re.IGNORECASE
    text = " ".join(answer.split())
    if any(re.fullmatch(p, text, flags) for p in key.patterns):
        return 1.0, None
    return 0.0, None


def _grade_fill_blank(key: FillBlankKey, answer: Any) -> Outcome:
    if not isinstance(answer, Mapping):
        return 0.0, _WRONG_SHAPE_MSG
    hits = 0
    for blank in key.blanks:
        got = answer.get(blank.id)
        if isinstance(got, str) and _text_matches(got, blank.accepted, blank.case_sensitive):
            hits += 1
    if hits == len(key.blanks):
        return 1.0, None
    if not key.partial_credit:
        return 0.0, None
    return hits / len(key.blanks), None


def _grade_sequence(key: SequenceKey, answer: Any) -> Outcome:
    if _as_id_set(answer) is None or isinstance(answer, (set, frozenset)):
        return 0.0, _WRONG_SHAPE_MSG
    answer = list(answer)
    hits = sum(1 for i, item in enumerate(key.order) if i < len(answer) and answer[i] == item)
    return hits / len(key.order), None


def _grade_hotspot(key: HotspotKey, answer: Any) -> Outcome:
    submitted = _as_id_set(answer)
    if submitted is None:
        return 0.0, _WRONG_SHAPE_MSG
    return _set_overlap(set(key.correct_region_ids), submitted, key.partial_credit)


def _grade_likert(key: LikertKey, answer: Any) -> Outcome:
    # Opinion scale: no right answer, full credit for a complete in-range response.
    if not isinstance(answer, Mapping):
        return 0.0, _WRONG_SHAPE_MSG
    for statement in key.statements:
        v = answer.get(statement)
        if isinstance(v, bool) or not isinstance(v, int):
            return 0.0, "Every statement needs a rating."
        if not key.scale_min <= v <= key.scale_max:
            return 0.0, f"Ratings must be between {key.scale_min} and {key.scale_max}."
    return 1.0, None


def _apply_rule(question: Question, answer: Any) -> Outcome:
    key = question.answer_key
    if key.type != question.type.value:
        raise ConfigurationError(
            f"question {question.id}: answer key {key.type!r} does not match type "
            f"{question.type.value!r}"
        )

    if isinstance(key, MultipleChoiceKey):
        return _grade_multiple_choice(key, answer)
    elif isinstance(key, MultipleAnswerKey):
        return _grade_multiple_answer(key, answer)
    elif isinstance(key, TrueFalseKey):
        return _grade_true_false(key, answer)
    elif isinstance(key, NumericKey):
        return _grade_numeric(key, answer)
    elif isinstance(key, ShortAnswerKey):
        return _grade_short_answer(key, answer)
    elif isinstance(key, FillBlankKey):
        return _grade_fill_blank(key, answer)
    elif isinstance(key, MatchingKey):
        return _pairwise(key.pairs, answer)
    elif isinstance(key, SequenceKey):
        return _grade_sequence(key, answer)
    elif isinstance(key, DragDropKey):
        return _pairwise(key.placements, answer)
    elif isinstance(key, HotspotKey):
        return _grade_hotspot(key, answer)
    elif isinstance(key, LikertKey):
        return _grade_likert(key, answer)
    elif isinstance(key, EssayKey):
        # unreachable: essays are routed to manual grading before dispatch
        raise ConfigurationError(f"question {question.id}: essay keys are not auto-gradable")
    raise ConfigurationError(f"question {question.id}: unsupported answer key {key!r}")


def _essay_feedback(key: Optional[EssayKey], answer: Any) -> str:
    # The score is left to a grader; word count is the one thing checked up front.
    if key is None or not isinstance(answer, str):
        return _MANUAL_MSG
    words = len(answer.split())
    if key.min_words is not None and words < key.min_words:
        return f"{_MANUAL_MSG} Word count ({words}) is below the minimum of {key.min_words}."
    if key.max_words is not None and words > key.max_words:
        return f"{_MANUAL_MSG} Word count ({words}) exceeds the limit of {key.max_words}."
    return f"{_MANUAL_MSG} Word count: {words}."


# --- Public API ----------------------------------------------------------------


def grade_submission(question: Optional[Question], submission: Submission) -> GradeResult:
    if question is None or question.id != submission.question_id:
        raise NotFoundError(f"question {submission.question_id!r} not found")

    if question.type is QuestionType.ESSAY:
        return GradeResult(
            question_id=question.id,
            requires_manual_grading=True,
            feedback=_essay_feedback(question.answer_key, submission.answer),
        )
    if question.answer_key is None:
        return GradeResult(question_id=question.id, requires_manual_grading=True, feedback=_NO_KEY_MSG)

    fraction, feedback = _apply_rule(question, submission.answer)
    fraction = min(max(fraction, 0.0), 1.0)
    return GradeResult(
        question_id=question.id,
        earned_points=question.points * fraction,
        is_correct=fraction == 1.0,
        feedback=feedback,
        graded_by=AUTO_GRADER,
    )


def grade_by_id(questions_by_id: Mapping[str, Question], submission: Submission) -> GradeResult:
    return grade_submission(questions_by_id.get(submission.question_id), submission)


def apply_manual_grade(
    question: Question,
    result: GradeResult,
    earned_points: float,
    feedback: Optional[str] = None,
    graded_by: Optional[str] = None,
) -> GradeResult:
    """Teacher scores a pending item (or overrides an automatic one)."""
    if result.question_id != question.id:
        raise NotFoundError(f"grade result for {result.question_id!r} is not for {question.id!r}")
    if not math.isfinite(earned_points) or not 0 <= earned_points <= question.points:
        raise InvalidScoreError(
            f"earned points {earned_points} outside [0, {question.points}] for {question.id}"
        )
    return GradeResult(
        question_id=question.id,
        earned_points=float(earned_points),
        is_correct=earned_points == question.points,
        feedback=feedback if feedback is not None else result.feedback,
        requires_manual_grading=False,
        graded_by=graded_by,
    )


def apply_rubric_grade(
    question: Question,
    result: GradeResult,
    rubric: Rubric,
    levels_by_criterion: Mapping[str, int],
    feedback: Optional[str] = None,
    graded_by: Optional[str] = None,
) -> GradeResult:
    """
    Score from one chosen level per rubric criterion. Each criterion counts by
    its weight: earned = points * sum(weight * level points) / sum(weight * best level points).
    """
    known = {c.id for c in rubric.criteria}
    extra = sorted(set(levels_by_criterion) - known)
    if extra:
        raise InvalidScoreError(f"unknown rubric criteria: {extra}")

    earned = best = 0.0
    lines = []
    for c in rubric.criteria:
        if c.id not in levels_by_criterion:
            raise InvalidScoreError(f"no level chosen for rubric criterion {c.id!r}")
        chosen = next((lv for lv in c.levels if lv.level == levels_by_criterion[c.id]), None)
        if chosen is None:
            raise InvalidScoreError(
                f"criterion {c.id!r} has no level {levels_by_criterion[c.id]}"
            )
        earned += c.weight * chosen.points
        best += c.weight * c.max_points
        label = chosen.name or chosen.level
        lines.append(f"{c.name or c.id}: {label} ({chosen.points:g}/{c.max_points:g})")

    points = min(question.points * earned / best, question.points)
    summary = "\n".join(lines)
    return apply_manual_grade(
        question,
        result,
        points,
        feedback=f"{feedback}\n{summary}" if feedback else summary,
        graded_by=graded_by,
    )


def grade_all(
    questions_by_id: Mapping[str, Question], submissions: Iterable[Submission]
) -> List[GradeResult]:
    """Grade one attempt's submissions; each question may be answered once."""
    seen: set = set()
    results: List[GradeResult] = []
    for s in submissions:
        if s.question_id in seen:
            raise InvalidAssessmentError(f"question {s.question_id!r} answered more than once")
        seen.add(s.question_id)
        results.append(grade_by_id(questions_by_id, s))
    return results
