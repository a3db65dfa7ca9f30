# services/grading/errors.py
"""
Error taxonomy for grading, aggregation and the review workflow.

None of these subclass ValueError: pydantic only wraps ValueError/AssertionError
raised inside validators, so a ConfigurationError raised while building a
Question reaches the caller as-is.
"""

from __future__ import annotations


class GradingError(Exception):
    kind = "grading_error"


class ConfigurationError(GradingError):
    """Malformed question or answer-key definition. Not retryable."""

    kind = "configuration_error"


class NotFoundError(GradingError):
    """Dangling reference (question, attempt, review)."""

    kind = "not_found"


class InvalidAssessmentError(GradingError):
    """Nothing gradable, or inconsistent grade results for one attempt."""

    kind = "invalid_assessment"


class InvalidScoreError(GradingError):
    kind = "invalid_score"


class InvalidTransitionError(GradingError):
    """Workflow violation: wrong edge, wrong role or unmet precondition."""

    kind = "invalid_transition"


class StaleStateError(GradingError):
    """The entity changed since it was read. Re-fetch and retry once."""

    kind = "stale_state"
