"""Tells collaborators (notification dispatch, dashboards) about finished grades and workflow moves.

Delivery itself is external; by default events are logged, and extra sinks can
be subscribed for fan-out.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

log = logging.getLogger(__name__)

Sink = Callable[[str, str, Dict[str, Any]], None]

TOPIC_GRADE_COMPLETED = "grading.attempt.completed"
TOPIC_REVIEW_TRANSITION = "review.transition"


class Notifier:
    def __init__(self) -> None:
        self._sinks: List[Sink] = []

    def subscribe(self, sink: Sink) -> None:
        self._sinks.append(sink)

    def unsubscribe(self, sink: Sink) -> None:
        self._sinks.remove(sink)

    def publish(self, topic: str, key: str, value: Dict[str, Any]) -> None:
        log.info("PUBLISH topic=%s key=%s value=%s", topic, key, value)
        for sink in list(self._sinks):
            sink(topic, key, value)

    def grade_completed(self, attempt_id: int, student_id: str | None, result: Dict[str, Any]) -> None:
        self.publish(
            TOPIC_GRADE_COMPLETED,
            str(attempt_id),
            {
                "attempt_id": attempt_id,
                "student_id": student_id,
                "total_score": result["total_score"],
                "max_score": result["max_score"],
                "pending_manual_grading": result["pending_manual_grading"],
                "passed": result["passed"],
                "version": result["version"],
            },
        )

    def transition_applied(self, assessment_id: int, from_status: str, to_status: str, actor_id: str, note: str | None) -> None:
        self.publish(
            TOPIC_REVIEW_TRANSITION,
            str(assessment_id),
            {
                "assessment_id": assessment_id,
                "from": from_status,
                "to": to_status,
                "actor_id": actor_id,
                "note": note,
            },
        )


notifier = Notifier()
