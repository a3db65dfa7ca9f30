# services/grading/bank.py

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Iterable, List

from errors import ConfigurationError, NotFoundError
from questions import Question, parse_question

log = logging.getLogger(__name__)

_BASE = Path(__file__).resolve().parent


def _bank_dir() -> Path:
    return Path(os.getenv("QUESTION_BANK_DIR", str(_BASE / "data" / "questions")))


def _iter_jsonl(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        for idx, line in enumerate(f, 1):
            s = line.strip()
            if not s or s.startswith("#") or s.startswith("//"):
                continue
            try:
                yield json.loads(s)
            except json.JSONDecodeError:
                log.warning("skipping malformed line %s:%d", p.name, idx)


def _iter_json(p: Path) -> Iterable[Dict[str, Any]]:
    with p.open("r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError:
            log.warning("skipping unreadable question file %s", p.name)
            return
    if isinstance(data, list):
        yield from data


class QuestionBank:
    _questions: List[Question] = []

    @classmethod
    def load(cls) -> List[Question]:
        if not cls._questions:
            cls.reload()
        return cls._questions

    @classmethod
    def reload(cls) -> int:
        questions: List[Question] = []
        seen: set = set()
        root = _bank_dir()

        if root.exists():
            for p in sorted(root.rglob("*")):
                if not p.is_file():
                    continue
                suf = p.suffix.lower()
                if suf == ".jsonl":
                    source = _iter_jsonl(p)
                elif suf == ".json":
                    source = _iter_json(p)
                else:
                    continue

                for raw in source:
                    try:
                        q = parse_question(raw)
                    except ConfigurationError as e:
                        # one bad authoring record must not take the bank down
                        log.warning("skipping invalid question in %s: %s", p.name, e)
                        continue
                    if q.id in seen:
                        log.warning("skipping duplicate question id %s in %s", q.id, p.name)
                        continue
                    seen.add(q.id)
                    questions.append(q)
        else:
            log.warning("question bank directory %s does not exist", root)

        cls._questions = questions
        log.info("question bank loaded: %d questions", len(questions))
        return len(cls._questions)


# Public API
def get_questions() -> List[Question]:
    return QuestionBank.load()


def questions_by_id() -> Dict[str, Question]:
    return {q.id: q for q in get_questions()}


def get_question(qid: str) -> Question:
    q = questions_by_id().get(qid)
    if q is None:
        raise NotFoundError(f"question {qid!r} not found")
    return q


def reload_bank() -> int:
    return QuestionBank.reload()
