import os
import tempfile

# Must run before anything imports db: the engine is built from DATABASE_URL at import.
_TMP = tempfile.mkdtemp(prefix="grading-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP, 'grading.db')}"
os.environ.setdefault("ADMIN_TOKEN", "secret")

import pytest  # noqa: E402

import models  # noqa: E402,F401
from db import Base, SessionLocal, engine  # noqa: E402

Base.metadata.create_all(bind=engine)


@pytest.fixture
def db_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def make_question():
    from questions import parse_question

    def _make(qtype, answer_key, points=1, qid="q", **extra):
        raw = {"id": qid, "type": qtype, "prompt": f"{qtype} prompt", "points": points}
        if answer_key is not None:
            raw["answer_key"] = answer_key
        raw.update(extra)
        return parse_question(raw)

    return _make
