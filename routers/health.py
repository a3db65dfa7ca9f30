# services/grading/routers/health.py
import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from alembic.config import Config
from alembic.script import ScriptDirectory
import models  # noqa: F401
from db import Base, engine

router = APIRouter(prefix="/health", tags=["health"])
log = logging.getLogger(__name__)

_ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


@router.get("/db")
def health_db():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        log.error("database check failed: %s", e)
        raise HTTPException(status_code=500, detail=f"db_error: {type(e).__name__}: {e}")
    return {"ok": True, "dialect": engine.dialect.name}


def _code_heads() -> list[str]:
    cfg = Config(str(_ALEMBIC_INI))
    cfg.set_main_option("script_location", str(_ALEMBIC_INI.parent / "alembic"))
    return list(ScriptDirectory.from_config(cfg).get_heads())


def _db_state() -> tuple[str | None, list[str]]:
    """Current alembic revision (None if never migrated) and the service tables that are missing."""
    with engine.connect() as conn:
        tables = set(inspect(conn).get_table_names())
        version = None
        if "alembic_version" in tables:
            version = conn.execute(text("SELECT version_num FROM alembic_version")).scalar_one_or_none()
    missing = sorted(t for t in Base.metadata.tables if t not in tables)
    return version, missing


@router.get("/migrations")
def health_migrations():
    heads: list[str] = []
    try:
        heads = _code_heads()
    except Exception as e:
        log.warning("could not read alembic heads: %s", e)

    try:
        db_ver, missing = _db_state()
    except SQLAlchemyError as e:
        return {"ok": False, "error": f"db_connect_failed: {e}", "code_heads": heads, "db_version": None}

    synced = db_ver in heads if heads else False
    return {
        "ok": synced and not missing,
        "synced": synced,
        "db_version": db_ver,
        "code_heads": heads,
        "missing_tables": missing,
    }
