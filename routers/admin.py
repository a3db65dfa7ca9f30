from __future__ import annotations

from fastapi import APIRouter, Depends

from bank import reload_bank
from deps.auth import require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.post("/reload")
def reload_questions():
    n = reload_bank()
    return {"ok": True, "count": n}
