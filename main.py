import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import (
    ConfigurationError,
    GradingError,
    InvalidAssessmentError,
    InvalidScoreError,
    InvalidTransitionError,
    NotFoundError,
    StaleStateError,
)

# Routers
from routers.admin import router as admin_router
from routers.attempts import router as attempts_router
from routers.health import router as health_router
from routers.marking import router as marking_router
from routers.questions import router as questions_router
from routers.reviews import router as reviews_router

logger = logging.getLogger("assessment-grading")
logging.basicConfig(level=logging.INFO)

app = FastAPI(title="Assessment Grading API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*", "x-admin-token", "x-actor-id", "x-actor-role"],
)

_STATUS_BY_ERROR = {
    NotFoundError: 404,
    ConfigurationError: 422,
    InvalidAssessmentError: 422,
    InvalidScoreError: 422,
    InvalidTransitionError: 400,
    StaleStateError: 409,
}


@app.exception_handler(GradingError)
async def grading_error_handler(request: Request, exc: GradingError):
    status = next((s for cls, s in _STATUS_BY_ERROR.items() if isinstance(exc, cls)), 500)
    if status == 404:
        logger.warning("data integrity: %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"ok": False, "error": exc.kind, "detail": str(exc)},
    )


@app.get("/")
def health_root():
    return {"ok": True}


app.include_router(marking_router)  # /evaluate, /grade, /grade-batch
app.include_router(attempts_router)  # /attempts/...
app.include_router(reviews_router)  # /reviews/...
app.include_router(admin_router)  # /admin/...
app.include_router(health_router)  # /health/...
app.include_router(questions_router)  # /questions/...
