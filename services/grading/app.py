"""FastAPI app for the LMS grading engine:
- /grading/evaluate: grade a single answer
- /grading/grade: grade an ordered quiz attempt
- /grading/compose: compose a submission score (late penalty, peer blending)
- /placement/assign: assign a placement level from a graded breakdown
- /streaks/...: daily streak updates (see services.streaks.routes)
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, field_validator

from packages.common.config import get_settings
from packages.common.errors import (
    AttemptLimitError,
    ConfigurationError,
    GradingError,
    InvalidInputError,
    StateConflictError,
    SubmissionRejectedError,
)
from packages.common.logging import configure_logging
from packages.common.tracing import trace_middleware
from packages.schemas.grading import (
    EvaluationResult,
    GradingOutcome,
    LatePolicy,
    PeerReviewScore,
    PeerReviewSettings,
    SubmissionScore,
)
from packages.schemas.placement import PlacementBreakdown, PlacementOutcome
from services.streaks.routes import router as streaks_router
from .composer import compose
from .evaluator import evaluate, parse_question
from .grader import grade
from .placement import assign_level

s = get_settings()
log = configure_logging(s.LOG_LEVEL, s.SERVICE_NAME)

app = FastAPI(title="LMS Grading Service", version="1.0.0")
app.middleware("http")(trace_middleware)
app.include_router(streaks_router)

_STATUS = {
    ConfigurationError: 422,
    AttemptLimitError: 403,
    StateConflictError: 409,
    InvalidInputError: 400,
    SubmissionRejectedError: 400,
}


@app.exception_handler(GradingError)
async def _grading_error(request: Request, exc: GradingError) -> JSONResponse:
    status = next((code for cls, code in _STATUS.items() if isinstance(exc, cls)), 500)
    log.warning("request failed path=%s status=%s error=%s", request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"error": type(exc).__name__, "detail": str(exc)})


class EvaluateIn(BaseModel):
    question: Dict[str, Any]
    answer: Any = None


class GradeIn(BaseModel):
    questions: List[Dict[str, Any]]
    answers: List[Any] = []
    passing_score: Optional[float] = None


class ComposeIn(BaseModel):
    raw_auto_score: float
    manual_score: Optional[float] = None
    submitted_at: datetime
    due_date: datetime
    late_policy: Optional[LatePolicy] = None
    total_points: float
    passing_score: Optional[float] = None
    peer_review: Optional[PeerReviewScore] = None
    peer_settings: Optional[PeerReviewSettings] = None

    @field_validator("submitted_at", "due_date")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # naive timestamps are UTC so they compare with aware ones
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


class AssignIn(BaseModel):
    breakdown: PlacementBreakdown = PlacementBreakdown()
    percentage_score: float


@app.get("/healthz", tags=["infra"])
def healthz() -> dict[str, str]:
    return {"status": "ok", "service": s.SERVICE_NAME}


@app.get("/metrics", tags=["infra"])
def metrics() -> PlainTextResponse:
    return PlainTextResponse(generate_latest().decode("utf-8"), media_type=CONTENT_TYPE_LATEST)


@app.post("/grading/evaluate", response_model=EvaluationResult)
def evaluate_answer(body: EvaluateIn) -> EvaluationResult:
    return evaluate(parse_question(body.question), body.answer)


@app.post("/grading/grade", response_model=GradingOutcome)
def grade_attempt(body: GradeIn) -> GradingOutcome:
    """Grade answers against questions in order; missing answers count as unanswered."""
    questions = [parse_question(q) for q in body.questions]
    passing = s.DEFAULT_PASSING_SCORE if body.passing_score is None else body.passing_score
    return grade(questions, body.answers, passing)


@app.post("/grading/compose", response_model=SubmissionScore)
def compose_score(body: ComposeIn) -> SubmissionScore:
    """Compose a submission score; unset policies fall back to the configured defaults."""
    policy = body.late_policy or LatePolicy()
    return compose(
        raw_auto_score=body.raw_auto_score,
        manual_score=body.manual_score,
        submitted_at=body.submitted_at,
        due_date=body.due_date,
        late_policy=policy,
        total_points=body.total_points,
        passing_score=s.DEFAULT_PASSING_SCORE if body.passing_score is None else body.passing_score,
        peer_review=body.peer_review,
        peer_settings=body.peer_settings,
    )


@app.post("/placement/assign", response_model=PlacementOutcome)
def assign(body: AssignIn) -> PlacementOutcome:
    return assign_level(body.breakdown, body.percentage_score)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("services.grading.app:app", host="0.0.0.0", port=8000)
