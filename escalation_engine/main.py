import logging
import time
from collections import defaultdict, deque
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.requests import Request
from fastapi.responses import JSONResponse

from escalation_engine.config import settings
from escalation_engine.engine import EscalationEngine
from escalation_engine.logging_utils import (
    MaxBodySizeMiddleware,
    RequestIDMiddleware,
    configure_logging,
    get_request_id,
)
from escalation_engine.models.schemas import (
    DetectionResponse,
    ErrorResponse,
    EscalationAnalytics,
    EscalationCheck,
    EscalationCheckRequest,
    EscalationPrediction,
    HealthResponse,
    InterventionResponse,
    PeakUsagePrediction,
    Post,
    QueuedEscalation,
    UserNeedsPrediction,
    VersionResponse,
)

configure_logging()
logger = logging.getLogger(__name__)

engine: Optional[EscalationEngine] = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global engine
    logger.info("Lifespan startup: building escalation engine")
    try:
        engine = EscalationEngine.from_settings(settings)
        logger.info(
            "Escalation engine ready with %d rules (data file: %s)",
            len(engine.rule_set.rules),
            settings.DATA_FILE or "none",
        )
    except Exception as e:
        logger.error("Failed to build escalation engine: %s", e)
        engine = None
    yield
    logger.info("Lifespan shutdown complete")


app = FastAPI(
    title="Crisis Escalation Engine",
    description="Detect crisis posts, forecast escalation risk and summarize escalation handling",
    version=settings.ENGINE_VERSION,
    lifespan=lifespan,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_credentials=True, allow_methods=["*"], allow_headers=["*"])
app.add_middleware(MaxBodySizeMiddleware, max_bytes=settings.MAX_BODY_BYTES)
app.add_middleware(RequestIDMiddleware)

# Best-effort, single-process rate limiting
_rate_buckets: dict[str, deque] = defaultdict(deque)


def _rate_limit_exceeded(key: str) -> bool:
    now = time.time()
    window_start = now - settings.RATE_LIMIT_WINDOW_SEC
    bucket = _rate_buckets[key]
    while bucket and bucket[0] < window_start:
        bucket.popleft()
    if len(bucket) >= settings.RATE_LIMIT_REQUESTS:
        return True
    bucket.append(now)
    return False


@app.middleware("http")
async def rate_limit_middleware(request: Request, call_next):
    client_ip = request.client.host if request.client else "unknown"
    if _rate_limit_exceeded(f"ip:{client_ip}"):
        return JSONResponse(
            status_code=429,
            content=ErrorResponse(detail="Rate limit exceeded", code="HTTP_429", request_id=get_request_id()).model_dump(),
        )
    return await call_next(request)


def get_engine() -> EscalationEngine:
    """Dependency returning the engine built at startup."""
    if engine is None:
        raise HTTPException(status_code=503, detail="Escalation engine not initialized")
    return engine


@app.get("/", response_model=HealthResponse)
async def root():
    return HealthResponse(status="healthy", message="Crisis Escalation Engine API is running")


@app.get("/health/live", response_model=HealthResponse, tags=["health"])
async def liveness():
    return HealthResponse(status="alive", message="Service process responsive")


@app.get("/health/ready", response_model=HealthResponse, tags=["health"])
async def readiness(engine: EscalationEngine = Depends(get_engine)):
    return HealthResponse(status="ready", message=f"{len(engine.rule_set.rules)} escalation rules loaded")


@app.get("/health", response_model=HealthResponse, tags=["health"])
async def health(engine: EscalationEngine = Depends(get_engine)):
    return HealthResponse(status="healthy", message="Escalation engine is ready")


@app.get("/version", response_model=VersionResponse)
async def version():
    return VersionResponse(
        engine_version=settings.ENGINE_VERSION,
        rule_count=len(engine.rule_set.rules) if engine else 0,
        engine_ready=engine is not None,
    )


@app.post("/escalation/check", response_model=EscalationCheck, tags=["detection"])
async def check_escalation(request: EscalationCheckRequest, engine: EscalationEngine = Depends(get_engine)):
    """First-hit rule match for a piece of post content"""
    return engine.check_escalation(request.content, request.category)


@app.post("/escalation/detect", response_model=DetectionResponse, tags=["detection"])
async def detect_escalation(post: Post, engine: EscalationEngine = Depends(get_engine)):
    return DetectionResponse(detection=engine.detect(post), should_escalate=engine.should_escalate(post))


@app.post("/predict/escalation", response_model=EscalationPrediction, tags=["prediction"])
async def predict_escalation(post: Post, engine: EscalationEngine = Depends(get_engine)):
    return await engine.predict_escalation_likelihood(post)


@app.post("/predict/interventions", response_model=InterventionResponse, tags=["prediction"])
async def early_interventions(post: Post, engine: EscalationEngine = Depends(get_engine)):
    suggestions = await engine.get_early_intervention_suggestions(post)
    return InterventionResponse(post_id=post.id, suggestions=suggestions)


@app.get("/predict/users/{user_id}/needs", response_model=UserNeedsPrediction, tags=["prediction"])
async def user_needs(user_id: str, engine: EscalationEngine = Depends(get_engine)):
    return await engine.predict_user_needs(user_id)


@app.get("/predict/peak-usage", response_model=List[PeakUsagePrediction], tags=["prediction"])
async def peak_usage(engine: EscalationEngine = Depends(get_engine)):
    return await engine.predict_peak_usage()


@app.get("/analytics/escalations", response_model=EscalationAnalytics, tags=["analytics"])
async def escalation_analytics(engine: EscalationEngine = Depends(get_engine)):
    return await engine.get_escalation_analytics()


@app.get("/escalations/queue", response_model=List[QueuedEscalation], tags=["analytics"])
async def moderation_queue(engine: EscalationEngine = Depends(get_engine)):
    """Open escalations ordered by urgency"""
    return await engine.moderation_queue()


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            detail=exc.detail if isinstance(exc.detail, str) else str(exc.detail),
            code=f"HTTP_{exc.status_code}",
            request_id=get_request_id(),
        ).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            detail="Internal server error",
            code="INTERNAL_ERROR",
            request_id=get_request_id(),
        ).model_dump(),
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
