from __future__ import annotations

import functools
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from config import API_HOST, API_PORT, MAX_WORKERS, PARSING_CONFIG, REMOTE_MODEL, TIMEOUT
from image_processing import BoardingPassImageProcessor
from logging_utils import configure_logging, log_event, new_request_id
from models import BoardingPassRecord, QualityReport, UsageStatistics
from pipeline import FallbackOrchestrator, build_pipeline
from usage_stats import UsageStatisticsRecorder

# ------------------------------------------------------------------------------
# APP + LOGGING SETUP
# ------------------------------------------------------------------------------

configure_logging()
logger = logging.getLogger("boardingpass.api")

app = FastAPI(title="Boarding Pass Reader", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origin_regex=r"http://(localhost|127\.0\.0\.1):\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger.info(
    "Config: remote_model=%s, timeout=%ss, workers=%s",
    REMOTE_MODEL,
    TIMEOUT,
    MAX_WORKERS,
)


# ------------------------------------------------------------------------------
# RESPONSE MODELS
# ------------------------------------------------------------------------------

class AttemptSummary(BaseModel):
    strategy: str
    succeeded: bool
    confidence: float
    elapsed_ms: int
    attempts: int
    error: Optional[str] = None
    error_kind: Optional[str] = None


class ExtractionResponse(BaseModel):
    record: BoardingPassRecord
    strategy: str
    confidence: float
    quality: QualityReport
    attempts: List[AttemptSummary]
    processing_time_ms: int


# ------------------------------------------------------------------------------
# DEPENDENCIES
# ------------------------------------------------------------------------------

@functools.lru_cache(maxsize=1)
def get_pipeline() -> FallbackOrchestrator:
    return build_pipeline()


# ------------------------------------------------------------------------------
# REQUEST LOGGING MIDDLEWARE
# ------------------------------------------------------------------------------

@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    # the pipeline logs under the same id, echoed back as X-Request-ID
    rid = new_request_id()
    started = time.perf_counter()
    log_event(
        logger,
        "http_request_started",
        method=request.method,
        path=request.url.path,
        client_ip=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )

    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = rid
        return response
    finally:
        log_event(
            logger,
            "http_request_finished",
            method=request.method,
            path=request.url.path,
            status_code=status_code,
            duration_ms=int((time.perf_counter() - started) * 1000),
        )


# ------------------------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------------------------

@app.get("/health")
async def health() -> Dict[str, Any]:
    return {
        "status": "ok",
        "version": app.version,
        "strategies": [s.value for s in PARSING_CONFIG.active_strategies],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/extract", response_model=ExtractionResponse)
async def extract(
    file: UploadFile = File(...),
    offline: bool = Query(False, description="Skip strategies that need the network"),
    pipeline: FallbackOrchestrator = Depends(get_pipeline),
):
    log_event(
        logger,
        "file_processing_started",
        filename=file.filename,
        content_type=file.content_type,
    )

    file_bytes = await file.read()
    if not file_bytes:
        raise HTTPException(400, "Empty file")

    try:
        image = BoardingPassImageProcessor.decode_image(file_bytes)
    except ValueError as e:
        raise HTTPException(400, f"Unsupported or corrupt image: {e}")

    run = await pipeline.run(image, network_available=False if offline else None)

    if run.record is None or run.accepted is None:
        failure = run.failure.model_dump(mode="json") if run.failure else {"error": True}
        return JSONResponse(status_code=422, content=failure)

    attempts = [
        AttemptSummary(
            strategy=r.strategy.value,
            succeeded=r.succeeded,
            confidence=r.confidence,
            elapsed_ms=int(r.elapsed * 1000),
            attempts=r.attempts,
            error=r.error,
            error_kind=r.error_kind.value if r.error_kind else None,
        )
        for r in run.results
    ]

    log_event(
        logger,
        "http_request_pipeline_completed",
        filename=file.filename,
        strategy=run.accepted.strategy.value,
        quality=run.quality.value,
        duration_ms=int(run.elapsed * 1000),
    )

    return ExtractionResponse(
        record=run.record,
        strategy=run.accepted.strategy.value,
        confidence=run.accepted.confidence,
        quality=pipeline.validator.assess_quality(run.record),
        attempts=attempts,
        processing_time_ms=int(run.elapsed * 1000),
    )


@app.get("/stats", response_model=UsageStatistics)
async def stats(pipeline: FallbackOrchestrator = Depends(get_pipeline)):
    if isinstance(pipeline.stats, UsageStatisticsRecorder):
        return pipeline.stats.snapshot()
    return UsageStatistics()


def main() -> None:
    import uvicorn

    logger.info(
        "Starting boarding pass reader on %s:%s (strategies: %s)",
        API_HOST,
        API_PORT,
        ", ".join(s.value for s in PARSING_CONFIG.active_strategies),
    )
    uvicorn.run(
        app,
        host=API_HOST,
        port=API_PORT,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
