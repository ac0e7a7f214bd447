"""FastAPI application exposing the store intelligence engine."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from storeintel import __version__
from storeintel.core.config import get_settings
from storeintel.core.errors import StoreIntelligenceError
from storeintel.core.logging import get_logger, get_request_id, set_request_id, setup_logging
from storeintel.core.metrics import app_info, app_uptime_seconds
from storeintel.web.middleware import PrometheusMiddleware, RequestIdMiddleware
from storeintel.web.routers import healthcheck, intelligence, stock
from storeintel.web.schemas import ErrorEnvelope

log = get_logger("storeintel.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(level=settings.log_level, file_path=settings.log_file_path)
    app_info.labels(version=__version__, environment=settings.environment).set(1)
    log.info("app_started", extra={"version": __version__, "environment": settings.environment})
    yield
    log.info("app_stopped")


app = FastAPI(
    title="Store Intelligence API",
    version=__version__,
    description="Demand forecasts, reorder advice and anomaly detection for store inventory",
    lifespan=lifespan,
)

app.add_middleware(PrometheusMiddleware)
# Outermost: request_id is set before metrics and routing
app.add_middleware(RequestIdMiddleware)


@app.exception_handler(StoreIntelligenceError)
async def store_intelligence_error_handler(request: Request, exc: StoreIntelligenceError):
    """Map engine errors to the error envelope with their status code."""
    log.warning(
        "request_failed",
        extra={
            "path": str(request.url.path),
            "error": exc.code,
            "error_message": exc.message,
            "status_code": exc.status_code,
        },
    )
    body = ErrorEnvelope(error=exc.code, message=exc.message, retryable=exc.retryable)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    body = ErrorEnvelope(error="invalid_parameter", message=str(exc.errors()))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body.model_dump())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions with proper logging and response."""
    request_id = get_request_id() or set_request_id()

    log.error(
        "unhandled_exception",
        extra={
            "path": str(request.url.path),
            "method": request.method,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": "internal_server_error",
            "message": "Unexpected error",
            "retryable": False,
            "request_id": request_id,
        },
    )


app.include_router(healthcheck.router, tags=["Monitoring"])
app.include_router(intelligence.router)
app.include_router(stock.router)


@app.get("/health")
def health():
    """Basic liveness probe."""
    return {"status": "healthy"}


@app.get("/metrics")
def metrics():
    """Prometheus metrics endpoint."""
    app_uptime_seconds.set(time.time() - healthcheck.START_TIME)
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
