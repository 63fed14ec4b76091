"""
Tubely FastAPI Application Entry Point

Wires the application together:
- Lifespan: logging setup, MongoDB connection and indexes, staging
  directory, media tool checks
- CORS and request logging middleware (X-Request-ID, X-Process-Time)
- The v1 API router under /api/v1
- Root, health and readiness endpoints

Run locally with:
    uvicorn tubely.main:app --reload --port 8091
"""

import logging
import os
import shutil
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import uvicorn

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tubely import __version__
from tubely.api.v1 import api_router
from tubely.config import get_settings
from tubely.core.database import close_db, get_db_client, init_db
from tubely.utils.logger import request_id_var, setup_logging


logger = logging.getLogger(__name__)

HTTP_ERROR_THRESHOLD = 400


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Startup: configure logging, connect MongoDB, prepare the staging directory.
    Shutdown: close MongoDB.

    Missing ffmpeg/ffprobe binaries are reported but do not block startup;
    uploads fail with a transcode or probe error until they are installed.
    """
    settings = get_settings()
    setup_logging(settings.log_level, json_logs=settings.log_json)

    logger.info("Tubely API starting: env=%s debug=%s", settings.app_env, settings.debug)

    try:
        await init_db(settings)
    except Exception as e:
        logger.exception("Failed to initialize MongoDB")
        raise RuntimeError(f"MongoDB initialization failed: {e}") from e

    os.makedirs(settings.assets_root, exist_ok=True)
    logger.info("Staging directory: %s", os.path.abspath(settings.assets_root))

    for tool in (settings.ffmpeg_path, settings.ffprobe_path):
        if shutil.which(tool) is None:
            logger.warning("Media tool not found on PATH: %s", tool)

    yield

    logger.info("Tubely API shutting down")
    try:
        await close_db()
    except Exception:
        logger.exception("Error closing MongoDB connection")


# =============================================================================
# FastAPI Application Instance
# =============================================================================

_settings = get_settings()

app = FastAPI(
    title="Tubely API",
    description=(
        "Video ingest service: uploads are remuxed for fast start, classified "
        "by orientation and stored in S3-compatible object storage, with "
        "time-limited signed URLs issued on read."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
    debug=_settings.debug,
)


# =============================================================================
# Middleware Configuration
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID", "X-Process-Time"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its status and duration.

    The request id is taken from an incoming X-Request-ID header when present
    and is attached to every log line emitted while handling the request.
    """
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    start_time = time.perf_counter()

    try:
        response = await call_next(request)
    except Exception:
        logger.exception("Request failed: %s %s", request.method, request.url.path)
        raise
    finally:
        request_id_var.reset(token)

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.INFO if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed: %s %s",
        request.method,
        request.url.path,
        extra={
            "request_id": request_id,
            "status_code": response.status_code,
            "process_time_ms": process_time_ms,
        },
    )

    return response


# =============================================================================
# API Router Registration
# =============================================================================

app.include_router(api_router, prefix="/api/v1")


# =============================================================================
# Core Endpoints
# =============================================================================


@app.get("/", response_class=JSONResponse, tags=["root"], summary="API Root")
async def root() -> dict[str, Any]:
    return {
        "name": "Tubely API",
        "version": __version__,
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc",
            "openapi": "/openapi.json",
        },
        "api_prefix": "/api/v1",
        "endpoints": {
            "videos": "/api/v1/videos",
        },
    }


@app.get("/health", response_class=JSONResponse, tags=["health"], summary="Health Check")
async def health_check() -> dict[str, Any]:
    """Liveness probe; does not touch dependencies."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
        "version": __version__,
        "service": "Tubely API",
    }


@app.get("/ready", response_class=JSONResponse, tags=["health"], summary="Readiness Check")
async def readiness_check() -> JSONResponse:
    """
    Readiness probe.

    Ready when MongoDB answers a ping. ffmpeg and ffprobe availability is
    reported alongside but does not affect the verdict.
    """
    settings = get_settings()
    checks: dict[str, bool] = {}

    try:
        checks["mongodb"] = await get_db_client().ping()
    except RuntimeError:
        checks["mongodb"] = False

    checks["ffmpeg"] = shutil.which(settings.ffmpeg_path) is not None
    checks["ffprobe"] = shutil.which(settings.ffprobe_path) is not None

    is_ready = checks["mongodb"]
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "ready": is_ready,
            "timestamp": datetime.now(UTC).isoformat(),
            "checks": checks,
        },
    )


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Generic 500 body for unhandled exceptions; details stay in the logs.

    Registered on ``Exception`` rather than status 500 so that deliberate
    ``HTTPException(500)`` responses keep their error code and message.
    """
    logger.error(
        "Internal server error on %s %s: %s",
        request.method,
        request.url.path,
        str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later.",
            "status_code": 500,
        },
    )


if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "tubely.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=settings.debug,
    )
