"""FastAPI application entry point."""
import os

# Force UTC before any module caches timezone information
os.environ['TZ'] = 'UTC'

import time
import sys

if hasattr(time, "tzset"):
    time.tzset()

for stream in (sys.stdout, sys.stderr):
    if hasattr(stream, "reconfigure"):
        stream.reconfigure(encoding="utf-8", errors="backslashreplace")

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
import logging
from contextlib import asynccontextmanager

from survey_backend.config import get_settings
from survey_backend.logging_config import API_LOGGER_NAME, configure_logging
from survey_backend.version import APP_VERSION
from survey_backend.routers import health, surveys
from survey_backend.utils.exceptions import (
    GENERIC_ERROR_MESSAGE,
    CorruptDataError,
    NotFoundError,
    SchemaError,
    SurveyEngineError,
    TransientStoreError,
    ValidationError,
)

configure_logging()

logger = logging.getLogger(__name__)
api_logger = logging.getLogger(API_LOGGER_NAME)

settings = get_settings()


@asynccontextmanager
async def lifespan(app_instance: FastAPI):
    """Log startup configuration and shutdown."""
    logger.info("=" * 60)
    logger.info("Survey API Starting")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Database: {settings.database_url.split('@')[-1] if '@' in settings.database_url else 'SQLite'}")
    logger.info(
        f"Scoring: category cap={settings.category_score_cap}, "
        f"growth pass threshold={settings.growth_pass_threshold}"
    )
    logger.info("=" * 60)

    try:
        yield
    finally:
        from survey_backend.database import engine

        await engine.dispose()
        logger.info("Survey API Shutting Down... Goodbye!")


app = FastAPI(
    title="Survey API",
    description="Survey response storage and scoring",
    version=APP_VERSION,
    lifespan=lifespan,
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten pydantic errors into {field, message, type} entries."""
    logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")

    errors = [
        {
            "field": " -> ".join(str(part) for part in error.get("loc", [])[1:]) or "body",
            "message": error.get("msg", "Validation error"),
            "type": error.get("type", "unknown"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=422, content={"detail": "Request validation failed", "errors": errors})


@app.exception_handler(SurveyEngineError)
async def survey_engine_exception_handler(request: Request, exc: SurveyEngineError):
    """Map engine errors to status codes; only validation and not-found messages reach the caller."""
    if isinstance(exc, ValidationError):
        logger.info(f"Rejected request on {request.url.path}: {exc}")
        return JSONResponse(status_code=400, content={"detail": exc.user_message})

    if isinstance(exc, NotFoundError):
        logger.info(f"Not found on {request.url.path}: {exc}")
        return JSONResponse(status_code=404, content={"detail": exc.user_message})

    if isinstance(exc, TransientStoreError):
        logger.error(f"Store unavailable on {request.url.path}: {exc}")
        return JSONResponse(status_code=503, content={"detail": exc.user_message})

    if isinstance(exc, (SchemaError, CorruptDataError)):
        logger.error(f"Data error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    else:
        logger.error(f"Unhandled survey engine error on {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": GENERIC_ERROR_MESSAGE})


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Write one START and one COMPLETE/EXCEPTION line per request to the API log."""
    started = time.perf_counter()
    client_ip = request.client.host if request.client else "unknown"
    employee = request.headers.get("x-employee-id", "-")
    label = f"{request.method} {request.url.path}"

    query = f" ?{request.query_params}" if request.query_params else ""
    api_logger.info(f">> START | {label}{query} | employee={employee} | IP: {client_ip}")

    try:
        response = await call_next(request)
    except Exception as e:
        api_logger.error(
            f"<< EXCEPTION | {label} | Error: {str(e)[:100]} | Time: {time.perf_counter() - started:.3f}s"
        )
        raise

    elapsed = time.perf_counter() - started
    line = f"<< COMPLETE | {label} | Status: {response.status_code} | Time: {elapsed:.3f}s | employee={employee}"
    if response.status_code >= 400:
        api_logger.warning(line)
    else:
        api_logger.info(line)
    return response


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(health.router, tags=["health"])
app.include_router(surveys.router, prefix="/surveys", tags=["surveys"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Survey API",
        "version": APP_VERSION,
        "environment": settings.environment,
        "docs": "/docs",
    }
