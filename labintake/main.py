"""Lab Intake Backend - Main FastAPI Application

This module creates and configures the FastAPI application, including:
- API routers (submissions, label requests, delivery templates)
- Middleware (request ID correlation, CORS)
- Exception handlers translating domain errors to HTTP responses
- Health and observability endpoints
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .config import get_settings
from .delivery_templates.router import router as delivery_templates_router
from .dependencies import get_storage
from .domain.submissions.errors import (
    CodeGenerationError,
    DraftConflictError,
    DraftNotEditableError,
    DraftNotFoundError,
    LabelRequestError,
    LabelRequestNotFoundError,
    RepositoryError,
    StorageError,
    SubmissionError,
)
from .domain.submissions.status import StateTransitionError
from .observability.logging_config import configure_logging
from .observability.middleware import RequestIDMiddleware
from .observability.router import router as observability_router
from .submissions.router import label_requests_router, router as submissions_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

# Most specific first; the first isinstance match wins
ERROR_STATUS = (
    (DraftNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (LabelRequestNotFoundError, status.HTTP_404_NOT_FOUND, "not_found"),
    (DraftNotEditableError, status.HTTP_409_CONFLICT, "not_editable"),
    (DraftConflictError, status.HTTP_409_CONFLICT, "conflict"),
    (CodeGenerationError, status.HTTP_503_SERVICE_UNAVAILABLE, "code_generation_failed"),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE, "storage_unavailable"),
    (RepositoryError, status.HTTP_503_SERVICE_UNAVAILABLE, "database_unavailable"),
    (LabelRequestError, status.HTTP_502_BAD_GATEWAY, "label_request_failed"),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("Lab Intake API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Debug mode: {settings.DEBUG}")

    if settings.S3_AUTO_CREATE_BUCKETS:
        storage = get_storage()
        for bucket in (settings.ATTACHMENT_BUCKET, settings.LABEL_BUCKET, settings.RESULTS_BUCKET):
            await storage.ensure_bucket(bucket)
        logger.info("Object storage buckets ready")

    yield

    logger.info("Lab Intake API shutting down...")


app = FastAPI(
    title="Lab Intake API",
    description="Patient and lab intake: resumable submission drafts, uploads, and finalize",
    version="0.1.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(SubmissionError)
async def submission_exception_handler(
    request: Request,
    exc: SubmissionError
) -> JSONResponse:
    """Translate draft lifecycle errors to HTTP responses.

    Transient failures (storage, database, code budget) are 503 so the client
    keeps its local state and retries.
    """
    status_code, error = status.HTTP_500_INTERNAL_SERVER_ERROR, "submission_error"
    for error_type, mapped_status, mapped_error in ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code, error = mapped_status, mapped_error
            break

    log = logger.error if status_code >= 500 else logger.info
    log(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": str(exc)},
    )


@app.exception_handler(StateTransitionError)
async def state_transition_exception_handler(
    request: Request,
    exc: StateTransitionError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "invalid_transition", "message": str(exc)},
    )


@app.exception_handler(PermissionError)
async def permission_exception_handler(
    request: Request,
    exc: PermissionError
) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": "forbidden", "message": str(exc)},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors with field-level details."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": jsonable_encoder(exc.errors(), exclude={"ctx", "input"}),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors without leaking details to the client."""
    logger.error(
        f"Database error on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Catch-all: log the details, return a generic 500."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}",
        exc_info=exc
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "message": "An unexpected error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(observability_router)
app.include_router(submissions_router)
app.include_router(label_requests_router)
app.include_router(delivery_templates_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    return {
        "name": "Lab Intake API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
