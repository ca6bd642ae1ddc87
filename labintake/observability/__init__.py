"""Observability module.

Provides structured logging, request correlation, metrics, and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    attachment_uploads_total,
    code_collisions_total,
    draft_patches_total,
    drafts_created_total,
    finalizations_total,
    label_requests_total,
    upload_batch_duration_seconds,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id, resolve_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "attachment_uploads_total",
    "code_collisions_total",
    "draft_patches_total",
    "drafts_created_total",
    "finalizations_total",
    "label_requests_total",
    "upload_batch_duration_seconds",
    # Request ID
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "resolve_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
