"""Request correlation and access logging middleware."""

import logging
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .request_id import resolve_request_id, set_request_id

logger = logging.getLogger(__name__)

# Scraped every few seconds; logged at DEBUG so they don't drown autosave traffic
PROBE_PATHS = frozenset({"/metrics", "/health", "/ready"})


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the context and echo it in `X-Request-ID`."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        set_request_id(request_id)

        path = request.url.path
        context = {
            "method": request.method,
            "path": path,
            "actor_id": request.headers.get("X-Actor-Id"),
        }

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                f"Request failed: {request.method} {path}",
                extra={**context, "duration_ms": _elapsed_ms(start_time)},
            )
            raise

        log = logger.debug if path in PROBE_PATHS else logger.info
        log(
            f"{request.method} {path} -> {response.status_code}",
            extra={**context, "status_code": response.status_code, "duration_ms": _elapsed_ms(start_time)},
        )

        response.headers["X-Request-ID"] = request_id
        return response


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)
