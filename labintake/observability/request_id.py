"""Request ID management for request correlation.

The request id lives in a ContextVar so every log line written while handling
a request (autosave patch, per-file upload, finalize) carries the same id. A
caller-supplied `X-Request-ID` is honoured when it is a plausible token.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

# Letters, digits and the separators tracing systems use; bounded length
_INCOMING_ID = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def generate_request_id() -> str:
    return str(uuid.uuid4())


def resolve_request_id(incoming: Optional[str]) -> str:
    """Use the caller's id if it is well formed, otherwise mint a new one.

    Example:
        >>> resolve_request_id("trace-abc-123")
        'trace-abc-123'
        >>> resolve_request_id("bad id\\n") != "bad id\\n"
        True
    """
    if incoming and _INCOMING_ID.match(incoming):
        return incoming
    return generate_request_id()


def get_request_id() -> str:
    """Current request id, or "no-request-id" outside a request."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)
