"""Trace ID middleware for request/response propagation."""

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from repoguard.logging_config import bind_request_context, clear_request_context

# Bounds of ErrorDetail.trace_id; caller ids outside them are replaced
TRACE_ID_MIN_LENGTH = 8
TRACE_ID_MAX_LENGTH = 128


def new_trace_id() -> str:
    return f"trc_{uuid.uuid4().hex[:16]}"


def accept_trace_id(value: str | None) -> str:
    """Use the caller's trace id when it fits the error envelope, else generate one."""
    if value and TRACE_ID_MIN_LENGTH <= len(value) <= TRACE_ID_MAX_LENGTH:
        return value
    return new_trace_id()


class TraceIdMiddleware(BaseHTTPMiddleware):
    """Extract X-Trace-Id from request or generate one, attach to response.

    The GitHub delivery id and event name are bound to the logging context
    alongside it so every line logged for a webhook can be correlated.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        trace_id = accept_trace_id(request.headers.get("x-trace-id"))
        request.state.trace_id = trace_id
        bind_request_context(
            trace_id,
            delivery_id=request.headers.get("x-github-delivery"),
            event_type=request.headers.get("x-github-event"),
        )
        try:
            response = await call_next(request)
        finally:
            clear_request_context()
        response.headers["X-Trace-Id"] = trace_id
        return response
