"""Request-id and request size middleware."""

from __future__ import annotations

from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from ..logging_utils import log_context


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response and to log records."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid4())
        request.state.request_id = request_id
        token = log_context.set({"request_id": request_id})
        try:
            response: Response = await call_next(request)
        finally:
            log_context.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response


class RequestSizeLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests exceeding max_bytes."""

    def __init__(self, app, max_bytes: int):
        super().__init__(app)
        self.max_bytes = max_bytes

    async def dispatch(self, request: Request, call_next):
        content_length = request.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_bytes:
            return Response(
                content='{"error":{"code":"E4130","message":"Request body too large"}}',
                status_code=413,
                media_type="application/json",
            )
        return await call_next(request)
