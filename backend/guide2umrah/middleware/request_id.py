"""
Guide2Umrah Backend: Request ID Middleware
============================================

What:  Assigns a short id to each request and returns it as X-Request-ID.
How:   Reuses the client's X-Request-ID when sent, otherwise generates one.
       The id lives in a ContextVar so exception handlers and loggers can read
       it without the request object.
Who:   Applied to every request via Starlette middleware.
When:  Before the logging middleware, so access log lines carry the id.

Where the id shows up:
    - the X-Request-ID response header
    - `request_id` in the JSON bodies of the exception handlers
    - the access log line of the request

The dashboard can send its own X-Request-ID with a call and quote it when a
user reports an error; the same id is then in the backend logs.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# ── Context Variable ──────────────────────────────────────────────────────
# Coroutine-local: concurrent requests on one thread each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that tags each request with an id for tracing.

    Behavior:
        1. Client sent a non-empty X-Request-ID header → use it
        2. Otherwise → first 8 hex chars of a fresh uuid4
        3. Store it in request_id_var and request.state.request_id
        4. Echo it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars are enough to correlate log lines
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        # ContextVar for loggers and exception handlers, request.state for routes
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
