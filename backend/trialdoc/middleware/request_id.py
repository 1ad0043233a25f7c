"""
TrialDoc Backend - Request ID Middleware
==========================================

What:  Assigns a correlation id to every request and echoes it back.
How:   Uses the caller's X-Request-ID header when present, otherwise a short
       random id. The id is kept in a ContextVar so loggers and exception
       handlers can read it without access to the request object.
Who:   Outermost application middleware; runs before RequestLoggingMiddleware.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Coroutine-local: concurrent requests on one event loop each see their own id
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        # Left set after the call so the server-error handler can still read it
        request_id_var.set(rid)
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
