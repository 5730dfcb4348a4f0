"""ASGI middleware for the lovepack API.

Three middlewares registered in order (outermost → innermost):
  1. CORSMiddleware     - handled by FastAPI directly (not here)
  2. RequestIdMiddleware - injects / forwards X-Request-ID; stores in ContextVar
  3. SecurityHeadersMiddleware - adds security response headers

The ContextVar `_request_id_var` is the single source of truth for the
current request ID. The logging layer reads it so that every log line
emitted while a packaging job runs carries the ID of the request that
triggered it.
"""

import uuid
from contextvars import ContextVar
from typing import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# ---------------------------------------------------------------------------
# ContextVar - shared across middleware and route handlers within one request
# ---------------------------------------------------------------------------

_request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Return the current request's ID, or an empty string outside a request."""
    return _request_id_var.get()


# ---------------------------------------------------------------------------
# RequestIdMiddleware
# ---------------------------------------------------------------------------


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Read or generate X-Request-ID and make it available for the request lifetime.

    - If the client sends X-Request-ID, that value is reused.
    - If absent, a fresh UUID4 is generated.
    - The ID is always echoed back in the response header.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())

        token = _request_id_var.set(request_id)
        try:
            response = await call_next(request)
        finally:
            _request_id_var.reset(token)

        response.headers["X-Request-ID"] = request_id
        return response


# ---------------------------------------------------------------------------
# SecurityHeadersMiddleware
# ---------------------------------------------------------------------------


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach security-related headers to every outgoing response.

    X-Frame-Options is SAMEORIGIN rather than DENY: the editor previews
    compiled games in an iframe served from the same origin.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "SAMEORIGIN"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "0"
        return response
