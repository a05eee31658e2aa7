"""Request ID middleware: correlation id and access log per request.

Learn: A client may send its own X-Request-ID so its logs and ours line
up. The header is untrusted input that ends up in every log line, so
only short ids made of safe characters are reused; anything else gets
a fresh UUID.

The id (plus method and path) is bound to structlog's contextvars for
the duration of the request. When the response is ready one
`request.completed` line is written with the status, the time taken
and, for authenticated calls, the user the auth gate resolved.
"""

import re
import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

REQUEST_ID_HEADER = "X-Request-ID"
_VALID_ID = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")


def choose_request_id(incoming: str | None) -> str:
    """Reuse the caller's id when it is safe to log, otherwise mint one."""
    if incoming and _VALID_ID.match(incoming):
        return incoming
    return str(uuid.uuid4())


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Bind a request id to the logs and echo it to the client."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = choose_request_id(request.headers.get(REQUEST_ID_HEADER))

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        started = time.monotonic()
        response: Response = await call_next(request)
        duration_ms = round((time.monotonic() - started) * 1000, 2)

        # Set by protect / is_logged_in when the route required a user
        user = getattr(request.state, "user", None)
        logger.info(
            "request.completed",
            status_code=response.status_code,
            duration_ms=duration_ms,
            user_id=str(user.id) if user is not None else None,
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
