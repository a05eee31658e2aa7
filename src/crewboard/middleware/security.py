"""Security headers middleware.

Learn: Browsers talk to this API with the session cookie attached, so
responses are hardened in two layers.

Every response:
- X-Content-Type-Options / X-Frame-Options: JSON is never sniffed or framed
- Referrer-Policy: reset links in URLs don't leak via Referer
- Strict-Transport-Security: when the request arrived over TLS,
  directly or through a proxy that sets X-Forwarded-Proto

Everything except the health check also gets `Cache-Control: no-store`.
Those responses hold session tokens or per-user data, and no shared
cache or back button may replay them.
"""

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}
HSTS = "max-age=31536000; includeSubDomains"
CACHEABLE_PATHS = ("/api/v1/health",)


def is_tls(request: Request) -> bool:
    return (
        request.url.scheme == "https"
        or request.headers.get("x-forwarded-proto", "").split(",")[0].strip() == "https"
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security and caching headers to all responses."""

    async def dispatch(self, request: Request, call_next) -> Response:
        response: Response = await call_next(request)
        response.headers.update(BASE_HEADERS)
        if is_tls(request):
            response.headers["Strict-Transport-Security"] = HSTS
        if not request.url.path.startswith(CACHEABLE_PATHS):
            response.headers["Cache-Control"] = "no-store"
        return response
