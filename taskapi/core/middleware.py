import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from taskapi.core.logging import get_logger

logger = get_logger("taskapi.access")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Cross-Origin-Opener-Policy": "same-origin",
}


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Logs one line per request and sets baseline security headers."""

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return response
