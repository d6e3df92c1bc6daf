import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with the caller's correlation headers and the elapsed time."""

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id", "no-id")
        source = request.headers.get("x-source", "unknown")
        logger.info("[%s] %s %s from %s", request_id, request.method, request.url.path, source)
        start = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "[%s] %s %s -> %d in %.0fms",
            request_id, request.method, request.url.path, response.status_code,
            (time.perf_counter() - start) * 1000,
        )
        return response
