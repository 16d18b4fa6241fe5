"""Request/response logging middleware."""

import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from shared.utils.logging import get_logger

logger = get_logger(__name__)


def get_client_ip(request: Request) -> str:
    """Extract client IP address from request."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs request start, completion and failure with timing.

    The correlation ID is attached by the logging processor, so this
    middleware must run inside ``CorrelationMiddleware``.
    """

    def __init__(
        self,
        app,
        enabled: bool = True,
        exclude_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self.enabled = enabled
        self.exclude_paths = exclude_paths or ["/health", "/metrics"]

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path
        if not self.enabled or any(path.endswith(excluded) for excluded in self.exclude_paths):
            return await call_next(request)

        method = request.method
        client_ip = get_client_ip(request)

        logger.info(
            "request_started",
            method=method,
            path=path,
            client_ip=client_ip,
            user_agent=request.headers.get("User-Agent", "")[:100],
        )

        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=method,
                path=path,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
                client_ip=client_ip,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        log_method = logger.info if response.status_code < 400 else logger.warning
        log_method(
            "request_completed",
            method=method,
            path=path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            client_ip=client_ip,
        )
        return response
