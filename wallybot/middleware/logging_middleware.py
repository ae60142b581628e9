"""
Access log for the WallyBot HTTP surface.

One ``http_request`` event per request. The request id is bound into
structlog context vars so provider and controller logs for the same webhook
can be correlated, and echoed back in ``x-request-id``.
"""

import time
import uuid
from typing import Callable, Iterable, Optional

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.stdlib.get_logger("http")

REQUEST_ID_HEADER = "x-request-id"


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log every request with status and duration.

    Paths in ``quiet_paths`` (health checks) log at debug when they succeed.
    """

    def __init__(self, app, quiet_paths: Optional[Iterable[str]] = None):
        super().__init__(app)
        self.quiet_paths = set(quiet_paths if quiet_paths is not None else ("/health",))

    def _log_method(self, path: str, status_code: int) -> Callable[..., None]:
        if status_code >= 500:
            return logger.error
        if status_code >= 400:
            return logger.warning
        if path in self.quiet_paths:
            return logger.debug
        return logger.info

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or new_request_id()
        path = request.url.path

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id, method=request.method, path=path)

        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            self._log_method(path, status_code)(
                "http_request",
                status=status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
                client=request.client.host if request.client else None,
            )
