"""
Rate limiting middleware with in-memory per-client state.

Each client gets a fixed window that starts at its first request and resets
lazily on the first request after it elapses. A client that goes over the
limit is blocked for a fixed period; once the block expires it starts over
with a fresh window.

Webhook posts are keyed by the sender only once their Twilio signature
checks out; other requests are keyed by client IP. Paths in
``exclude_paths`` (``/health`` by default) are not limited at all, so load
balancer health checks never get blocked.
"""

import asyncio
import logging
import math
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple
from urllib.parse import parse_qs

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 900
DEFAULT_MAX_REQUESTS = 100
BLOCK_DURATION_SECONDS = 300
CLEANUP_INTERVAL_SECONDS = 300
LOG_EVERY_N_REQUESTS = 10

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
WHATSAPP_PREFIX = "whatsapp:"


class RateLimitExceeded(Exception):
    """Rate limit has been exceeded."""

    def __init__(
        self,
        limit: int,
        window_seconds: float,
        retry_after: int,
        message: str = "",
        error: str = "Rate limit exceeded",
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.retry_after = retry_after
        self.error = error
        self.message = message or f"Too many requests. Try again in {retry_after} seconds."
        super().__init__(f"Rate limit exceeded: {limit} requests per {window_seconds}s")

    def to_dict(self) -> Dict[str, object]:
        return {"error": self.error, "message": self.message, "retryAfter": self.retry_after}


@dataclass
class ClientRateState:
    client_id: str
    count: int
    window_start: float


@dataclass
class BlockInfo:
    client_id: str
    blocked_until: float


@dataclass(frozen=True)
class RateLimitStatus:
    """Quota left for an accepted request"""

    limit: int
    remaining: int
    reset_at: float
    count: int

    @property
    def reset_iso(self) -> str:
        reset = datetime.fromtimestamp(self.reset_at, tz=timezone.utc)
        return reset.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def headers(self) -> Dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_iso,
        }


class RateLimiter:
    """
    Per-client request counter with temporary blocking.

    State lives in two maps owned by this object, guarded by a lock so
    concurrent requests from one client are never double-counted.
    """

    def __init__(
        self,
        window_seconds: float = DEFAULT_WINDOW_SECONDS,
        max_requests: int = DEFAULT_MAX_REQUESTS,
        block_seconds: float = BLOCK_DURATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.window_seconds = window_seconds
        self.max_requests = max_requests
        self.block_seconds = block_seconds
        self.clock = clock
        self._clients: Dict[str, ClientRateState] = {}
        self._blocked: Dict[str, BlockInfo] = {}
        self._lock = threading.Lock()

    def check(self, client_id: str) -> RateLimitStatus:
        """
        Count one request for ``client_id``.

        Returns:
            The remaining quota if the request is allowed

        Raises:
            RateLimitExceeded: the client is blocked, or this request took it over the limit
        """
        with self._lock:
            now = self.clock()

            block = self._blocked.get(client_id)
            if block is not None:
                if now < block.blocked_until:
                    retry_after = math.ceil(block.blocked_until - now)
                    raise RateLimitExceeded(
                        self.max_requests,
                        self.window_seconds,
                        retry_after,
                        message=f"You are temporarily blocked. Try again in {retry_after} seconds.",
                        error="Too many requests",
                    )
                del self._blocked[client_id]
                self._clients.pop(client_id, None)

            state = self._clients.get(client_id)
            if state is None or now - state.window_start > self.window_seconds:
                state = ClientRateState(client_id=client_id, count=0, window_start=now)
                self._clients[client_id] = state

            state.count += 1

            if state.count > self.max_requests:
                self._blocked[client_id] = BlockInfo(client_id=client_id, blocked_until=now + self.block_seconds)
                logger.warning(
                    "Rate limit exceeded for %s: %d requests in window", client_id, state.count
                )
                retry_after = math.ceil(self.block_seconds)
                raise RateLimitExceeded(
                    self.max_requests,
                    self.window_seconds,
                    retry_after,
                    message=f"Too many requests. You are now blocked for {retry_after} seconds.",
                )

            if state.count % LOG_EVERY_N_REQUESTS == 0:
                logger.info("Client %s has made %d requests", client_id, state.count)

            return RateLimitStatus(
                limit=self.max_requests,
                remaining=max(0, self.max_requests - state.count),
                reset_at=state.window_start + self.window_seconds,
                count=state.count,
            )

    def is_blocked(self, client_id: str) -> bool:
        with self._lock:
            block = self._blocked.get(client_id)
            return block is not None and self.clock() < block.blocked_until

    def cleanup(self) -> Tuple[int, int]:
        """Drop clients idle for two windows and expired blocks."""
        with self._lock:
            now = self.clock()
            stale = [
                client_id
                for client_id, state in self._clients.items()
                if now - state.window_start > self.window_seconds * 2
            ]
            for client_id in stale:
                del self._clients[client_id]

            expired = [
                client_id
                for client_id, block in self._blocked.items()
                if now > block.blocked_until
            ]
            for client_id in expired:
                del self._blocked[client_id]

        logger.debug("Rate limit cleanup: removed %d clients, %d blocks", len(stale), len(expired))
        return len(stale), len(expired)

    async def run_cleanup(self, interval_seconds: float = CLEANUP_INTERVAL_SECONDS) -> None:
        """Sweep forever; run as a background task and cancel on shutdown."""
        while True:
            await asyncio.sleep(interval_seconds)
            self.cleanup()

    def reset(self) -> None:
        with self._lock:
            self._clients.clear()
            self._blocked.clear()

    def stats(self) -> Dict[str, object]:
        with self._lock:
            now = self.clock()
            blocked = sum(1 for block in self._blocked.values() if now < block.blocked_until)
            return {
                "active_clients": len(self._clients),
                "blocked_clients": blocked,
                "window_seconds": self.window_seconds,
                "max_requests": self.max_requests,
                "block_seconds": self.block_seconds,
            }


SenderVerifier = Callable[[Request, Dict[str, List[str]]], bool]


async def get_client_id(request: Request, verify_sender: Optional[SenderVerifier] = None) -> str:
    """Sender phone number for WhatsApp webhooks, otherwise the client IP.

    With ``verify_sender`` set, the form ``From`` is trusted only when the
    request passes it; anything else is keyed by IP so a forged ``From``
    cannot spend another sender's quota.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(FORM_CONTENT_TYPE):
        body = await request.body()
        form = parse_qs(body.decode("utf-8", errors="replace"), keep_blank_values=True)
        sender = (form.get("From") or [""])[0].strip()
        if sender and (verify_sender is None or verify_sender(request, form)):
            return sender.replace(WHATSAPP_PREFIX, "", 1)
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    FastAPI middleware for rate limiting.
    """

    def __init__(
        self,
        app,
        rate_limiter: Optional[RateLimiter] = None,
        exclude_paths: Optional[Iterable[str]] = None,
        verify_sender: Optional[SenderVerifier] = None,
    ):
        super().__init__(app)
        self.rate_limiter = rate_limiter or RateLimiter()
        self.exclude_paths = set(exclude_paths if exclude_paths is not None else ("/health",))
        self.verify_sender = verify_sender

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        client_id = await get_client_id(request, self.verify_sender)
        try:
            quota = self.rate_limiter.check(client_id)
        except RateLimitExceeded as e:
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content=e.to_dict(),
                headers={
                    "Retry-After": str(e.retry_after),
                    "X-RateLimit-Limit": str(e.limit),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)
        for name, value in quota.headers().items():
            response.headers[name] = value
        return response
