from .logging_middleware import RequestLoggingMiddleware
from .rate_limit import RateLimiter, RateLimitExceeded, RateLimitMiddleware, RateLimitStatus

__all__ = [
    "RequestLoggingMiddleware",
    "RateLimiter",
    "RateLimitExceeded",
    "RateLimitMiddleware",
    "RateLimitStatus",
]
