"""Request-scoped accessors for the services created by ``create_app``."""

from fastapi import Request

from ..config import Settings
from ..core.webhook import WebhookController
from ..middleware.rate_limit import RateLimiter
from ..providers.base import MessagingProvider


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_messaging(request: Request) -> MessagingProvider:
    return request.app.state.messaging


def get_controller(request: Request) -> WebhookController:
    return request.app.state.controller


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter
