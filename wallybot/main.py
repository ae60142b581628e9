import asyncio
import contextlib
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .api import health, webhook
from .auth.middleware import twilio_sender_verifier
from .config import Settings, settings as default_settings
from .core.webhook import WebhookController
from .logging_config import setup_logging
from .middleware.logging_middleware import RequestLoggingMiddleware
from .middleware.rate_limit import RateLimiter, RateLimitMiddleware
from .providers.base import MessagingProvider, Web3DataProvider
from .providers.llm import get_llm_provider
from .providers.nodit import NoditProvider
from .providers.twilio import TwilioWhatsAppProvider
from .services.intent_service import IntentService
from .services.validators import validate_environment_config

logger = logging.getLogger(__name__)

NOT_FOUND_MESSAGE = "The requested endpoint does not exist"


def _log_environment(settings: Settings) -> None:
    report = validate_environment_config(settings)
    for error in report.errors:
        logger.error("Configuration error: %s", error)
    for warning in report.warnings:
        logger.warning("Configuration warning: %s", warning)
    if not settings.has_twilio_credentials:
        logger.warning("Twilio credentials missing; outbound messages will be logged, not sent")
    if not settings.has_llm_key:
        logger.warning("No LLM API key; intent parsing and replies use local heuristics")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    rate_limiter: RateLimiter = app.state.rate_limiter

    app.state.started_at = time.monotonic()
    _log_environment(settings)
    cleanup_task = asyncio.create_task(
        rate_limiter.run_cleanup(settings.rate_limit_cleanup_interval_seconds)
    )
    logger.info("🪙 WallyBot server is running on port %s", settings.port)
    logger.info("Environment: %s", settings.environment)

    try:
        yield
    finally:
        cleanup_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await cleanup_task
        await app.state.intent_service.close()
        logger.info("WallyBot shut down")


def create_app(
    settings: Optional[Settings] = None,
    *,
    rate_limiter: Optional[RateLimiter] = None,
    data_provider: Optional[Web3DataProvider] = None,
    messaging: Optional[MessagingProvider] = None,
    intent_service: Optional[IntentService] = None,
) -> FastAPI:
    """Build the WallyBot app. Collaborators default to the ones ``settings`` describes."""
    settings = settings or default_settings

    app = FastAPI(
        title="WallyBot",
        description="WhatsApp Web3 Assistant",
        version=__version__,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    rate_limiter = rate_limiter or RateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )
    data_provider = data_provider or NoditProvider(settings)
    messaging = messaging or TwilioWhatsAppProvider(settings)
    intent_service = intent_service or IntentService(get_llm_provider(settings))

    app.state.settings = settings
    app.state.started_at = time.monotonic()
    app.state.rate_limiter = rate_limiter
    app.state.data_provider = data_provider
    app.state.messaging = messaging
    app.state.intent_service = intent_service
    app.state.controller = WebhookController(data_provider, messaging, intent_service)

    # Added last runs first: logging wraps rate limiting
    app.add_middleware(
        RateLimitMiddleware,
        rate_limiter=rate_limiter,
        exclude_paths=["/health"],
        verify_sender=twilio_sender_verifier(settings, messaging),
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health.router, tags=["Health"])
    app.include_router(webhook.router, tags=["Webhook"])

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "message": NOT_FOUND_MESSAGE},
            )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if settings.is_development else "Something went wrong",
            },
        )

    return app


setup_logging()
app = create_app()


def main() -> None:
    import uvicorn

    uvicorn.run(
        "wallybot.main:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.is_development,
        log_level=default_settings.effective_log_level.lower(),
    )


if __name__ == "__main__":
    main()
