import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, Request

from .. import __version__
from ..auth.middleware import require_api_key
from ..middleware.rate_limit import RateLimiter
from .dependencies import get_rate_limiter

router = APIRouter()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Liveness check; never touches external providers"""
    started_at = getattr(request.app.state, "started_at", None) or time.monotonic()
    return {
        "status": "healthy",
        "timestamp": _now_iso(),
        "uptime": round(time.monotonic() - started_at, 3),
        "version": __version__,
    }


@router.get("/")
async def root() -> Dict[str, Any]:
    """Root endpoint with basic info"""
    return {
        "name": "WallyBot",
        "description": "WhatsApp Web3 Assistant",
        "version": __version__,
        "endpoints": {
            "webhook": "/webhook",
            "health": "/health",
        },
    }


@router.get("/stats", dependencies=[Depends(require_api_key)])
async def stats(request: Request, rate_limiter: RateLimiter = Depends(get_rate_limiter)) -> Dict[str, Any]:
    """Rate limiter state and provider readiness"""
    state = request.app.state
    return {
        "timestamp": _now_iso(),
        "rate_limiter": rate_limiter.stats(),
        "providers": {
            "nodit": await state.data_provider.ready(),
            "twilio": await state.messaging.ready(),
            "llm": state.intent_service.is_enabled,
        },
    }
