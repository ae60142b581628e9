"""
FastAPI authentication dependencies.

``require_twilio_signature`` guards the WhatsApp webhook; ``require_api_key``
guards operator endpoints when an API key is configured.
"""

import logging
from typing import Any, Callable, Dict, List, Mapping, Optional

from fastapi import Depends, Header, HTTPException, Query, Request, status

from ..api.dependencies import get_messaging, get_settings
from ..config import Settings
from ..providers.base import MessagingProvider

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-twilio-signature"


async def form_params(request: Request) -> Dict[str, List[str]]:
    """Form fields as ``name -> [values]``, the shape the signature is computed over."""
    form = await request.form()
    params: Dict[str, List[str]] = {}
    for key, value in form.multi_items():
        if isinstance(value, str):
            params.setdefault(key, []).append(value)
    return params


def signed_url(request: Request, settings: Settings) -> str:
    """URL Twilio signed: the configured public webhook URL, else the request URL."""
    if settings.webhook_url:
        url = settings.webhook_url
        if request.url.query:
            url = f"{url}?{request.url.query}"
        return url
    return str(request.url)


def has_valid_twilio_signature(
    request: Request,
    params: Mapping[str, Any],
    settings: Settings,
    messaging: MessagingProvider,
) -> bool:
    """Whether the request carries a signature the webhook would accept."""
    signature = request.headers.get(SIGNATURE_HEADER)
    if not signature:
        return False
    if not settings.validate_twilio_signature:
        return True
    return messaging.validate_signature(signature, signed_url(request, settings), params)


def twilio_sender_verifier(
    settings: Settings, messaging: MessagingProvider
) -> Callable[[Request, Mapping[str, Any]], bool]:
    """Bind ``has_valid_twilio_signature`` for the rate limiter."""

    def verify(request: Request, params: Mapping[str, Any]) -> bool:
        return has_valid_twilio_signature(request, params, settings, messaging)

    return verify


async def require_twilio_signature(
    request: Request,
    x_twilio_signature: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
    messaging: MessagingProvider = Depends(get_messaging),
) -> None:
    """
    Require a valid ``X-Twilio-Signature`` on the request.

    The header must always be present. The HMAC itself is checked unless
    ``validate_twilio_signature`` is turned off for local testing.

    Raises HTTPException 401 if the signature is missing or wrong.
    """
    if not x_twilio_signature:
        logger.warning("Missing Twilio signature header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Missing signature",
        )

    if not settings.validate_twilio_signature:
        logger.debug("Twilio signature validation disabled")
        return

    params = await form_params(request)
    if not has_valid_twilio_signature(request, params, settings, messaging):
        logger.warning("Invalid Twilio signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid signature",
        )

    logger.debug("Twilio signature validated successfully")


async def require_api_key(
    x_api_key: Optional[str] = Header(default=None),
    api_key: Optional[str] = Query(default=None, alias="apiKey"),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Require the shared API key in ``x-api-key`` or ``?apiKey=``.

    Skipped entirely when no API key is configured.
    """
    if not settings.api_key:
        return

    provided = x_api_key or api_key
    if not provided or provided != settings.api_key:
        logger.warning("Invalid or missing API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid API key",
        )
