from typing import Optional

from fastapi import APIRouter, Depends, Form
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from ..auth.middleware import require_twilio_signature
from ..core.webhook import WebhookController
from .dependencies import get_controller

router = APIRouter()


@router.post("/webhook", dependencies=[Depends(require_twilio_signature)])
async def whatsapp_webhook(
    Body: Optional[str] = Form(default=None),
    From: Optional[str] = Form(default=None),
    MessageSid: Optional[str] = Form(default=None),
    controller: WebhookController = Depends(get_controller),
) -> Response:
    """Inbound WhatsApp message from Twilio"""
    result = await controller.handle_incoming_message(Body, From, MessageSid)
    if isinstance(result.body, str):
        return PlainTextResponse(result.body, status_code=result.status_code)
    return JSONResponse(result.body, status_code=result.status_code)
