from .errors import InputError, UpstreamError, WallyBotError
from .webhook import WebhookController, WebhookResult, WebhookStage

__all__ = [
    "InputError",
    "UpstreamError",
    "WallyBotError",
    "WebhookController",
    "WebhookResult",
    "WebhookStage",
]
