from .middleware import (
    form_params,
    has_valid_twilio_signature,
    require_api_key,
    require_twilio_signature,
    signed_url,
    twilio_sender_verifier,
)

__all__ = [
    "form_params",
    "has_valid_twilio_signature",
    "require_api_key",
    "require_twilio_signature",
    "signed_url",
    "twilio_sender_verifier",
]
