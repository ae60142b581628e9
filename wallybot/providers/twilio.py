"""
Twilio WhatsApp messaging client.

Outbound messages go through the Messages REST resource with basic auth.
Inbound webhooks are authenticated with Twilio's request signature:
base64(HMAC-SHA1(auth_token, url + sorted form key/value pairs)).
"""

import base64
import hashlib
import hmac
import logging
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import urlparse, urlunparse

import httpx

from ..config import Settings, settings as default_settings
from .base import MessagingProvider

logger = logging.getLogger(__name__)

WHATSAPP_PREFIX = "whatsapp:"
MAX_BODY_LENGTH = 1600
DEFAULT_PORTS = {"http": 80, "https": 443}


def _values(value: Any) -> Iterable[str]:
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    return [str(value)]


def compute_signature(auth_token: str, url: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Compute the ``X-Twilio-Signature`` value for a form-encoded request."""
    data = url
    for key in sorted(params or {}):
        for value in sorted(set(_values(params[key]))):
            data += key + value
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("utf-8")


def _with_port(url: str) -> str:
    parsed = urlparse(url)
    if parsed.port or parsed.scheme not in DEFAULT_PORTS:
        return url
    netloc = f"{parsed.hostname}:{DEFAULT_PORTS[parsed.scheme]}"
    if parsed.username:
        netloc = f"{parsed.username}:{parsed.password}@{netloc}" if parsed.password else f"{parsed.username}@{netloc}"
    return urlunparse(parsed._replace(netloc=netloc))


def _without_port(url: str) -> str:
    parsed = urlparse(url)
    if not parsed.port or DEFAULT_PORTS.get(parsed.scheme) != parsed.port:
        return url
    netloc = parsed.netloc.rsplit(":", 1)[0]
    return urlunparse(parsed._replace(netloc=netloc))


def truncate_body(body: str, limit: int = MAX_BODY_LENGTH) -> str:
    if len(body) <= limit:
        return body
    return body[: limit - 3] + "..."


class TwilioWhatsAppProvider(MessagingProvider):
    """WhatsApp messaging over the Twilio REST API.

    Without credentials the provider runs in dry-run mode: outbound
    messages are logged and nothing is sent.
    """

    name = "twilio"

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.from_number = settings.twilio_phone_number
        self.base_url = settings.twilio_base_url.rstrip("/")
        self.timeout_s = settings.request_timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/2010-04-01/Accounts/{self.account_sid}/Messages.json"

    async def ready(self) -> bool:
        return self.enabled

    async def health_check(self) -> Dict[str, Any]:
        if not self.enabled:
            return {"status": "unavailable", "reason": "Twilio credentials not configured"}
        return {"status": "healthy", "sender": self.format_phone_number(self.from_number)}

    def format_phone_number(self, phone_number: str) -> str:
        """Strip the ``whatsapp:`` channel prefix and ensure a leading ``+``."""
        number = (phone_number or "").strip()
        if number.startswith(WHATSAPP_PREFIX):
            number = number[len(WHATSAPP_PREFIX):]
        number = number.strip()
        if number and not number.startswith("+"):
            number = f"+{number}"
        return number

    def _address(self, phone_number: str) -> str:
        return f"{WHATSAPP_PREFIX}{self.format_phone_number(phone_number)}"

    async def send_message(
        self,
        to: str,
        body: str,
        media_url: Optional[str] = None,
    ) -> Optional[Dict[str, Any]]:
        form: Dict[str, str] = {
            "From": self._address(self.from_number),
            "To": self._address(to),
            "Body": truncate_body(body or ""),
        }
        if media_url:
            form["MediaUrl"] = media_url

        if not self.enabled:
            logger.info("[dry-run] WhatsApp message to %s: %s", form["To"], form["Body"])
            return None

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.messages_url,
                    data=form,
                    auth=(self.account_sid, self.auth_token),
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                message = response.json()
        except httpx.HTTPError as e:
            logger.error("Error sending WhatsApp message to %s: %s", form["To"], e)
            raise

        logger.info("Message sent successfully: %s", message.get("sid"))
        return message

    async def send_message_with_media(self, to: str, body: str, media_url: str) -> Optional[Dict[str, Any]]:
        return await self.send_message(to, body, media_url=media_url)

    async def send_typing_indicator(self, to: str) -> None:
        # Twilio exposes no typing indicator for WhatsApp
        logger.debug("Typing indicator for %s", self.format_phone_number(to))

    def compute_signature(self, url: str, params: Optional[Mapping[str, Any]] = None) -> str:
        return compute_signature(self.auth_token, url, params)

    def validate_signature(self, signature: str, url: str, params: Mapping[str, Any]) -> bool:
        """Verify ``signature`` against the request URL and form params.

        Twilio may sign the URL with or without the default port, so both
        spellings are tried.
        """
        if not signature or not self.auth_token:
            return False
        for candidate in {url, _with_port(url), _without_port(url)}:
            expected = self.compute_signature(candidate, params)
            if hmac.compare_digest(expected, signature):
                return True
        return False
