import base64
import hashlib
import hmac

import pytest

from wallybot.providers import twilio
from wallybot.providers.twilio import TwilioWhatsAppProvider, compute_signature, truncate_body

URL = "https://bot.example.com/webhook"
PARAMS = {"Body": "help", "From": "whatsapp:+1234567890", "MessageSid": "SM123"}


def _expected_signature(token: str, url: str, params: dict) -> str:
    data = url + "".join(key + params[key] for key in sorted(params))
    digest = hmac.new(token.encode(), data.encode(), hashlib.sha1).digest()
    return base64.b64encode(digest).decode()


class _DummyResponse:
    def raise_for_status(self):
        return None

    def json(self):
        return {"sid": "SM999", "status": "queued"}


class _DummyClient:
    last_request = None

    def __init__(self, *_, **__):
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def post(self, url, data, auth, timeout):
        _DummyClient.last_request = {"url": url, "data": data, "auth": auth}
        return _DummyResponse()


@pytest.fixture
def provider(test_settings):
    return TwilioWhatsAppProvider(test_settings)


def test_signature_matches_twilio_algorithm():
    assert compute_signature("secret", URL, PARAMS) == _expected_signature("secret", URL, PARAMS)


def test_validate_signature(provider):
    signature = provider.compute_signature(URL, PARAMS)

    assert provider.validate_signature(signature, URL, PARAMS)
    assert not provider.validate_signature(signature, URL, {**PARAMS, "Body": "tampered"})
    assert not provider.validate_signature(signature, URL + "?x=1", PARAMS)
    assert not provider.validate_signature("", URL, PARAMS)


def test_validate_signature_tolerates_default_port(provider):
    with_port = provider.compute_signature("https://bot.example.com:443/webhook", PARAMS)
    without_port = provider.compute_signature(URL, PARAMS)

    assert provider.validate_signature(with_port, URL, PARAMS)
    assert provider.validate_signature(without_port, "https://bot.example.com:443/webhook", PARAMS)


def test_validate_signature_without_token_fails(settings_factory):
    provider = TwilioWhatsAppProvider(settings_factory(twilio_auth_token=""))

    assert not provider.validate_signature(compute_signature("", URL, PARAMS), URL, PARAMS)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("whatsapp:+1234567890", "+1234567890"),
        ("1234567890", "+1234567890"),
        (" +447700900123 ", "+447700900123"),
    ],
)
def test_format_phone_number(provider, value, expected):
    assert provider.format_phone_number(value) == expected


def test_truncate_body():
    assert truncate_body("short") == "short"
    long_body = truncate_body("x" * 2000)
    assert len(long_body) == 1600
    assert long_body.endswith("...")


@pytest.mark.asyncio
async def test_send_message_posts_whatsapp_form(provider, monkeypatch):
    monkeypatch.setattr(twilio.httpx, "AsyncClient", _DummyClient)

    result = await provider.send_message("+1234567890", "hello")

    assert result["sid"] == "SM999"
    request = _DummyClient.last_request
    assert request["url"] == "https://api.twilio.com/2010-04-01/Accounts/ACtest/Messages.json"
    assert request["auth"] == ("ACtest", "test-auth-token")
    assert request["data"] == {
        "From": "whatsapp:+14155238886",
        "To": "whatsapp:+1234567890",
        "Body": "hello",
    }


@pytest.mark.asyncio
async def test_send_message_with_media(provider, monkeypatch):
    monkeypatch.setattr(twilio.httpx, "AsyncClient", _DummyClient)

    await provider.send_message_with_media("whatsapp:+1234567890", "look", "https://img.example.com/ape.png")

    assert _DummyClient.last_request["data"]["MediaUrl"] == "https://img.example.com/ape.png"


@pytest.mark.asyncio
async def test_dry_run_without_credentials(settings_factory, monkeypatch):
    _DummyClient.last_request = None
    monkeypatch.setattr(twilio.httpx, "AsyncClient", _DummyClient)
    provider = TwilioWhatsAppProvider(settings_factory(twilio_account_sid=""))

    assert await provider.send_message("+1234567890", "hello") is None
    assert _DummyClient.last_request is None
    assert await provider.ready() is False
