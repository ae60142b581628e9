from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from wallybot.config import Settings
from wallybot.main import create_app
from wallybot.middleware.rate_limit import RateLimiter
from wallybot.providers.nodit import NoditProvider
from wallybot.providers.twilio import TwilioWhatsAppProvider, compute_signature
from wallybot.services.intent_service import IntentService

TEST_AUTH_TOKEN = "test-auth-token"
TEST_SENDER = "+14155238886"
WEBHOOK_URL = "http://testserver/webhook"


def make_settings(**overrides) -> Settings:
    values = {
        "environment": "test",
        "log_level": "",
        "twilio_account_sid": "ACtest",
        "twilio_auth_token": TEST_AUTH_TOKEN,
        "twilio_phone_number": TEST_SENDER,
        "nodit_api_key": "nodit-test-key",
        "llm_provider": "openai",
        "llm_model": "",
        "openai_api_key": "",
        "anthropic_api_key": "",
        "api_key": "",
        "webhook_url": "",
        "validate_twilio_signature": True,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def test_settings() -> Settings:
    return make_settings()


@pytest.fixture
def data_provider() -> MagicMock:
    return MagicMock(spec=NoditProvider)


@pytest.fixture
def messaging(test_settings) -> TwilioWhatsAppProvider:
    provider = TwilioWhatsAppProvider(test_settings)
    provider.send_message = AsyncMock(return_value={"sid": "SMtest"})
    provider.send_typing_indicator = AsyncMock(return_value=None)
    return provider


@pytest.fixture
def rate_limiter() -> RateLimiter:
    return RateLimiter(window_seconds=900, max_requests=100)


@pytest.fixture
def app(test_settings, rate_limiter, data_provider, messaging):
    return create_app(
        test_settings,
        rate_limiter=rate_limiter,
        data_provider=data_provider,
        messaging=messaging,
        intent_service=IntentService(),
    )


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def signed_post():
    """POST a form to /webhook with a valid Twilio signature."""

    def post(client, body, sender="whatsapp:+1234567890", token=TEST_AUTH_TOKEN, message_sid="SM123"):
        form = {"Body": body, "From": sender, "MessageSid": message_sid}
        signature = compute_signature(token, WEBHOOK_URL, form)
        return client.post("/webhook", data=form, headers={"X-Twilio-Signature": signature})

    return post
