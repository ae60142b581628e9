import httpx
from fastapi.testclient import TestClient

from wallybot.main import create_app
from wallybot.middleware.rate_limit import RateLimiter
from wallybot.services.intent_service import IntentService

BALANCE_ADDRESS = "0x742d35Cc4Bf86C6D8Ba9352532Fd1e42a5D9e69B"
SENDER = "whatsapp:+1234567890"


def _client(settings, data_provider, messaging, **kwargs) -> TestClient:
    return TestClient(
        create_app(
            settings,
            data_provider=data_provider,
            messaging=messaging,
            intent_service=IntentService(),
            **kwargs,
        )
    )


def test_balance_message_replies_with_shortened_address(client, signed_post, data_provider, messaging):
    data_provider.get_wallet_balance.return_value = {
        "native": {"balance": "1500000000000000000"},
        "tokens": {"items": []},
    }

    response = signed_post(client, f"Check balance for {BALANCE_ADDRESS}")

    assert response.status_code == 200
    assert response.text == "OK"
    data_provider.get_wallet_balance.assert_awaited_once_with(BALANCE_ADDRESS, "ethereum")
    messaging.send_message.assert_awaited_once()
    to, reply = messaging.send_message.await_args.args
    assert to == "+1234567890"
    assert "0x742d...e69B" in reply
    assert "1.5000 ETH" in reply


def test_help_message_lists_all_capabilities(client, signed_post, data_provider, messaging):
    response = signed_post(client, "help")

    assert response.status_code == 200
    reply = messaging.send_message.await_args.args[1]
    assert "WallyBot" in reply
    for category in ("Wallet Balance", "Token Information", "NFT Details", "Token Prices", "Transaction Details"):
        assert category in reply
    assert data_provider.method_calls == []


def test_missing_signature_is_rejected_without_side_effects(client, data_provider, messaging):
    response = client.post(
        "/webhook",
        data={"Body": f"Check balance for {BALANCE_ADDRESS}", "From": SENDER, "MessageSid": "SM123"},
    )

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized: Missing signature"}
    assert data_provider.method_calls == []
    messaging.send_message.assert_not_awaited()
    messaging.send_typing_indicator.assert_not_awaited()


def test_invalid_signature_is_rejected(client, signed_post, messaging):
    response = signed_post(client, "help", token="wrong-token")

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized: Invalid signature"}
    messaging.send_message.assert_not_awaited()


def test_signature_check_can_be_disabled_but_header_is_still_required(settings_factory, data_provider, messaging):
    client = _client(settings_factory(validate_twilio_signature=False), data_provider, messaging)

    accepted = client.post(
        "/webhook",
        data={"Body": "help", "From": SENDER},
        headers={"X-Twilio-Signature": "anything"},
    )
    rejected = client.post("/webhook", data={"Body": "help", "From": SENDER})

    assert accepted.status_code == 200
    assert rejected.status_code == 401


def test_provider_failure_is_reported_in_chat_with_200(client, signed_post, data_provider, messaging):
    data_provider.get_wallet_balance.side_effect = httpx.ConnectTimeout("timed out")

    response = signed_post(client, f"Check balance for {BALANCE_ADDRESS}")

    assert response.status_code == 200
    reply = messaging.send_message.await_args.args[1]
    assert "Unable to fetch wallet balance" in reply


def test_send_failure_returns_500(client, signed_post, messaging):
    messaging.send_message.side_effect = RuntimeError("twilio down")

    response = signed_post(client, "help")

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


def test_accepted_requests_carry_rate_limit_headers(client, signed_post):
    first = signed_post(client, "help")
    second = signed_post(client, "help")

    assert first.headers["X-RateLimit-Limit"] == "100"
    assert first.headers["X-RateLimit-Remaining"] == "99"
    assert second.headers["X-RateLimit-Remaining"] == "98"
    assert first.headers["X-RateLimit-Reset"].endswith("Z")


def test_rate_limited_sender_gets_429(test_settings, signed_post, data_provider, messaging):
    client = _client(
        test_settings,
        data_provider,
        messaging,
        rate_limiter=RateLimiter(window_seconds=900, max_requests=2),
    )

    assert signed_post(client, "help").status_code == 200
    assert signed_post(client, "help").status_code == 200
    blocked = signed_post(client, "help")
    again = signed_post(client, "help")

    assert blocked.status_code == 429
    assert blocked.json() == {
        "error": "Rate limit exceeded",
        "message": "Too many requests. You are now blocked for 300 seconds.",
        "retryAfter": 300,
    }
    assert blocked.headers["Retry-After"] == "300"
    assert again.status_code == 429
    assert again.json()["error"] == "Too many requests"
    assert messaging.send_message.await_count == 2

    # Other senders are counted separately
    assert signed_post(client, "help", sender="whatsapp:+447700900123").status_code == 200


def test_health_endpoint(client):
    response = client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["version"] == "1.0.0"
    assert data["uptime"] >= 0
    assert "timestamp" in data
    assert "X-RateLimit-Limit" not in response.headers


def test_root_endpoint(client):
    data = client.get("/").json()

    assert data["name"] == "WallyBot"
    assert data["description"] == "WhatsApp Web3 Assistant"
    assert data["endpoints"] == {"webhook": "/webhook", "health": "/health"}


def test_unknown_route_returns_json_404(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not found", "message": "The requested endpoint does not exist"}


def test_stats_requires_api_key_when_configured(settings_factory, data_provider, messaging):
    data_provider.ready.return_value = True
    client = _client(settings_factory(api_key="operator-secret-key"), data_provider, messaging)

    assert client.get("/stats").status_code == 401
    assert client.get("/stats", headers={"x-api-key": "wrong"}).status_code == 401

    response = client.get("/stats", params={"apiKey": "operator-secret-key"})
    assert response.status_code == 200
    data = response.json()
    assert data["rate_limiter"]["max_requests"] == 100
    assert data["providers"] == {"nodit": True, "twilio": True, "llm": False}


def test_stats_is_open_without_api_key(client, data_provider):
    data_provider.ready.return_value = False

    response = client.get("/stats")

    assert response.status_code == 200
    assert response.json()["providers"]["nodit"] is False


def test_request_id_is_echoed(client):
    response = client.get("/", headers={"x-request-id": "abc123"})

    assert response.headers["x-request-id"] == "abc123"


def test_lifespan_starts_and_stops_cleanly(app):
    with TestClient(app) as client:
        assert client.get("/health").json()["status"] == "healthy"

    assert app.state.started_at > 0


def test_forged_sender_cannot_spend_real_senders_quota(test_settings, signed_post, data_provider, messaging):
    client = _client(
        test_settings,
        data_provider,
        messaging,
        rate_limiter=RateLimiter(window_seconds=900, max_requests=3),
    )
    forged = {"Body": "help", "From": SENDER, "MessageSid": "SMforged"}

    statuses = [client.post("/webhook", data=forged).status_code for _ in range(4)]
    wrong_key = client.post("/webhook", data=forged, headers={"X-Twilio-Signature": "bogus"})

    assert statuses == [401, 401, 401, 429]
    assert wrong_key.status_code == 429
    assert signed_post(client, "help", sender=SENDER).status_code == 200
    messaging.send_message.assert_awaited_once()
