from wallybot.config import Settings


def test_node_env_alias(monkeypatch):
    """NODE_ENV selects the environment when ENVIRONMENT is unset."""

    monkeypatch.delenv("ENVIRONMENT", raising=False)
    monkeypatch.setenv("NODE_ENV", "Production")

    settings = Settings(_env_file=None)

    assert settings.environment == "production"
    assert settings.is_production
    assert not settings.is_development


def test_rate_limit_window_from_env(monkeypatch):
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "60000")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")

    settings = Settings(_env_file=None)

    assert settings.rate_limit_window_seconds == 60
    assert settings.rate_limit_max_requests == 5


def test_defaults(monkeypatch):
    for name in ("PORT", "RATE_LIMIT_WINDOW_MS", "RATE_LIMIT_MAX_REQUESTS", "VALIDATE_TWILIO_SIGNATURE"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.port == 3000
    assert settings.rate_limit_window_seconds == 900
    assert settings.rate_limit_max_requests == 100
    assert settings.validate_twilio_signature is True


def test_llm_key_follows_provider(settings_factory):
    assert settings_factory(openai_api_key="sk-test").has_llm_key
    assert not settings_factory(llm_provider="claude", openai_api_key="sk-test").has_llm_key
    assert settings_factory(llm_provider="anthropic", anthropic_api_key="sk-ant").has_llm_key


def test_credential_flags(settings_factory):
    settings = settings_factory()

    assert settings.has_twilio_credentials
    assert settings.has_nodit_key
    assert not settings_factory(twilio_phone_number="").has_twilio_credentials
