from pathlib import Path
from typing import Any

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Server Settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3000, description="Server port")
    environment: str = Field(
        default="development",
        description="Runtime environment (development, production, test)",
        validation_alias=AliasChoices("environment", "node_env", "NODE_ENV", "ENVIRONMENT"),
    )
    log_level: str = Field(default="", description="Logging level; empty means info in production, debug otherwise")
    log_dir: str = Field(default="logs", description="Directory for rotated log files in production")

    # Rate Limiting
    rate_limit_window_ms: int = Field(default=900_000, ge=1, description="Rate limit window in milliseconds")
    rate_limit_max_requests: int = Field(default=100, ge=1, description="Max requests per client per window")
    rate_limit_cleanup_interval_seconds: int = Field(
        default=300,
        ge=1,
        description="Interval between rate limit garbage-collection sweeps",
    )

    # Twilio (WhatsApp messaging)
    twilio_account_sid: str = Field(default="", description="Twilio account SID")
    twilio_auth_token: str = Field(default="", description="Twilio auth token, also the webhook signing key")
    twilio_phone_number: str = Field(default="", description="WhatsApp-enabled Twilio sender number")
    twilio_base_url: str = Field(default="https://api.twilio.com", description="Twilio REST API base URL")
    validate_twilio_signature: bool = Field(
        default=True,
        description="Verify the HMAC in x-twilio-signature (header presence is always required)",
    )
    webhook_url: str = Field(
        default="",
        description="Public webhook URL used to reconstruct the signed URL behind proxies",
    )

    # Nodit (blockchain data)
    nodit_api_key: str = Field(default="", description="Nodit Web3 Data API key")
    nodit_base_url: str = Field(default="https://web3.nodit.io", description="Nodit Web3 Data API base URL")

    # LLM Provider Settings
    llm_provider: str = Field(default="openai", description="LLM provider used for intent parsing and replies")
    llm_model: str = Field(default="", description="Override the provider's default model")
    openai_api_key: str = Field(default="", description="OpenAI API key")
    openai_base_url: str = Field(default="https://api.openai.com", description="OpenAI-compatible API base URL")
    anthropic_api_key: str = Field(default="", description="Anthropic API key")

    # API key auth for operator endpoints
    api_key: str = Field(default="", description="Shared secret for x-api-key protected endpoints")

    request_timeout_seconds: float = Field(default=10.0, gt=0, description="Timeout for outbound HTTP calls")

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        object.__setattr__(self, "environment", (self.environment or "development").strip().lower())

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def effective_log_level(self) -> str:
        if self.log_level:
            return self.log_level.upper()
        return "INFO" if self.is_production else "DEBUG"

    @property
    def has_twilio_credentials(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_phone_number)

    @property
    def has_nodit_key(self) -> bool:
        return bool(self.nodit_api_key)

    @property
    def has_openai_key(self) -> bool:
        return bool(self.openai_api_key)

    @property
    def has_anthropic_key(self) -> bool:
        return bool(self.anthropic_api_key)

    @property
    def has_llm_key(self) -> bool:
        """Check if we have an API key for the configured LLM provider"""
        if self.llm_provider.lower() in ["anthropic", "claude"]:
            return self.has_anthropic_key
        elif self.llm_provider.lower() in ["openai", "gpt"]:
            return self.has_openai_key
        return False


# Global settings instance
settings = Settings()
