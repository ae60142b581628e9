import pytest

from wallybot.services.validators import (
    validate_address,
    validate_api_key,
    validate_chain,
    validate_environment_config,
    validate_message,
    validate_number,
    validate_phone_number,
    validate_token,
    validate_token_id,
    validate_transaction_hash,
)
from wallybot.config import Settings

ADDRESS = "0x742d35Cc4Bf86C6D8Ba9352532Fd1e42a5D9e69B"
TX_HASH = "0x" + "ab" * 32


def test_valid_address_is_lowercased():
    result = validate_address(f"  {ADDRESS} ")

    assert result.is_valid
    assert result.error is None
    assert result.formatted == ADDRESS.lower()


@pytest.mark.parametrize("value", ["", None, "0x123", ADDRESS[:-1] + "Z", ADDRESS + "0", 42])
def test_invalid_addresses(value):
    result = validate_address(value)

    assert not result.is_valid
    assert result.error
    assert result.formatted is None


def test_transaction_hash():
    assert validate_transaction_hash(TX_HASH).formatted == TX_HASH
    assert not validate_transaction_hash(ADDRESS).is_valid


@pytest.mark.parametrize(
    "value,expected",
    [(None, "ethereum"), ("", "ethereum"), ("ETH", "ethereum"), ("matic", "polygon"), ("Poly", "polygon")],
)
def test_chain_aliases(value, expected):
    assert validate_chain(value).formatted == expected


def test_unsupported_chain():
    result = validate_chain("solana")

    assert not result.is_valid
    assert "Unsupported chain: solana" in result.error


def test_token_id_bounds():
    assert validate_token_id("1234").formatted == "1234"
    assert validate_token_id(7).formatted == "7"
    assert not validate_token_id("-1").is_valid
    assert not validate_token_id("1.5").is_valid
    assert validate_token_id(str(2**53)).error == "Token ID is too large"


def test_token_reports_kind():
    symbol = validate_token("usdc")
    address = validate_token(ADDRESS)

    assert (symbol.kind, symbol.formatted) == ("symbol", "USDC")
    assert (address.kind, address.formatted) == ("address", ADDRESS.lower())
    assert not validate_token("0xnope").is_valid
    assert not validate_token("US-DC").is_valid


def test_phone_number_normalized_to_e164():
    assert validate_phone_number("whatsapp:+14155238886").formatted == "+14155238886"
    assert validate_phone_number("14155238886").formatted == "+14155238886"
    assert not validate_phone_number("+0123").is_valid


def test_api_key_length():
    assert validate_api_key("x" * 10).is_valid
    assert validate_api_key("short").error == "API key is too short"
    assert validate_api_key("x" * 201).error == "API key is too long"


def test_message():
    assert validate_message("  hi  ").formatted == "hi"
    assert validate_message("   ").error == "Message cannot be empty"
    assert not validate_message("x" * 4001).is_valid


def test_number_range():
    assert validate_number("42", min_value=1, max_value=100).formatted == 42
    assert validate_number(2.5).formatted == 2.5
    assert validate_number(2.5, allow_decimals=False, name="Port").error == "Port must be an integer"
    assert validate_number(0, min_value=1).error == "Number must be at least 1"
    assert validate_number("abc").error == "Number must be a valid number"


def test_environment_report_flags_missing_configuration():
    report = validate_environment_config(
        Settings(_env_file=None, twilio_account_sid="", nodit_api_key="", openai_api_key="", webhook_url="")
    )

    assert not report.is_valid
    assert "Missing required environment variable: TWILIO_ACCOUNT_SID" in report.errors
    assert "Missing required environment variable: NODIT_API_KEY" in report.errors
    assert "Missing recommended environment variable: WEBHOOK_URL" in report.warnings


def test_environment_report_accepts_complete_configuration(settings_factory):
    report = validate_environment_config(
        settings_factory(openai_api_key="sk-test", webhook_url="https://bot.example.com/webhook")
    )

    assert report.is_valid
    assert report.warnings == []
