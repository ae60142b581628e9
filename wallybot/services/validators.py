"""
Input validation for addresses, hashes, token ids, chains, phone numbers and
numeric ranges.

Every validator returns a ``ValidationResult``: either valid with a
normalized ``formatted`` value, or invalid with an ``error`` message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, List, Optional

if TYPE_CHECKING:
    from ..config import Settings


ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")
TX_HASH_RE = re.compile(r"^0x[a-fA-F0-9]{64}$")
TOKEN_ID_RE = re.compile(r"^\d+$")
SYMBOL_RE = re.compile(r"^[A-Za-z]{1,10}$")
PHONE_RE = re.compile(r"^\+[1-9]\d{1,14}$")

SUPPORTED_CHAINS = ("ethereum", "polygon")
CHAIN_ALIASES = {
    "eth": "ethereum",
    "matic": "polygon",
    "poly": "polygon",
}

# Largest integer a JSON number can carry without losing precision
MAX_SAFE_INTEGER = 2**53 - 1
MAX_MESSAGE_LENGTH = 4000


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    formatted: Any = None

    @classmethod
    def ok(cls, formatted: Any) -> "ValidationResult":
        return cls(is_valid=True, error=None, formatted=formatted)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(is_valid=False, error=error, formatted=None)


@dataclass(frozen=True)
class TokenValidationResult(ValidationResult):
    """Token validation also reports whether the input was an address or a symbol."""

    kind: Optional[str] = None


@dataclass
class EnvironmentReport:
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def validate_address(address: Any) -> ValidationResult:
    if not address:
        return ValidationResult.fail("Address is required")
    if not isinstance(address, str):
        return ValidationResult.fail("Address must be a string")

    clean = address.strip()
    if not ADDRESS_RE.match(clean):
        return ValidationResult.fail("Invalid address format. Must be 42 characters starting with 0x")
    return ValidationResult.ok(clean.lower())


def validate_transaction_hash(tx_hash: Any) -> ValidationResult:
    if not tx_hash:
        return ValidationResult.fail("Transaction hash is required")
    if not isinstance(tx_hash, str):
        return ValidationResult.fail("Transaction hash must be a string")

    clean = tx_hash.strip()
    if not TX_HASH_RE.match(clean):
        return ValidationResult.fail("Invalid transaction hash format. Must be 66 characters starting with 0x")
    return ValidationResult.ok(clean.lower())


def validate_chain(chain: Any) -> ValidationResult:
    """Resolve a chain name or alias. An empty chain means Ethereum."""
    if not chain:
        return ValidationResult.ok("ethereum")
    if not isinstance(chain, str):
        return ValidationResult.fail("Chain must be a string")

    normalized = chain.strip().lower()
    resolved = CHAIN_ALIASES.get(normalized, normalized)
    if resolved not in SUPPORTED_CHAINS:
        return ValidationResult.fail(
            f"Unsupported chain: {chain}. Supported chains: {', '.join(SUPPORTED_CHAINS)}"
        )
    return ValidationResult.ok(resolved)


def validate_token_id(token_id: Any) -> ValidationResult:
    if token_id is None or token_id == "":
        return ValidationResult.fail("Token ID is required")
    if isinstance(token_id, bool):
        return ValidationResult.fail("Token ID must be a positive integer")

    text = str(token_id).strip()
    if not TOKEN_ID_RE.match(text):
        return ValidationResult.fail("Token ID must be a positive integer")
    if int(text) > MAX_SAFE_INTEGER:
        return ValidationResult.fail("Token ID is too large")
    return ValidationResult.ok(text)


def validate_token(token: Any) -> TokenValidationResult:
    """Accept a contract address or a 1-10 letter symbol."""
    if not token:
        return TokenValidationResult(is_valid=False, error="Token symbol or address is required")
    if not isinstance(token, str):
        return TokenValidationResult(is_valid=False, error="Token must be a string")

    clean = token.strip()
    if clean.lower().startswith("0x"):
        address = validate_address(clean)
        if not address.is_valid:
            return TokenValidationResult(is_valid=False, error=address.error)
        return TokenValidationResult(is_valid=True, formatted=address.formatted, kind="address")

    if not SYMBOL_RE.match(clean):
        return TokenValidationResult(is_valid=False, error="Token symbol must be 1-10 letters only")
    return TokenValidationResult(is_valid=True, formatted=clean.upper(), kind="symbol")


def validate_phone_number(phone_number: Any) -> ValidationResult:
    if not phone_number:
        return ValidationResult.fail("Phone number is required")
    if not isinstance(phone_number, str):
        return ValidationResult.fail("Phone number must be a string")

    clean = phone_number.replace("whatsapp:", "").strip()
    if not clean.startswith("+"):
        clean = f"+{clean}"
    if not PHONE_RE.match(clean):
        return ValidationResult.fail(
            "Invalid phone number format. Must be in international format (+1234567890)"
        )
    return ValidationResult.ok(clean)


def validate_api_key(api_key: Any) -> ValidationResult:
    if not api_key:
        return ValidationResult.fail("API key is required")
    if not isinstance(api_key, str):
        return ValidationResult.fail("API key must be a string")

    clean = api_key.strip()
    if len(clean) < 10:
        return ValidationResult.fail("API key is too short")
    if len(clean) > 200:
        return ValidationResult.fail("API key is too long")
    return ValidationResult.ok(clean)


def validate_message(message: Any) -> ValidationResult:
    if not message:
        return ValidationResult.fail("Message is required")
    if not isinstance(message, str):
        return ValidationResult.fail("Message must be a string")

    clean = message.strip()
    if not clean:
        return ValidationResult.fail("Message cannot be empty")
    if len(clean) > MAX_MESSAGE_LENGTH:
        return ValidationResult.fail(f"Message is too long (max {MAX_MESSAGE_LENGTH} characters)")
    return ValidationResult.ok(clean)


def validate_number(
    value: Any,
    *,
    min_value: Optional[float] = None,
    max_value: Optional[float] = None,
    allow_decimals: bool = True,
    name: str = "Number",
) -> ValidationResult:
    if value is None or value == "" or isinstance(value, bool):
        return ValidationResult.fail(f"{name} is required")

    try:
        number = float(value)
    except (TypeError, ValueError):
        return ValidationResult.fail(f"{name} must be a valid number")
    if number != number:  # NaN
        return ValidationResult.fail(f"{name} must be a valid number")

    if not allow_decimals and not number.is_integer():
        return ValidationResult.fail(f"{name} must be an integer")
    if min_value is not None and number < min_value:
        return ValidationResult.fail(f"{name} must be at least {min_value}")
    if max_value is not None and number > max_value:
        return ValidationResult.fail(f"{name} must be at most {max_value}")

    return ValidationResult.ok(int(number) if number.is_integer() else number)


def validate_environment_config(config: "Settings") -> EnvironmentReport:
    """Report missing or malformed configuration without raising."""
    report = EnvironmentReport()

    required = {
        "TWILIO_ACCOUNT_SID": config.twilio_account_sid,
        "TWILIO_AUTH_TOKEN": config.twilio_auth_token,
        "TWILIO_PHONE_NUMBER": config.twilio_phone_number,
        "NODIT_API_KEY": config.nodit_api_key,
    }
    for key, value in required.items():
        if not value:
            report.errors.append(f"Missing required environment variable: {key}")

    if not config.has_llm_key:
        report.warnings.append(
            f"Missing recommended API key for LLM provider '{config.llm_provider}'"
        )
    if not config.webhook_url:
        report.warnings.append("Missing recommended environment variable: WEBHOOK_URL")

    if config.twilio_phone_number:
        phone = validate_phone_number(config.twilio_phone_number)
        if not phone.is_valid:
            report.errors.append(f"Invalid TWILIO_PHONE_NUMBER: {phone.error}")

    port = validate_number(config.port, min_value=1, max_value=65535, allow_decimals=False, name="PORT")
    if not port.is_valid:
        report.errors.append(f"Invalid PORT: {port.error}")

    return report
