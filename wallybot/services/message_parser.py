"""
Regex extraction and keyword intent detection for free-text chat messages.

Everything here is pure and deterministic; ``parse_message`` never raises.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Tuple

from ..types import Intent
from .validators import ADDRESS_RE, TX_HASH_RE

logger = logging.getLogger(__name__)

# An address is exactly 40 hex digits, so a transaction hash does not yield one
ADDRESS_PATTERN = re.compile(r"0x[a-fA-F0-9]{40}(?![a-fA-F0-9])")
TX_HASH_PATTERN = re.compile(r"0x[a-fA-F0-9]{64}(?![a-fA-F0-9])")
TOKEN_ID_PATTERN = re.compile(r"#(\d+)")
SYMBOL_PATTERN = re.compile(r"\b([A-Z]{2,6})\b")
NUMBER_PATTERN = re.compile(r"\b\d+(?:\.\d+)?\b")
WHITESPACE_PATTERN = re.compile(r"\s+")
SPECIAL_CHARS_PATTERN = re.compile(r"[^\w\s#.+\-]")

DEFAULT_CHAIN = "ethereum"

# Scanned in order; the first intent with any matching keyword wins
INTENT_KEYWORDS: Tuple[Tuple[Intent, Tuple[str, ...]], ...] = (
    (Intent.WALLET_BALANCE, ("balance", "wallet", "funds", "money", "eth balance", "how much")),
    (Intent.TOKEN_INFO, ("token info", "what is", "tell me about", "information about", "details about")),
    # "how much is" never wins here since wallet_balance's "how much" is scanned first; kept that way
    (Intent.PRICE_QUERY, ("price", "cost", "value", "worth", "how much is", "current price")),
    (Intent.NFT_DETAILS, ("nft", "non-fungible", "collectible", "art piece", "nft details")),
    (Intent.TRANSACTION_DETAILS, ("transaction", "tx", "transfer", "send", "receipt", "tx details")),
    (Intent.HELP, ("help", "commands", "what can you do", "how to use", "instructions")),
)


@dataclass
class ParsedMessage:
    original: str
    cleaned: str
    intent: Intent = Intent.HELP
    addresses: List[str] = field(default_factory=list)
    transaction_hashes: List[str] = field(default_factory=list)
    token_ids: List[str] = field(default_factory=list)
    token_symbols: List[str] = field(default_factory=list)
    blockchain: str = DEFAULT_CHAIN
    numbers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ParsedDataValidation:
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.is_valid = False


def extract_addresses(message: str) -> List[str]:
    return ADDRESS_PATTERN.findall(message)


def extract_transaction_hashes(message: str) -> List[str]:
    return TX_HASH_PATTERN.findall(message)


def extract_token_ids(message: str) -> List[str]:
    """Digits following ``#``, e.g. ``#1234`` -> ``"1234"``."""
    return TOKEN_ID_PATTERN.findall(message)


def extract_token_symbols(message: str) -> List[str]:
    return SYMBOL_PATTERN.findall(message)


def extract_numbers(message: str) -> List[str]:
    return NUMBER_PATTERN.findall(message)


def detect_blockchain(message: str) -> str:
    lowered = message.lower()
    if "polygon" in lowered or "matic" in lowered:
        return "polygon"
    if "ethereum" in lowered or "eth" in lowered:
        return "ethereum"
    return DEFAULT_CHAIN


def clean_message(message: str | None) -> str:
    if not message:
        return ""
    collapsed = WHITESPACE_PATTERN.sub(" ", message.strip())
    return SPECIAL_CHARS_PATTERN.sub(" ", collapsed).strip()


def detect_intent(message: str) -> Intent:
    lowered = message.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return Intent.HELP


def parse_message(message: str) -> ParsedMessage:
    try:
        cleaned = clean_message(message)
        parsed = ParsedMessage(
            original=message,
            cleaned=cleaned,
            intent=detect_intent(cleaned),
            addresses=extract_addresses(message),
            transaction_hashes=extract_transaction_hashes(message),
            token_ids=extract_token_ids(message),
            token_symbols=extract_token_symbols(cleaned),
            blockchain=detect_blockchain(cleaned),
            numbers=extract_numbers(cleaned),
        )
        logger.debug("Parsed message: %s", parsed)
        return parsed
    except Exception:
        logger.exception("Error parsing message")
        return ParsedMessage(original=message, cleaned=message if isinstance(message, str) else "")


def validate_parsed_data(parsed: ParsedMessage) -> ParsedDataValidation:
    """Check extracted values and the fields each intent needs.

    Missing NFT fields only warn; balance and transaction queries fail without
    their address or hash.
    """
    validation = ParsedDataValidation()

    for address in parsed.addresses:
        if not is_valid_address(address):
            validation.add_error(f"Invalid address format: {address}")

    for tx_hash in parsed.transaction_hashes:
        if not is_valid_transaction_hash(tx_hash):
            validation.add_error(f"Invalid transaction hash format: {tx_hash}")

    if parsed.intent == Intent.WALLET_BALANCE:
        if not parsed.addresses:
            validation.add_error("Wallet address required for balance query")
    elif parsed.intent == Intent.NFT_DETAILS:
        if not parsed.addresses or not parsed.token_ids:
            validation.warnings.append("NFT queries require both contract address and token ID")
    elif parsed.intent == Intent.TRANSACTION_DETAILS:
        if not parsed.transaction_hashes:
            validation.add_error("Transaction hash required for transaction details")

    return validation


def is_valid_address(address: str) -> bool:
    return bool(ADDRESS_RE.match(address or ""))


def is_valid_transaction_hash(tx_hash: str) -> bool:
    return bool(TX_HASH_RE.match(tx_hash or ""))
