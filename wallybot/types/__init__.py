from .intents import Intent, ParsedIntent
from .payloads import (
    NFTAttribute,
    NFTDetails,
    TokenDetails,
    TokenHolding,
    TokenPrice,
    TransactionDetails,
    WalletBalance,
)

__all__ = [
    "Intent",
    "ParsedIntent",
    "NFTAttribute",
    "NFTDetails",
    "TokenDetails",
    "TokenHolding",
    "TokenPrice",
    "TransactionDetails",
    "WalletBalance",
]
