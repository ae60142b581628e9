"""
WhatsApp reply templates, one per intent.

Formatters take the typed payloads from ``wallybot.types`` and skip any line
whose field is missing. A formatting fault returns the error template instead
of raising.
"""

from __future__ import annotations

import functools
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, TypeVar, Union

from ..types import (
    Intent,
    NFTDetails,
    TokenDetails,
    TokenPrice,
    TransactionDetails,
    WalletBalance,
)

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., str])

CHAIN_EMOJIS = {
    "ethereum": "🔷",
    "polygon": "🟣",
    "bitcoin": "🟠",
    "binance": "🟡",
}
DEFAULT_CHAIN_EMOJI = "⛓️"

CHAIN_SYMBOLS = {
    "ethereum": "ETH",
    "polygon": "MATIC",
    "bitcoin": "BTC",
    "binance": "BNB",
}
DEFAULT_CHAIN_SYMBOL = "ETH"

MAX_TOP_TOKENS = 3
MAX_ATTRIBUTES = 3
MAX_DESCRIPTION_LENGTH = 100

Number = Union[int, float, Decimal, str]


def _fault_boundary(description: str) -> Callable[[F], F]:
    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> str:
            try:
                return func(*args, **kwargs)
            except Exception:
                logger.exception("Error formatting %s response", description)
                return format_error(f"Failed to format {description}")

        return wrapper  # type: ignore[return-value]

    return decorator


# =============================================================================
# Helpers
# =============================================================================


def shorten_address(address: str | None) -> str | None:
    """``0x742d35Cc...e69B`` style: first 6 and last 4 characters."""
    if not address or len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


def shorten_hash(tx_hash: str | None) -> str | None:
    """First 8 and last 6 characters of a transaction hash."""
    if not tx_hash or len(tx_hash) < 10:
        return tx_hash
    return f"{tx_hash[:8]}...{tx_hash[-6:]}"


def get_chain_emoji(chain: str | None) -> str:
    return CHAIN_EMOJIS.get((chain or "").lower(), DEFAULT_CHAIN_EMOJI)


def get_chain_symbol(chain: str | None) -> str:
    return CHAIN_SYMBOLS.get((chain or "").lower(), DEFAULT_CHAIN_SYMBOL)


def capitalize_first(text: str | None) -> str:
    if not text:
        return ""
    return text[0].upper() + text[1:].lower()


def format_number(value: Number, max_decimals: int = 3) -> str:
    """Thousands separators, at most ``max_decimals`` places, trailing zeros dropped."""
    text = f"{Decimal(str(value)):,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_large_number(value: Number) -> str:
    number = float(value)
    if number >= 1e9:
        return f"{number / 1e9:.2f}B"
    if number >= 1e6:
        return f"{number / 1e6:.2f}M"
    if number >= 1e3:
        return f"{number / 1e3:.2f}K"
    return f"{number:.2f}"


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


# =============================================================================
# Intent templates
# =============================================================================


@_fault_boundary("wallet balance information")
def format_wallet_balance(balance: WalletBalance) -> str:
    chain = balance.chain
    lines = [
        f"💰 *Wallet Balance* {get_chain_emoji(chain)}",
        "",
        f"📍 Address: `{shorten_address(balance.address)}`",
        f"⛓️ Chain: {capitalize_first(chain)}",
        "",
    ]

    if balance.native_balance is not None:
        lines.append(f"💎 Balance: *{balance.native_balance:.4f} {get_chain_symbol(chain)}*")

    if balance.native_value_usd is not None:
        lines.append(f"💵 USD Value: *${format_number(balance.native_value_usd, 2)}*")

    top_tokens = [t for t in balance.tokens if t.symbol and t.balance is not None][:MAX_TOP_TOKENS]
    if top_tokens:
        lines.append("")
        lines.append("🪙 *Top Tokens:*")
        for token in top_tokens:
            lines.append(f"• {token.symbol}: {token.balance:.2f}")

    return "\n".join(lines).rstrip() + "\n"


@_fault_boundary("token information")
def format_token_info(token: TokenDetails) -> str:
    chain = token.chain
    lines = [f"🪙 *Token Information* {get_chain_emoji(chain)}", ""]

    if token.name:
        lines.append(f"📛 Name: *{token.name}*")
    if token.symbol:
        lines.append(f"🏷️ Symbol: *{token.symbol}*")
    if token.address:
        lines.append(f"📍 Address: `{shorten_address(token.address)}`")
    lines.append(f"⛓️ Chain: {capitalize_first(chain)}")
    lines.append("")

    if token.price is not None:
        lines.append(f"💰 Price: *${format_number(token.price, 6)}*")
    if token.market_cap is not None:
        lines.append(f"📊 Market Cap: *${format_large_number(token.market_cap)}*")
    if token.total_supply is not None:
        lines.append(f"🔢 Total Supply: *{format_large_number(token.total_supply)}*")
    if token.decimals is not None:
        lines.append(f"🔸 Decimals: *{token.decimals}*")

    return "\n".join(lines).rstrip() + "\n"


@_fault_boundary("NFT information")
def format_nft_details(nft: NFTDetails) -> str:
    chain = nft.chain
    lines = [f"🖼️ *NFT Details* {get_chain_emoji(chain)}", ""]

    if nft.name:
        lines.append(f"🎨 Name: *{nft.name}*")
    if nft.token_id:
        lines.append(f"🆔 Token ID: *{nft.token_id}*")
    if nft.collection:
        lines.append(f"📚 Collection: *{nft.collection}*")
    if nft.contract_address:
        lines.append(f"📍 Contract: `{shorten_address(nft.contract_address)}`")
    lines.append(f"⛓️ Chain: {capitalize_first(chain)}")
    lines.append("")

    if nft.owner:
        lines.append(f"👤 Owner: `{shorten_address(nft.owner)}`")
    if nft.description:
        description = nft.description
        if len(description) > MAX_DESCRIPTION_LENGTH:
            description = description[:MAX_DESCRIPTION_LENGTH] + "..."
        lines.append(f"📝 Description: {description}")

    attributes = [a for a in nft.attributes if a.trait_type and a.value is not None][:MAX_ATTRIBUTES]
    if attributes:
        lines.append("")
        lines.append("✨ *Attributes:*")
        for attr in attributes:
            lines.append(f"• {attr.trait_type}: {attr.value}")

    return "\n".join(lines).rstrip() + "\n"


@_fault_boundary("price information")
def format_price_query(price: TokenPrice) -> str:
    chain = price.chain
    token_name = price.symbol or price.name or price.query or "Unknown"
    lines = [
        f"💰 *Token Price* {get_chain_emoji(chain)}",
        "",
        f"🪙 Token: *{token_name}*",
        f"⛓️ Chain: {capitalize_first(chain)}",
        "",
    ]

    if price.price is not None:
        lines.append(f"💵 Current Price: *${format_number(price.price, 6)}*")
    if price.price_change_24h is not None:
        change = price.price_change_24h
        emoji = "📈" if change >= 0 else "📉"
        sign = "+" if change >= 0 else ""
        lines.append(f"{emoji} 24h Change: *{sign}{change:.2f}%*")
    if price.volume_24h is not None:
        lines.append(f"📊 24h Volume: *${format_large_number(price.volume_24h)}*")
    if price.market_cap is not None:
        lines.append(f"🏦 Market Cap: *${format_large_number(price.market_cap)}*")
    if price.updated_at:
        lines.append("")
        lines.append(f"🕐 Last Updated: {price.updated_at}")

    return "\n".join(lines).rstrip() + "\n"


@_fault_boundary("transaction information")
def format_transaction_details(tx: TransactionDetails) -> str:
    chain = tx.chain
    symbol = get_chain_symbol(chain)
    lines = [f"🔍 *Transaction Details* {get_chain_emoji(chain)}", ""]

    if tx.hash:
        lines.append(f"🔗 Hash: `{shorten_hash(tx.hash)}`")
    lines.append(f"⛓️ Chain: {capitalize_first(chain)}")
    if tx.status:
        status_emoji = "✅" if tx.status == "success" else "❌"
        lines.append(f"{status_emoji} Status: *{capitalize_first(tx.status)}*")
    if tx.block_number is not None:
        lines.append(f"📦 Block: *{format_number(tx.block_number)}*")
    lines.append("")

    if tx.from_address:
        lines.append(f"📤 From: `{shorten_address(tx.from_address)}`")
    if tx.to_address:
        lines.append(f"📥 To: `{shorten_address(tx.to_address)}`")
    if tx.value is not None:
        lines.append(f"💎 Value: *{tx.value:.4f} {symbol}*")
    gas_fee = tx.gas_fee
    if gas_fee is not None:
        lines.append(f"⛽ Gas Fee: *{gas_fee:.6f} {symbol}*")
    if tx.timestamp is not None:
        lines.append("")
        lines.append(f"🕐 Time: {_format_timestamp(tx.timestamp)}")

    return "\n".join(lines).rstrip() + "\n"


def format_error(message: str) -> str:
    return f'❌ *Error*\n\n{message}\n\nTry sending "help" for available commands! 🆘'


def format_error_reply(message: str | None) -> str:
    """Error reply sent to the user when a query fails."""
    return (
        "❌ *Error*\n\n"
        f"{message or 'An unexpected error occurred'}\n\n"
        "Try:\n"
        "• Checking your wallet address format\n"
        "• Using a supported blockchain (Ethereum, Polygon)\n"
        '• Sending "help" for available commands\n\n'
        'Need assistance? Send "help" for examples! 🔧'
    )


def format_help() -> str:
    return """🪙 *WallyBot - Your Web3 Assistant*

I can help you with:

💰 *Wallet Balance*
"Check balance for 0x742d35..."

🪙 *Token Information*
"What is USDC token?"
"Token info for 0xA0b86..."

🖼️ *NFT Details*
"Show NFT details for 0x123...def #1234"

💵 *Token Prices*
"What's the price of ETH?"

🔍 *Transaction Details*
"Show transaction 0xabc...123"

📊 *Supported Chains*
• Ethereum 🔷
• Polygon 🟣

Just send me a message in natural language! 🚀"""


FORMATTERS = {
    Intent.WALLET_BALANCE: format_wallet_balance,
    Intent.TOKEN_INFO: format_token_info,
    Intent.NFT_DETAILS: format_nft_details,
    Intent.PRICE_QUERY: format_price_query,
    Intent.TRANSACTION_DETAILS: format_transaction_details,
}


def format_for_intent(intent: Intent, payload: Any) -> str:
    """Render ``payload`` with the template registered for ``intent``."""
    formatter = FORMATTERS.get(intent)
    if formatter is None:
        return format_help()
    return formatter(payload)
