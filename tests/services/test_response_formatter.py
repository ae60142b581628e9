from decimal import Decimal

from wallybot.services import response_formatter as rf
from wallybot.types import (
    Intent,
    NFTDetails,
    TokenDetails,
    TokenHolding,
    TokenPrice,
    TransactionDetails,
    WalletBalance,
)

ADDRESS = "0x742d35Cc4Bf86C6D8Ba9352532Fd1e42a5D9e69B"
TX_HASH = "0x" + "ab" * 32


def test_shorten_helpers_are_idempotent():
    short = rf.shorten_address(ADDRESS)
    short_hash = rf.shorten_hash(TX_HASH)

    assert short == "0x742d...e69B"
    assert rf.shorten_address(short) == short
    assert short_hash == "0xababab...ababab"
    assert rf.shorten_hash(short_hash) == short_hash
    assert rf.shorten_address(None) is None
    assert rf.shorten_address("0x123") == "0x123"


def test_number_helpers():
    assert rf.format_number(Decimal("1234567.5000")) == "1,234,567.5"
    assert rf.format_number(18000000) == "18,000,000"
    assert rf.format_large_number(2_500_000_000) == "2.50B"
    assert rf.format_large_number(1500) == "1.50K"
    assert rf.format_large_number(12) == "12.00"


def test_wallet_balance_lists_at_most_three_tokens():
    balance = WalletBalance(
        address=ADDRESS,
        chain="polygon",
        native_balance=Decimal("2.5"),
        tokens=[TokenHolding(symbol=s, balance=Decimal("10")) for s in ("AAA", "BBB", "CCC", "DDD")],
    )

    reply = rf.format_wallet_balance(balance)

    assert "💎 Balance: *2.5000 MATIC*" in reply
    assert "⛓️ Chain: Polygon" in reply
    assert "• CCC: 10.00" in reply
    assert "DDD" not in reply
    assert "USD Value" not in reply


def test_wallet_balance_formats_the_same_twice():
    balance = WalletBalance(
        address=ADDRESS,
        native_balance=Decimal("1.5"),
        native_value_usd=Decimal("4500.25"),
        tokens=[TokenHolding(symbol="USDC", balance=Decimal("10"))],
    )

    first = rf.format_wallet_balance(balance)

    assert rf.format_wallet_balance(balance) == first
    assert "USD Value" in first
    assert "USDC" in first


def test_token_info_omits_missing_fields():
    reply = rf.format_token_info(TokenDetails(name="USD Coin", symbol="USDC", decimals=6))

    assert "📛 Name: *USD Coin*" in reply
    assert "🔸 Decimals: *6*" in reply
    assert "Price" not in reply
    assert "Market Cap" not in reply
    assert "Address" not in reply


def test_price_reply_shows_change_and_update_time():
    reply = rf.format_price_query(
        TokenPrice(
            symbol="ETH",
            price=Decimal("3456.789"),
            price_change_24h=Decimal("-1.234"),
            updated_at="2024-01-01T00:00:00Z",
        )
    )

    assert "🪙 Token: *ETH*" in reply
    assert "💵 Current Price: *$3,456.789*" in reply
    assert "📉 24h Change: *-1.23%*" in reply
    assert "🕐 Last Updated: 2024-01-01T00:00:00Z" in reply


def test_price_reply_falls_back_to_query_name():
    reply = rf.format_price_query(TokenPrice(query="PEPE", price_change_24h=Decimal("4")))

    assert "🪙 Token: *PEPE*" in reply
    assert "📈 24h Change: *+4.00%*" in reply


def test_nft_description_is_truncated():
    nft = NFTDetails(name="Ape #1234", token_id="1234", description="x" * 150)

    reply = rf.format_nft_details(nft)

    assert "📝 Description: " + "x" * 100 + "..." in reply
    assert "Owner" not in reply


def test_transaction_details():
    tx = TransactionDetails(
        hash=TX_HASH,
        status="success",
        block_number=18000000,
        from_address=ADDRESS,
        value=Decimal("0.5"),
        gas_used=Decimal(21000),
        gas_price=Decimal(20_000_000_000),
        timestamp=1700000000,
    )

    reply = rf.format_transaction_details(tx)

    assert "🔗 Hash: `0xababab...ababab`" in reply
    assert "✅ Status: *Success*" in reply
    assert "📦 Block: *18,000,000*" in reply
    assert "💎 Value: *0.5000 ETH*" in reply
    assert "⛽ Gas Fee: *0.000420 ETH*" in reply
    assert "🕐 Time: 2023-11-14 22:13:20 UTC" in reply
    assert "📥 To" not in reply


def test_formatting_fault_returns_error_template():
    reply = rf.format_wallet_balance(None)

    assert reply.startswith("❌ *Error*")
    assert "Failed to format wallet balance information" in reply


def test_help_and_error_reply():
    help_text = rf.format_help()
    error = rf.format_error_reply("Unable to fetch wallet balance")

    assert "WallyBot" in help_text
    assert "Polygon 🟣" in help_text
    assert "Unable to fetch wallet balance" in error
    assert 'Sending "help" for available commands' in error
    assert "An unexpected error occurred" in rf.format_error_reply(None)


def test_format_for_intent_dispatches():
    assert rf.format_for_intent(Intent.HELP, None) == rf.format_help()
    assert "*Token Price*" in rf.format_for_intent(Intent.PRICE_QUERY, TokenPrice(symbol="ETH"))
