"""
Webhook Controller

Handles one inbound WhatsApp message end to end:

    Received -> SignatureChecked -> IntentParsed -> Dispatched
             -> ResponseFormatted -> Sent -> Acknowledged

The signature is checked by the route dependency before the controller runs.
Bad user input and provider failures are answered inside the chat reply with
HTTP 200; anything else is a 500.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Union

import httpx

from ..providers.base import MessagingProvider, Web3DataProvider
from ..services import response_formatter
from ..services.intent_service import IntentService
from ..services.validators import (
    validate_address,
    validate_chain,
    validate_token,
    validate_token_id,
    validate_transaction_hash,
)
from ..types import (
    Intent,
    NFTDetails,
    ParsedIntent,
    TokenDetails,
    TokenPrice,
    TransactionDetails,
    WalletBalance,
)
from .errors import InputError, UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_CHAIN = "ethereum"
LOG_PREVIEW_LENGTH = 100

# HTTP failures and undecodable response bodies
PROVIDER_ERRORS = (httpx.HTTPError, ValueError)

WALLET_GUIDANCE = "Please provide a valid wallet address. Example: 'Check balance for 0x742d35Cc4Bf86C6...abc'"
TOKEN_GUIDANCE = (
    "Please specify a token symbol or address. "
    "Example: 'What is USDC token?' or 'Token info for 0xA0b86...123'"
)
NFT_GUIDANCE = (
    "Please provide both NFT contract address and token ID. "
    "Example: 'Show NFT details for 0x123...def #1234'"
)
PRICE_GUIDANCE = "Please specify a token for price information. Example: 'What's the price of ETH?'"
TRANSACTION_GUIDANCE = "Please provide a transaction hash. Example: 'Show transaction 0xabc...123'"

Payload = Union[WalletBalance, TokenDetails, NFTDetails, TokenPrice, TransactionDetails]


class WebhookStage(str, Enum):
    RECEIVED = "received"
    SIGNATURE_CHECKED = "signature_checked"
    INTENT_PARSED = "intent_parsed"
    DISPATCHED = "dispatched"
    RESPONSE_FORMATTED = "response_formatted"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"


@dataclass
class WebhookResult:
    """Outcome of one inbound message, rendered by the route as the HTTP response."""

    status_code: int
    body: Union[str, Dict[str, Any]]
    stage: WebhookStage
    phone_number: Optional[str] = None
    intent: Optional[ParsedIntent] = None
    reply: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class WebhookController:
    def __init__(
        self,
        data_provider: Web3DataProvider,
        messaging: MessagingProvider,
        intent_service: IntentService,
    ):
        self.data_provider = data_provider
        self.messaging = messaging
        self.intent_service = intent_service

    async def handle_incoming_message(
        self,
        body: Optional[str],
        from_: Optional[str],
        message_sid: Optional[str] = None,
    ) -> WebhookResult:
        result = WebhookResult(status_code=200, body="OK", stage=WebhookStage.SIGNATURE_CHECKED)
        try:
            result.phone_number = self.messaging.format_phone_number(from_ or "")
            text = body or ""
            logger.info("Received message %s from %s: %s", message_sid, result.phone_number, text)

            await self.messaging.send_typing_indicator(result.phone_number)

            result.intent = await self.intent_service.parse_user_intent(text)
            result.stage = WebhookStage.INTENT_PARSED
            logger.info(
                "Parsed intent: %s (confidence: %s)",
                result.intent.intent.value,
                result.intent.confidence,
            )

            result.reply = await self.process_user_request(result.intent, result)
            result.stage = WebhookStage.RESPONSE_FORMATTED

            await self.messaging.send_message(result.phone_number, result.reply)
            result.stage = WebhookStage.SENT
            logger.info("Sent response to %s: %s...", result.phone_number, result.reply[:LOG_PREVIEW_LENGTH])

            result.stage = WebhookStage.ACKNOWLEDGED
            return result
        except Exception:
            logger.exception("Error in webhook handler at stage %s", result.stage.value)
            if result.phone_number and result.stage != WebhookStage.SENT:
                await self._send_error_reply(result.phone_number)
            result.status_code = 500
            result.body = {"error": "Internal server error"}
            return result

    async def _send_error_reply(self, phone_number: str) -> None:
        try:
            await self.messaging.send_message(phone_number, response_formatter.format_error_reply(None))
        except Exception as e:
            logger.error("Failed to send error reply to %s: %s", phone_number, e)

    async def process_user_request(self, parsed: ParsedIntent, result: Optional[WebhookResult] = None) -> str:
        """Dispatch on intent and render the reply.

        Missing or malformed parameters come back as guidance text and
        provider failures as the error template; neither raises.
        """
        try:
            payload = await self.dispatch(parsed)
            if result is not None:
                result.stage = WebhookStage.DISPATCHED
            if payload is None:
                return response_formatter.format_help()
            return await self.intent_service.generate_response(payload, parsed.intent)
        except InputError as e:
            logger.info("Rejected %s request: %s", parsed.intent.value, e.message)
            return e.message
        except UpstreamError as e:
            logger.error("Error processing %s request: %s", parsed.intent.value, e.message)
            return response_formatter.format_error_reply(e.message)

    async def build_reply(self, message: str) -> str:
        """Parse and answer ``message`` without sending anything."""
        parsed = await self.intent_service.parse_user_intent(message)
        return await self.process_user_request(parsed)

    async def dispatch(self, parsed: ParsedIntent) -> Optional[Payload]:
        """Run the provider query for ``parsed``; ``None`` means reply with help."""
        chain = self._resolve_chain(parsed.param("chain"))

        if parsed.intent == Intent.WALLET_BALANCE:
            return await self.handle_wallet_balance(parsed, chain)
        if parsed.intent == Intent.TOKEN_INFO:
            return await self.handle_token_info(parsed, chain)
        if parsed.intent == Intent.NFT_DETAILS:
            return await self.handle_nft_details(parsed, chain)
        if parsed.intent == Intent.PRICE_QUERY:
            return await self.handle_price_query(parsed, chain)
        if parsed.intent == Intent.TRANSACTION_DETAILS:
            return await self.handle_transaction_details(parsed, chain)
        return None

    def _resolve_chain(self, chain: Optional[str]) -> str:
        resolved = validate_chain(chain)
        if not resolved.is_valid:
            logger.warning("%s, using %s", resolved.error, DEFAULT_CHAIN)
            return DEFAULT_CHAIN
        return resolved.formatted

    async def handle_wallet_balance(self, parsed: ParsedIntent, chain: str) -> WalletBalance:
        address = parsed.param("address")
        if not validate_address(address).is_valid:
            raise InputError(WALLET_GUIDANCE)
        address = address.strip()

        try:
            data = await self.data_provider.get_wallet_balance(address, chain)
        except PROVIDER_ERRORS as e:
            raise UpstreamError("Unable to fetch wallet balance. Please check the address and try again.") from e
        return WalletBalance.from_nodit(data, address=address, chain=chain)

    async def handle_token_info(self, parsed: ParsedIntent, chain: str) -> TokenDetails:
        token = parsed.param("token", "address", "query")
        checked = validate_token(token)
        if not checked.is_valid:
            raise InputError(TOKEN_GUIDANCE)

        not_found = f'Unable to find information for token "{token}". Please check the symbol or address.'
        try:
            if checked.kind == "address":
                details = TokenDetails.from_nodit(await self.data_provider.get_token_info(token.strip(), chain), chain)
            else:
                results = await self.data_provider.search_tokens(checked.formatted, chain)
                items = (results or {}).get("items") or []
                if not items:
                    raise UpstreamError(not_found)
                details = TokenDetails.from_nodit(items, chain)
        except PROVIDER_ERRORS as e:
            raise UpstreamError(not_found) from e

        if not (details.name or details.symbol or details.address):
            raise UpstreamError(not_found)
        return details

    async def handle_nft_details(self, parsed: ParsedIntent, chain: str) -> NFTDetails:
        contract_address = parsed.param("contractAddress", "address")
        token_id = parsed.param("tokenId")
        if not validate_address(contract_address).is_valid or not validate_token_id(token_id).is_valid:
            raise InputError(NFT_GUIDANCE)

        try:
            data = await self.data_provider.get_nft_details(contract_address.strip(), token_id.strip(), chain)
        except PROVIDER_ERRORS as e:
            raise UpstreamError(
                "Unable to fetch NFT details. Please check the contract address and token ID."
            ) from e
        return NFTDetails.from_nodit(data, chain)

    async def handle_price_query(self, parsed: ParsedIntent, chain: str) -> TokenPrice:
        token = parsed.param("token", "address", "query")
        checked = validate_token(token)
        if not checked.is_valid:
            raise InputError(PRICE_GUIDANCE)

        unavailable = f'Unable to get price for "{token}". Please check the token symbol or address.'
        try:
            if checked.kind == "address":
                price = TokenPrice.from_nodit(
                    await self.data_provider.get_token_price(token.strip(), chain),
                    chain,
                    query=token,
                )
            else:
                price = await self._price_by_symbol(checked.formatted, chain, unavailable)
        except PROVIDER_ERRORS as e:
            raise UpstreamError(unavailable) from e

        if not price.has_price:
            logger.warning("Price data not available for %s on %s", token, chain)
            raise UpstreamError(unavailable)
        return price

    async def _price_by_symbol(self, symbol: str, chain: str, unavailable: str) -> TokenPrice:
        results = await self.data_provider.search_tokens(symbol, chain)
        items = (results or {}).get("items") or []
        match = items[0] if items and isinstance(items[0], dict) else None
        if not match or not match.get("address"):
            raise UpstreamError(unavailable)

        price = TokenPrice.from_nodit(
            await self.data_provider.get_token_price(match["address"], chain),
            chain,
            query=symbol,
        )
        return price.model_copy(
            update={
                "symbol": match.get("symbol") or price.symbol,
                "name": match.get("name") or price.name,
                "address": price.address or match["address"],
            }
        )

    async def handle_transaction_details(self, parsed: ParsedIntent, chain: str) -> TransactionDetails:
        tx_hash = parsed.param("txHash", "hash", "transactionHash")
        if not validate_transaction_hash(tx_hash).is_valid:
            raise InputError(TRANSACTION_GUIDANCE)

        try:
            data = await self.data_provider.get_transaction(tx_hash.strip(), chain)
        except PROVIDER_ERRORS as e:
            raise UpstreamError("Unable to fetch transaction details. Please check the transaction hash.") from e
        if not data:
            raise UpstreamError("Unable to fetch transaction details. Please check the transaction hash.")
        return TransactionDetails.from_nodit(data, chain)
