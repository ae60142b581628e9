"""
Intent Service

Classifies chat messages into intents and renders query results as replies.
Both halves are strategies: an LLM-backed one and a local one, composed so
that any LLM failure falls back to the local result. The local strategies
never raise, so the composed service always answers.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError

from ..providers.llm import LLMMessage, LLMProvider
from ..types import Intent, ParsedIntent
from . import response_formatter
from .message_parser import parse_message

logger = logging.getLogger(__name__)

HEURISTIC_CONFIDENCE = 0.8

INTENT_PARSER_PROMPT = """You are a Web3 assistant parser. Analyze user messages and extract:
1. Intent (wallet_balance, token_info, nft_details, price_query, transaction_details, help)
2. Parameters (addresses, token symbols, chain, etc.)

Respond with JSON only:
{
    "intent": "intent_name",
    "parameters": {
        "address": "0x...",
        "chain": "ethereum|polygon",
        "token": "symbol_or_address",
        "tokenId": "number",
        "txHash": "0x...",
        "query": "search_query"
    },
    "confidence": 0.95
}"""

PERSONA_PROMPT = """You are WallyBot, a friendly WhatsApp Web3 assistant.
Format Web3 data into clear, concise WhatsApp messages.
Use emojis appropriately. Keep responses under 1000 characters.
Be helpful and informative but casual."""

PARSER_TEMPERATURE = 0.1
PARSER_MAX_TOKENS = 200
RESPONDER_TEMPERATURE = 0.7
RESPONDER_MAX_TOKENS = 300

_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(\{.*?\})\s*```", re.DOTALL)
_JSON_OBJECT_RE = re.compile(r"\{[^{}]*(?:\{[^{}]*\}[^{}]*)*\}", re.DOTALL)


class IntentParseError(ValueError):
    """LLM reply could not be turned into a ParsedIntent"""
    pass


def extract_json_object(content: str) -> Dict[str, Any]:
    """Parse a JSON object from an LLM reply, tolerating code fences and chatter."""
    try:
        data = json.loads(content)
        if isinstance(data, dict):
            return data
    except json.JSONDecodeError:
        pass

    for pattern in (_CODE_FENCE_RE, _JSON_OBJECT_RE):
        match = pattern.search(content)
        if not match:
            continue
        try:
            data = json.loads(match.group(1) if match.groups() else match.group(0))
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data

    raise IntentParseError(f"Could not parse JSON from LLM response: {content[:200]}")


# =============================================================================
# Classifiers
# =============================================================================


class IntentClassifier(ABC):
    """Strategy turning a raw message into a ParsedIntent"""

    name: str = "classifier"

    @abstractmethod
    async def classify(self, message: str) -> ParsedIntent:
        pass


class HeuristicIntentClassifier(IntentClassifier):
    """Keyword table plus regex extraction; total over all inputs."""

    name = "heuristic"

    async def classify(self, message: str) -> ParsedIntent:
        return self.classify_sync(message)

    def classify_sync(self, message: str) -> ParsedIntent:
        parsed = parse_message(message or "")
        parameters: Dict[str, str] = {"chain": parsed.blockchain}

        if parsed.intent == Intent.WALLET_BALANCE:
            if parsed.addresses:
                parameters["address"] = parsed.addresses[0]
        elif parsed.intent == Intent.NFT_DETAILS:
            if parsed.addresses:
                parameters["contractAddress"] = parsed.addresses[0]
            if parsed.token_ids:
                parameters["tokenId"] = parsed.token_ids[0]
        elif parsed.intent in (Intent.TOKEN_INFO, Intent.PRICE_QUERY):
            if parsed.addresses:
                parameters["token"] = parsed.addresses[0]
            elif parsed.token_symbols:
                parameters["token"] = parsed.token_symbols[0]
        elif parsed.intent == Intent.TRANSACTION_DETAILS:
            if parsed.transaction_hashes:
                parameters["txHash"] = parsed.transaction_hashes[0]

        return ParsedIntent(intent=parsed.intent, parameters=parameters, confidence=HEURISTIC_CONFIDENCE)


class LLMIntentClassifier(IntentClassifier):
    """Asks the LLM for a strict-JSON classification. Raises on any failure."""

    name = "llm"

    def __init__(self, llm_provider: LLMProvider):
        self.llm_provider = llm_provider

    async def classify(self, message: str) -> ParsedIntent:
        response = await self.llm_provider.generate_response(
            messages=[
                LLMMessage(role="system", content=INTENT_PARSER_PROMPT),
                LLMMessage(role="user", content=message),
            ],
            temperature=PARSER_TEMPERATURE,
            max_tokens=PARSER_MAX_TOKENS,
            json_mode=self.llm_provider.supports_json_mode,
        )
        if not response.content:
            raise IntentParseError("LLM returned an empty classification")

        data = extract_json_object(response.content)
        try:
            parsed = ParsedIntent.model_validate(data)
        except ValidationError as e:
            raise IntentParseError(f"Invalid classification: {e}") from e

        logger.info("Parsed intent: %s (confidence: %s)", parsed.intent.value, parsed.confidence)
        return parsed


class FallbackIntentClassifier(IntentClassifier):
    """Try ``primary``; on any exception log it and use ``fallback``."""

    def __init__(self, primary: IntentClassifier, fallback: IntentClassifier):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def classify(self, message: str) -> ParsedIntent:
        try:
            return await self.primary.classify(message)
        except Exception as e:
            logger.warning("%s intent parsing failed, using %s: %s", self.primary.name, self.fallback.name, e)
            return await self.fallback.classify(message)


# =============================================================================
# Responders
# =============================================================================


class Responder(ABC):
    """Strategy rendering a query result as a chat reply"""

    name: str = "responder"

    @abstractmethod
    async def render(self, payload: Any, intent: Intent) -> str:
        pass


class TemplatedResponder(Responder):
    name = "templated"

    async def render(self, payload: Any, intent: Intent) -> str:
        return response_formatter.format_for_intent(intent, payload)


class LLMResponder(Responder):
    """LLM-authored reply under the WallyBot persona. Raises on any failure."""

    name = "llm"

    def __init__(self, llm_provider: LLMProvider):
        self.llm_provider = llm_provider

    async def render(self, payload: Any, intent: Intent) -> str:
        if isinstance(payload, BaseModel):
            data = payload.model_dump(mode="json", exclude_none=True)
        else:
            data = payload
        content = f'Format this Web3 data for intent "{intent.value}":\n{json.dumps(data, indent=2, default=str)}'

        response = await self.llm_provider.generate_response(
            messages=[
                LLMMessage(role="system", content=PERSONA_PROMPT),
                LLMMessage(role="user", content=content),
            ],
            temperature=RESPONDER_TEMPERATURE,
            max_tokens=RESPONDER_MAX_TOKENS,
        )
        if not response.content or not response.content.strip():
            raise ValueError("LLM returned an empty reply")

        logger.info("Generated AI response for intent: %s", intent.value)
        return response.content.strip()


class FallbackResponder(Responder):
    def __init__(self, primary: Responder, fallback: Responder):
        self.primary = primary
        self.fallback = fallback
        self.name = f"{primary.name}+{fallback.name}"

    async def render(self, payload: Any, intent: Intent) -> str:
        try:
            return await self.primary.render(payload, intent)
        except Exception as e:
            logger.warning("%s response generation failed, using %s: %s", self.primary.name, self.fallback.name, e)
            return await self.fallback.render(payload, intent)


# =============================================================================
# Service
# =============================================================================


class IntentService:
    """Intent parsing and reply generation with LLM-first, local-fallback strategies."""

    def __init__(
        self,
        llm_provider: Optional[LLMProvider] = None,
        *,
        classifier: Optional[IntentClassifier] = None,
        responder: Optional[Responder] = None,
    ):
        self.llm_provider = llm_provider

        if classifier is None:
            classifier = HeuristicIntentClassifier()
            if llm_provider is not None:
                classifier = FallbackIntentClassifier(LLMIntentClassifier(llm_provider), classifier)
        if responder is None:
            responder = TemplatedResponder()
            if llm_provider is not None:
                responder = FallbackResponder(LLMResponder(llm_provider), responder)

        self.classifier = classifier
        self.responder = responder

    @property
    def is_enabled(self) -> bool:
        """Whether an LLM backs this service"""
        return self.llm_provider is not None

    async def parse_user_intent(self, message: str) -> ParsedIntent:
        return await self.classifier.classify(message)

    async def generate_response(self, payload: Any, intent: Intent) -> str:
        return await self.responder.render(payload, intent)

    async def close(self) -> None:
        if self.llm_provider is not None:
            await self.llm_provider.close()
