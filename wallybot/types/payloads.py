"""
Per-intent result models.

Each model is built from a raw Nodit payload with ``from_nodit`` so the
formatters work over explicit optional fields instead of probing dicts.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

NATIVE_DECIMALS = 18


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse numbers that arrive as ints, floats or numeric strings."""
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            if text.lower().startswith("0x"):
                return Decimal(int(text, 16))
            return Decimal(text)
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def to_int(value: Any) -> Optional[int]:
    number = to_decimal(value)
    if number is None:
        return None
    try:
        return int(number)
    except (ValueError, OverflowError):
        return None


def scale_units(raw: Any, decimals: Any) -> Optional[Decimal]:
    """Convert a raw integer amount into token units."""
    amount = to_decimal(raw)
    if amount is None:
        return None
    places = to_int(decimals)
    if places is None:
        places = NATIVE_DECIMALS
    return amount / (Decimal(10) ** places)


def _first_item(payload: Any) -> Dict[str, Any]:
    """Nodit batch endpoints answer with a list, search endpoints with ``{"items": [...]}``."""
    if isinstance(payload, list):
        return payload[0] if payload and isinstance(payload[0], dict) else {}
    if isinstance(payload, dict):
        items = payload.get("items")
        if isinstance(items, list):
            return items[0] if items and isinstance(items[0], dict) else {}
        return payload
    return {}


class TokenHolding(BaseModel):
    symbol: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    balance: Optional[Decimal] = None


class WalletBalance(BaseModel):
    address: str
    chain: str = "ethereum"
    native_balance: Optional[Decimal] = None
    native_value_usd: Optional[Decimal] = None
    tokens: List[TokenHolding] = Field(default_factory=list)

    @classmethod
    def from_nodit(cls, payload: Dict[str, Any], address: str, chain: str) -> "WalletBalance":
        native = payload.get("native") or {}
        token_payload = payload.get("tokens") or {}
        items = token_payload.get("items", []) if isinstance(token_payload, dict) else token_payload

        tokens: List[TokenHolding] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            contract = item.get("contract") or {}
            tokens.append(
                TokenHolding(
                    symbol=contract.get("symbol"),
                    name=contract.get("name"),
                    address=contract.get("address"),
                    balance=scale_units(item.get("balance"), contract.get("decimals")),
                )
            )

        return cls(
            address=address,
            chain=chain,
            native_balance=scale_units(native.get("balance"), NATIVE_DECIMALS),
            native_value_usd=to_decimal(native.get("balanceUsd") or native.get("valueUsd")),
            tokens=tokens,
        )


class TokenDetails(BaseModel):
    chain: str = "ethereum"
    name: Optional[str] = None
    symbol: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = None
    market_cap: Optional[Decimal] = None
    total_supply: Optional[Decimal] = None
    decimals: Optional[int] = None

    @classmethod
    def from_nodit(cls, payload: Any, chain: str) -> "TokenDetails":
        item = _first_item(payload)
        decimals = to_int(item.get("decimals"))
        return cls(
            chain=chain,
            name=item.get("name"),
            symbol=item.get("symbol"),
            address=item.get("address"),
            price=to_decimal(item.get("price")),
            market_cap=to_decimal(item.get("marketCap")),
            total_supply=scale_units(item.get("totalSupply"), decimals if decimals is not None else 0),
            decimals=decimals,
        )


class TokenPrice(BaseModel):
    chain: str = "ethereum"
    query: Optional[str] = None
    symbol: Optional[str] = None
    name: Optional[str] = None
    address: Optional[str] = None
    price: Optional[Decimal] = None
    price_change_24h: Optional[Decimal] = None
    volume_24h: Optional[Decimal] = None
    market_cap: Optional[Decimal] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_nodit(cls, payload: Any, chain: str, query: Optional[str] = None) -> "TokenPrice":
        item = _first_item(payload)
        contract = item.get("contract") or {}
        return cls(
            chain=chain,
            query=query,
            symbol=contract.get("symbol") or item.get("symbol"),
            name=contract.get("name") or item.get("name"),
            address=contract.get("address") or item.get("address"),
            price=to_decimal(item.get("price")),
            price_change_24h=to_decimal(item.get("percentChangeFor24h")),
            volume_24h=to_decimal(item.get("volumeFor24h")),
            market_cap=to_decimal(item.get("marketCap")),
            updated_at=item.get("updatedAt"),
        )

    @property
    def has_price(self) -> bool:
        return self.price is not None


class NFTAttribute(BaseModel):
    trait_type: Optional[str] = None
    value: Optional[str] = None


class NFTDetails(BaseModel):
    chain: str = "ethereum"
    name: Optional[str] = None
    token_id: Optional[str] = None
    collection: Optional[str] = None
    contract_address: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    attributes: List[NFTAttribute] = Field(default_factory=list)

    @classmethod
    def from_nodit(cls, payload: Any, chain: str) -> "NFTDetails":
        item = _first_item(payload)
        contract = item.get("contract") or {}
        metadata = item.get("metadata") or item.get("rawMetadata") or {}
        if isinstance(metadata, str):
            try:
                metadata = json.loads(metadata)
            except ValueError:
                metadata = {}
        if not isinstance(metadata, dict):
            metadata = {}

        attributes = []
        for attr in metadata.get("attributes") or []:
            if isinstance(attr, dict):
                value = attr.get("value")
                attributes.append(
                    NFTAttribute(
                        trait_type=attr.get("trait_type"),
                        value=None if value is None else str(value),
                    )
                )

        token_id = item.get("tokenId")
        return cls(
            chain=chain,
            name=metadata.get("name") or item.get("name"),
            token_id=None if token_id is None else str(token_id),
            collection=contract.get("name"),
            contract_address=contract.get("address") or item.get("contractAddress"),
            owner=item.get("ownerAddress") or item.get("owner"),
            description=metadata.get("description"),
            image=metadata.get("image"),
            attributes=attributes,
        )


class TransactionDetails(BaseModel):
    chain: str = "ethereum"
    hash: Optional[str] = None
    status: Optional[str] = None
    block_number: Optional[int] = None
    from_address: Optional[str] = None
    to_address: Optional[str] = None
    value: Optional[Decimal] = None
    gas_used: Optional[Decimal] = None
    gas_price: Optional[Decimal] = None
    timestamp: Optional[int] = None

    @classmethod
    def from_nodit(cls, payload: Dict[str, Any], chain: str) -> "TransactionDetails":
        receipt = payload.get("receipt") or {}
        return cls(
            chain=chain,
            hash=payload.get("transactionHash") or payload.get("hash"),
            status=_normalize_status(payload.get("status", receipt.get("status"))),
            block_number=to_int(payload.get("blockNumber")),
            from_address=payload.get("from"),
            to_address=payload.get("to"),
            value=scale_units(payload.get("value"), NATIVE_DECIMALS),
            gas_used=to_decimal(payload.get("gasUsed") or receipt.get("gasUsed")),
            gas_price=to_decimal(payload.get("effectiveGasPrice") or payload.get("gasPrice")),
            timestamp=_normalize_timestamp(payload.get("timestamp")),
        )

    @property
    def gas_fee(self) -> Optional[Decimal]:
        if self.gas_used is None or self.gas_price is None:
            return None
        return self.gas_used * self.gas_price / (Decimal(10) ** NATIVE_DECIMALS)


def _normalize_status(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip().lower()
    if text in ("1", "0x1", "success", "succeeded", "true"):
        return "success"
    if text in ("0", "0x0", "failed", "failure", "reverted", "false"):
        return "failed"
    return text or None


def _normalize_timestamp(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip().lstrip("-").isdigit():
        try:
            return int(datetime.fromisoformat(value.replace("Z", "+00:00")).timestamp())
        except ValueError:
            return None
    return to_int(value)
