from enum import Enum
from typing import Any, Dict

from pydantic import BaseModel, Field, field_validator


class Intent(str, Enum):
    """Purpose of an inbound chat message."""

    WALLET_BALANCE = "wallet_balance"
    TOKEN_INFO = "token_info"
    NFT_DETAILS = "nft_details"
    PRICE_QUERY = "price_query"
    TRANSACTION_DETAILS = "transaction_details"
    HELP = "help"


class ParsedIntent(BaseModel):
    """Classified message: the intent, its extracted parameters and a confidence score."""

    intent: Intent = Field(description="Classified intent")
    parameters: Dict[str, str] = Field(default_factory=dict, description="Extracted parameters")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Classifier confidence")

    @field_validator("parameters", mode="before")
    @classmethod
    def _stringify_parameters(cls, value: Any) -> Dict[str, str]:
        # LLM replies carry nulls and numbers ("tokenId": 1234)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise ValueError("parameters must be an object")
        cleaned: Dict[str, str] = {}
        for key, item in value.items():
            if item is None or isinstance(item, (dict, list)):
                continue
            text = str(item).strip()
            if text:
                cleaned[str(key)] = text
        return cleaned

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        if value is None:
            return 0.0
        return min(1.0, max(0.0, float(value)))

    def param(self, *names: str) -> str | None:
        """Return the first non-empty parameter among ``names``."""
        for name in names:
            value = self.parameters.get(name)
            if value:
                return value
        return None
