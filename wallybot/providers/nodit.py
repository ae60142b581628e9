"""
Nodit Web3 Data API client.

Each call resolves a chain alias to Nodit's ``{protocol}/{network}`` path,
issues a single POST and returns the JSON payload. HTTP failures propagate
to the caller unchanged; nothing is retried.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..config import Settings, settings as default_settings
from .base import Web3DataProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChainConfig:
    protocol: str
    network: str


DEFAULT_CHAIN_CONFIG = ChainConfig(protocol="ethereum", network="mainnet")

CHAIN_CONFIGS: Dict[str, ChainConfig] = {
    "ethereum": DEFAULT_CHAIN_CONFIG,
    "eth": DEFAULT_CHAIN_CONFIG,
    "polygon": ChainConfig(protocol="polygon", network="mainnet"),
    "matic": ChainConfig(protocol="polygon", network="mainnet"),
    "poly": ChainConfig(protocol="polygon", network="mainnet"),
}

TOKEN_SEARCH_PAGE_SIZE = 10


def resolve_chain(chain: Optional[str]) -> ChainConfig:
    """Map a chain alias to its protocol/network pair. Unknown aliases fall back to Ethereum mainnet."""
    return CHAIN_CONFIGS.get((chain or "").strip().lower(), DEFAULT_CHAIN_CONFIG)


class NoditProvider(Web3DataProvider):
    """Nodit Web3 Data API provider for Ethereum and Polygon"""

    name = "nodit"

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.api_key = settings.nodit_api_key
        self.base_url = settings.nodit_base_url.rstrip("/")
        self.timeout_s = settings.request_timeout_seconds

    def _headers(self) -> Dict[str, str]:
        return {
            "X-API-KEY": self.api_key,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    def _url(self, chain: str, path: str) -> str:
        config = resolve_chain(chain)
        return f"{self.base_url}/v1/{config.protocol}/{config.network}/{path}"

    async def _post(self, chain: str, path: str, payload: Dict[str, Any]) -> Any:
        url = self._url(chain, path)
        async with httpx.AsyncClient() as client:
            response = await client.post(
                url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout_s,
            )
            response.raise_for_status()
            return response.json()

    async def ready(self) -> bool:
        return bool(self.api_key)

    async def health_check(self) -> Dict[str, Any]:
        if not await self.ready():
            return {
                "status": "unavailable",
                "reason": "API key not configured",
            }

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self._url("ethereum", "blockchain/getNextNonceByAccount"),
                    json={"accountAddress": "0x0000000000000000000000000000000000000000"},
                    headers=self._headers(),
                    timeout=self.timeout_s,
                )
                response.raise_for_status()
                return {"status": "healthy", "latency_ms": int(response.elapsed.total_seconds() * 1000)}
        except httpx.HTTPError as e:
            return {"status": "error", "reason": str(e)}

    async def get_native_balance(self, address: str, chain: str = "ethereum") -> Dict[str, Any]:
        """Native coin balance in wei (ETH / MATIC)"""
        try:
            data = await self._post(chain, "native/getNativeBalanceByAccount", {"accountAddress": address})
        except httpx.HTTPError as e:
            logger.error("Failed to get native balance for %s on %s: %s", address, chain, e)
            raise
        logger.info("Retrieved native balance for %s on %s", address, chain)
        return data

    async def get_tokens_owned(self, address: str, chain: str = "ethereum") -> Dict[str, Any]:
        """ERC-20 holdings with contract metadata"""
        try:
            data = await self._post(
                chain,
                "token/getTokensOwnedByAccount",
                {"accountAddress": address, "withCount": False},
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get token holdings for %s on %s: %s", address, chain, e)
            raise
        logger.info("Retrieved token holdings for %s on %s", address, chain)
        return data

    async def get_wallet_balance(self, address: str, chain: str = "ethereum") -> Dict[str, Any]:
        native = await self.get_native_balance(address, chain)
        tokens = await self.get_tokens_owned(address, chain)
        return {"native": native, "tokens": tokens}

    async def get_token_info(self, token_address: str, chain: str = "ethereum") -> Any:
        try:
            data = await self._post(
                chain,
                "token/getTokenContractMetadataByContracts",
                {"contractAddresses": [token_address]},
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get token info for %s on %s: %s", token_address, chain, e)
            raise
        logger.info("Retrieved token info for %s on %s", token_address, chain)
        return data

    async def get_token_price(self, token_address: str, chain: str = "ethereum") -> Any:
        try:
            data = await self._post(
                chain,
                "token/getTokenPricesByContracts",
                {"contractAddresses": [token_address], "currency": "USD"},
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get token price for %s on %s: %s", token_address, chain, e)
            raise
        logger.info("Retrieved price for token %s on %s", token_address, chain)
        return data

    async def get_nft_details(self, contract_address: str, token_id: str, chain: str = "ethereum") -> Any:
        try:
            data = await self._post(
                chain,
                "nft/getNftMetadataByTokenIds",
                {"tokens": [{"contractAddress": contract_address, "tokenId": str(token_id)}]},
            )
        except httpx.HTTPError as e:
            logger.error(
                "Failed to get NFT details for %s/%s on %s: %s", contract_address, token_id, chain, e
            )
            raise
        logger.info("Retrieved NFT details for %s/%s on %s", contract_address, token_id, chain)
        return data

    async def search_tokens(self, query: str, chain: str = "ethereum") -> Dict[str, Any]:
        try:
            data = await self._post(
                chain,
                "token/searchTokenContractMetadataByKeyword",
                {"keyword": query, "rpp": TOKEN_SEARCH_PAGE_SIZE},
            )
        except httpx.HTTPError as e:
            logger.error("Failed to search tokens with query %s on %s: %s", query, chain, e)
            raise
        logger.info("Searched for tokens with query: %s on %s", query, chain)
        return data

    async def get_transaction(self, tx_hash: str, chain: str = "ethereum") -> Dict[str, Any]:
        try:
            data = await self._post(
                chain,
                "blockchain/getTransactionByHash",
                {"transactionHash": tx_hash, "withLogs": False, "withDecode": False},
            )
        except httpx.HTTPError as e:
            logger.error("Failed to get transaction %s on %s: %s", tx_hash, chain, e)
            raise
        logger.info("Retrieved transaction %s on %s", tx_hash, chain)
        return data
