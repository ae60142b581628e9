from abc import ABC, abstractmethod
from typing import Any, Dict, Mapping, Optional


class Provider(ABC):
    """Base provider interface"""

    name: str
    timeout_s: float = 10

    @abstractmethod
    async def ready(self) -> bool:
        """Check if provider is ready to serve requests"""
        pass

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """Return provider health status"""
        pass


class Web3DataProvider(Provider):
    """Provider for read-only blockchain data (balances, tokens, NFTs, transactions)"""

    @abstractmethod
    async def get_wallet_balance(self, address: str, chain: str = "ethereum") -> Dict[str, Any]:
        """Get native and token balances, shaped as ``{"native": ..., "tokens": ...}``"""
        pass

    @abstractmethod
    async def get_token_info(self, token_address: str, chain: str = "ethereum") -> Any:
        """Get token contract metadata (name, symbol, decimals, supply)"""
        pass

    @abstractmethod
    async def get_token_price(self, token_address: str, chain: str = "ethereum") -> Any:
        """Get current market price data for a token contract"""
        pass

    @abstractmethod
    async def get_nft_details(self, contract_address: str, token_id: str, chain: str = "ethereum") -> Any:
        """Get metadata for a single NFT"""
        pass

    @abstractmethod
    async def search_tokens(self, query: str, chain: str = "ethereum") -> Dict[str, Any]:
        """Search token contracts by name or symbol"""
        pass

    @abstractmethod
    async def get_transaction(self, tx_hash: str, chain: str = "ethereum") -> Dict[str, Any]:
        """Get a transaction by hash"""
        pass


class MessagingProvider(Provider):
    """Provider for sending chat messages and authenticating inbound webhooks"""

    @abstractmethod
    async def send_message(self, to: str, body: str, media_url: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Send a message; returns the provider's message record"""
        pass

    @abstractmethod
    def validate_signature(self, signature: str, url: str, params: Mapping[str, Any]) -> bool:
        """Verify an inbound webhook signature"""
        pass

    @abstractmethod
    def format_phone_number(self, phone_number: str) -> str:
        """Normalize an inbound sender id to a plain international number"""
        pass

    async def send_typing_indicator(self, to: str) -> None:
        """Signal that a reply is being prepared, where the channel supports it"""
        return None
