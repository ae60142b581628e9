"""WallyBot - WhatsApp Web3 assistant."""

__version__ = "1.0.0"
