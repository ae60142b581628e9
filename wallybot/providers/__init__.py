from .base import MessagingProvider, Provider, Web3DataProvider
from .nodit import NoditProvider
from .twilio import TwilioWhatsAppProvider

__all__ = [
    "Provider",
    "Web3DataProvider",
    "MessagingProvider",
    "NoditProvider",
    "TwilioWhatsAppProvider",
]
