from .messaging_provider import (
    MessagingProvider,
    MessagingProviderError,
    VonageProvider,
    LoggingProvider,
    create_provider,
)
from .webhook import InboundMessage, InboundEvent, parse_inbound

__all__ = [
    "MessagingProvider",
    "MessagingProviderError",
    "VonageProvider",
    "LoggingProvider",
    "create_provider",
    "InboundMessage",
    "InboundEvent",
    "parse_inbound",
]
