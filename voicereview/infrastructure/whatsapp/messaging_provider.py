"""
Messaging Provider - Abstraction Layer for WhatsApp Messaging
==============================================================

Provides a unified interface for sending WhatsApp messages and fetching
inbound media. Currently backed by the Vonage Messages API, with a
logging-only provider for local development.

USAGE:
    provider = VonageProvider()
    provider.connect()
    provider.send_message("447700900123", "Hello!")

    # No credentials? Messages are logged instead of sent.
    provider = LoggingProvider()
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

import requests

from ..config import get_settings
from ..config.settings import MessagingSettings
from ...domain.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)


class MessagingProviderError(CollaboratorUnavailable):
    """Raised when media cannot be fetched from the provider."""

    def __init__(self, message: str = ""):
        super().__init__("messaging", message)


class MessagingProvider(ABC):
    """
    Abstract base class for WhatsApp messaging providers.
    Implement this interface to add new messaging backends.

    Sends are fire-and-forget: they return False on failure and never raise.
    """

    @abstractmethod
    def connect(self, **kwargs) -> bool:
        """Connect to the messaging service. Returns True if successful."""
        ...

    @abstractmethod
    def is_connected(self) -> bool:
        """Check if provider is currently connected and ready."""
        ...

    @abstractmethod
    def send_message(self, phone: str, text: str) -> bool:
        """Send a text message to a phone number. Returns True if sent."""
        ...

    @abstractmethod
    def send_location(
        self, phone: str, name: str, address: str, latitude: float, longitude: float
    ) -> bool:
        """Send a location pin. Returns True if sent."""
        ...

    @abstractmethod
    def fetch_media(self, url: str) -> bytes:
        """Download inbound media. Raises MessagingProviderError on failure."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Clean up resources."""
        ...


class VonageProvider(MessagingProvider):
    """WhatsApp over the Vonage Messages API (basic auth)."""

    def __init__(self, settings: Optional[MessagingSettings] = None):
        settings = settings or get_settings().messaging
        self._api_url = settings.api_url
        self._sender = settings.sender_number
        self._channel = settings.channel
        self._timeout = settings.timeout_seconds
        self._auth = (settings.api_key, settings.api_secret)
        self._session: Optional[requests.Session] = None

    def connect(self, **kwargs) -> bool:
        """Prepare an HTTP session with the API credentials."""
        if not all(self._auth) or not self._sender:
            logger.error("VonageProvider: api key, secret and sender number are required")
            return False

        self._session = requests.Session()
        self._session.auth = self._auth
        self._session.headers.update({"Accept": "application/json"})
        return True

    def is_connected(self) -> bool:
        return self._session is not None

    def send_message(self, phone: str, text: str) -> bool:
        return self._post({
            "from": self._sender,
            "to": phone,
            "channel": self._channel,
            "message_type": "text",
            "text": text,
        })

    def send_location(
        self, phone: str, name: str, address: str, latitude: float, longitude: float
    ) -> bool:
        logger.info(f"Sending location pin for {name} to {phone}")
        return self._post({
            "from": self._sender,
            "to": phone,
            "channel": self._channel,
            "message_type": "custom",
            "custom": {
                "type": "location",
                "location": {
                    "latitude": latitude,
                    "longitude": longitude,
                    "name": name,
                    "address": address or name,
                },
            },
        })

    def fetch_media(self, url: str) -> bytes:
        if not self._session:
            raise MessagingProviderError("not connected")

        try:
            response = self._session.get(url, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise MessagingProviderError(f"media download failed: {e}") from e

        logger.info(f"Downloaded {len(response.content)} bytes from {url}")
        return response.content

    def _post(self, payload: dict) -> bool:
        if not self._session:
            logger.error("VonageProvider: not connected")
            return False

        try:
            response = self._session.post(self._api_url, json=payload, timeout=self._timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning(f"Send to {payload.get('to')} failed: {e}")
            return False

        try:
            message_uuid = response.json().get("message_uuid")
        except ValueError:
            message_uuid = None
        logger.info(f"Message sent to {payload.get('to')}: {message_uuid}")
        return True

    def close(self) -> None:
        if self._session:
            self._session.close()
            self._session = None


class LoggingProvider(MessagingProvider):
    """
    Development provider that logs outbound messages instead of sending them.
    Used automatically when Vonage credentials are missing.
    """

    def connect(self, **kwargs) -> bool:
        logger.warning("LoggingProvider: outbound messages will only be logged")
        return True

    def is_connected(self) -> bool:
        return True

    def send_message(self, phone: str, text: str) -> bool:
        logger.info(f"[dry-run] to {phone}: {text}")
        return True

    def send_location(
        self, phone: str, name: str, address: str, latitude: float, longitude: float
    ) -> bool:
        logger.info(f"[dry-run] location to {phone}: {name} ({latitude}, {longitude})")
        return True

    def fetch_media(self, url: str) -> bytes:
        try:
            response = requests.get(url, timeout=15)
            response.raise_for_status()
        except requests.RequestException as e:
            raise MessagingProviderError(f"media download failed: {e}") from e
        return response.content

    def close(self) -> None:
        pass


def create_provider(settings: Optional[MessagingSettings] = None) -> MessagingProvider:
    """Pick the Vonage provider when configured, otherwise the logging one."""
    settings = settings or get_settings().messaging
    provider: MessagingProvider = VonageProvider(settings) if settings.is_configured else LoggingProvider()
    if not provider.connect():
        provider = LoggingProvider()
        provider.connect()
    return provider
