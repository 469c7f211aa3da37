"""Outbound notifications, run off the event loop and never raising."""

import asyncio
import logging

from ..infrastructure.whatsapp import MessagingProvider

logger = logging.getLogger(__name__)


class Notifier:

    def __init__(self, provider: MessagingProvider):
        self._provider = provider

    async def send(self, recipient: str, text: str) -> bool:
        try:
            sent = await asyncio.to_thread(self._provider.send_message, recipient, text)
        except Exception as e:
            logger.exception(f"Sending message to {recipient} failed: {e}")
            return False
        if not sent:
            logger.warning(f"Message to {recipient} was not delivered")
        return sent

    async def send_location(
        self, recipient: str, name: str, address: str, latitude: float, longitude: float
    ) -> bool:
        try:
            sent = await asyncio.to_thread(
                self._provider.send_location, recipient, name, address, latitude, longitude
            )
        except Exception as e:
            logger.exception(f"Sending location to {recipient} failed: {e}")
            return False
        if not sent:
            logger.warning(f"Location for {name} to {recipient} was not delivered")
        return sent
