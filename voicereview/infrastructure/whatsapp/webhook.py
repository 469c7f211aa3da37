"""
Inbound Webhook Parsing
=======================

Vonage delivers inbound WhatsApp messages in a few slightly different
shapes depending on API version. This module flattens them into one
InboundEvent.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class InboundMessage(BaseModel):
    """Raw inbound webhook body. Unknown fields are kept."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    sender: str = Field(alias="from")
    to: Optional[str] = None
    message_type: str = "text"
    timestamp: Optional[datetime] = None
    text: Optional[str] = None
    audio: Optional[Dict[str, Any]] = None
    message: Optional[Dict[str, Any]] = None
    content: Optional[Dict[str, Any]] = None


class InboundEvent(BaseModel):
    """A normalized inbound turn."""

    sender: str
    timestamp: datetime
    text: Optional[str] = None
    audio_url: Optional[str] = None

    @property
    def is_voice(self) -> bool:
        return self.audio_url is not None


def _dig(data: Optional[Dict[str, Any]], *keys: str) -> Optional[Any]:
    for key in keys:
        if not isinstance(data, dict):
            return None
        data = data.get(key)
    return data


def parse_inbound(message: InboundMessage) -> InboundEvent:
    """Flatten the webhook variations into an InboundEvent."""
    timestamp = message.timestamp or datetime.now(timezone.utc)
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)

    if message.message_type == "audio":
        audio_url = (
            _dig(message.audio, "url")
            or _dig(message.message, "content", "audio", "url")
            or _dig(message.message, "audio", "url")
        )
        return InboundEvent(sender=message.sender, timestamp=timestamp, audio_url=audio_url)

    text = (
        message.text
        or _dig(message.message, "content", "text")
        or _dig(message.content, "text")
        or ""
    )
    return InboundEvent(sender=message.sender, timestamp=timestamp, text=text)
