"""
Webhook parsing and Vonage provider tests.
"""

from datetime import datetime, timezone

import pytest
import requests

from voicereview.infrastructure.config import MessagingSettings
from voicereview.infrastructure.whatsapp import (
    InboundMessage,
    LoggingProvider,
    MessagingProviderError,
    VonageProvider,
    create_provider,
    parse_inbound,
)


# ── Inbound webhooks ───────────────────────────────────────────────

def test_parse_voice_message():
    message = InboundMessage.model_validate({
        "from": "447700900123",
        "to": "14157386102",
        "message_type": "audio",
        "timestamp": "2026-10-19T12:00:00Z",
        "audio": {"url": "https://api.nexmo.com/v3/media/abc"},
        "channel": "whatsapp",
    })

    event = parse_inbound(message)

    assert event.is_voice
    assert event.sender == "447700900123"
    assert event.audio_url == "https://api.nexmo.com/v3/media/abc"
    assert event.timestamp == datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_parse_nested_voice_message():
    message = InboundMessage.model_validate({
        "from": "447700900123",
        "message_type": "audio",
        "message": {"content": {"audio": {"url": "https://media/nested"}}},
    })

    assert parse_inbound(message).audio_url == "https://media/nested"


def test_parse_text_message():
    message = InboundMessage.model_validate({
        "from": "447700900123",
        "message_type": "text",
        "text": "yes",
    })

    event = parse_inbound(message)

    assert not event.is_voice
    assert event.text == "yes"
    assert event.timestamp.tzinfo is not None


def test_parse_nested_text_message():
    message = InboundMessage.model_validate({
        "from": "447700900123",
        "message": {"content": {"text": "no"}},
    })

    assert parse_inbound(message).text == "no"


def test_naive_timestamp_is_treated_as_utc():
    message = InboundMessage.model_validate({
        "from": "1", "text": "hi", "timestamp": "2026-10-19T12:00:00",
    })

    assert parse_inbound(message).timestamp.tzinfo == timezone.utc


# ── Providers ──────────────────────────────────────────────────────

@pytest.fixture
def vonage_settings():
    return MessagingSettings(api_key="key", api_secret="secret", sender_number="14157386102")


def test_create_provider_without_credentials_logs_only():
    provider = create_provider(MessagingSettings(api_key="", api_secret="", sender_number=""))
    assert isinstance(provider, LoggingProvider)
    assert provider.send_message("1", "hello")


def test_create_provider_with_credentials_uses_vonage(vonage_settings):
    provider = create_provider(vonage_settings)
    assert isinstance(provider, VonageProvider)
    assert provider.is_connected()
    provider.close()
    assert not provider.is_connected()


class RecordingSession:

    def __init__(self, fail=False):
        self.fail = fail
        self.posts = []

    def post(self, url, json=None, timeout=None):
        self.posts.append((url, json))
        if self.fail:
            raise requests.ConnectionError("down")
        return self

    def get(self, url, timeout=None):
        if self.fail:
            raise requests.ConnectionError("down")
        self.content = b"audio"
        return self

    def raise_for_status(self):
        pass

    def json(self):
        return {"message_uuid": "uuid-1"}

    def close(self):
        pass


def test_vonage_send_message_payload(vonage_settings):
    provider = VonageProvider(vonage_settings)
    provider._session = session = RecordingSession()

    assert provider.send_message("447700900123", "Thanks!")

    url, payload = session.posts[0]
    assert url == "https://api.nexmo.com/v1/messages"
    assert payload == {
        "from": "14157386102",
        "to": "447700900123",
        "channel": "whatsapp",
        "message_type": "text",
        "text": "Thanks!",
    }


def test_vonage_send_location_payload(vonage_settings):
    provider = VonageProvider(vonage_settings)
    provider._session = session = RecordingSession()

    assert provider.send_location("447700900123", "The Grand", "1 Rue de Test", 48.85, 2.35)

    payload = session.posts[0][1]
    assert payload["message_type"] == "custom"
    assert payload["custom"]["location"] == {
        "latitude": 48.85,
        "longitude": 2.35,
        "name": "The Grand",
        "address": "1 Rue de Test",
    }


def test_vonage_send_failure_returns_false(vonage_settings):
    provider = VonageProvider(vonage_settings)
    provider._session = RecordingSession(fail=True)

    assert provider.send_message("447700900123", "Thanks!") is False


def test_vonage_send_when_not_connected_returns_false(vonage_settings):
    assert VonageProvider(vonage_settings).send_message("1", "hi") is False


def test_vonage_fetch_media(vonage_settings):
    provider = VonageProvider(vonage_settings)
    provider._session = RecordingSession()
    assert provider.fetch_media("https://media/1") == b"audio"

    provider._session = RecordingSession(fail=True)
    with pytest.raises(MessagingProviderError):
        provider.fetch_media("https://media/1")
