"""
Gemini client and LLM service tests with the HTTP layer monkeypatched.
"""

import base64

import pytest
import requests

from voicereview.domain.conversation import merge
from voicereview.domain.models import ReviewSession, Sentiment
from voicereview.infrastructure.config import LLMSettings
from voicereview.infrastructure.llm import (
    GeminiClient,
    GeminiServiceError,
    ReviewAnalysisService,
    TranscriptionService,
    VenueVerificationService,
    parse_json_response,
)
from voicereview.infrastructure.llm import gemini_client
from tests.conftest import T0


class FakeResponse:

    def __init__(self, data=None, status_code=200):
        self._data = data
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        if self._data is None:
            raise ValueError("no json")
        return self._data


def gemini_reply(text):
    return FakeResponse({"candidates": [{"content": {"parts": [{"text": text}]}}]})


@pytest.fixture
def llm_settings():
    return LLMSettings(api_key="test-key", model="gemini-test")


@pytest.fixture
def posted(monkeypatch):
    """Capture requests.post calls and answer from a queue of replies."""
    calls = []
    replies = []

    def fake_post(url, **kwargs):
        calls.append((url, kwargs))
        reply = replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply

    monkeypatch.setattr(gemini_client.requests, "post", fake_post)
    return calls, replies


# ── JSON parsing ───────────────────────────────────────────────────

def test_parse_json_response_strips_code_fences():
    assert parse_json_response('```json\n{"exists": true}\n```') == {"exists": True}


def test_parse_json_response_finds_object_in_prose():
    text = 'Here you go: {"isReview": false} hope that helps'
    assert parse_json_response(text) == {"isReview": False}


def test_parse_json_response_rejects_garbage():
    with pytest.raises(GeminiServiceError):
        parse_json_response("I could not find anything")


def test_parse_json_response_rejects_arrays():
    with pytest.raises(GeminiServiceError):
        parse_json_response("[1, 2, 3]")


# ── GeminiClient ───────────────────────────────────────────────────

def test_generate_without_key_raises():
    client = GeminiClient(LLMSettings(api_key=""))
    assert not client.is_configured
    with pytest.raises(GeminiServiceError):
        client.generate([{"text": "hi"}])


def test_generate_posts_to_model_endpoint(llm_settings, posted):
    calls, replies = posted
    replies.append(gemini_reply("  hello  "))

    assert GeminiClient(llm_settings).generate([{"text": "hi"}]) == "hello"

    url, kwargs = calls[0]
    assert url.endswith("/gemini-test:generateContent")
    assert kwargs["params"] == {"key": "test-key"}
    assert kwargs["json"]["contents"] == [{"parts": [{"text": "hi"}]}]
    assert kwargs["json"]["generationConfig"]["temperature"] == 0.0


def test_generate_timeout_raises_service_error(llm_settings, posted):
    _, replies = posted
    replies.append(requests.Timeout("slow"))

    with pytest.raises(GeminiServiceError):
        GeminiClient(llm_settings).generate([{"text": "hi"}])


def test_generate_http_error_raises_service_error(llm_settings, posted):
    _, replies = posted
    replies.append(FakeResponse({}, status_code=500))

    with pytest.raises(GeminiServiceError):
        GeminiClient(llm_settings).generate([{"text": "hi"}])


def test_generate_empty_candidates_raises(llm_settings, posted):
    _, replies = posted
    replies.append(FakeResponse({"candidates": []}))

    with pytest.raises(GeminiServiceError):
        GeminiClient(llm_settings).generate([{"text": "hi"}])


# ── Services ───────────────────────────────────────────────────────

def test_transcription_sends_inline_audio(llm_settings, posted):
    calls, replies = posted
    replies.append(gemini_reply("The Grand was lovely"))
    service = TranscriptionService(GeminiClient(llm_settings), lambda url: b"OggS-bytes")

    assert service.transcribe("https://media/1") == "The Grand was lovely"

    parts = calls[0][1]["json"]["contents"][0]["parts"]
    assert parts[0]["inline_data"]["mime_type"] == "audio/ogg"
    assert base64.b64decode(parts[0]["inline_data"]["data"]) == b"OggS-bytes"


def test_transcription_of_unintelligible_audio_fails(llm_settings, posted):
    _, replies = posted
    replies.append(gemini_reply("[Unable to transcribe]"))
    service = TranscriptionService(GeminiClient(llm_settings), lambda url: b"noise")

    with pytest.raises(GeminiServiceError):
        service.transcribe("https://media/1")


def test_transcription_of_empty_download_fails(llm_settings, posted):
    service = TranscriptionService(GeminiClient(llm_settings), lambda url: b"")

    with pytest.raises(GeminiServiceError):
        service.transcribe("https://media/1")
    assert posted[0] == []


def test_extract_includes_known_fields_in_prompt(llm_settings, posted):
    calls, replies = posted
    replies.append(gemini_reply(
        '```json\n{"isReview": true, "venueName": "The Grand", '
        '"food": "loved it", "foodScore": 5, "overallSentiment": "positive"}\n```'
    ))
    prior = ReviewSession(sender="1", venue_name="The Grand", reviewer_name="Sam")

    result = ReviewAnalysisService(GeminiClient(llm_settings)).extract("loved the food", prior)

    assert result.is_review
    assert result.venue_name == "The Grand"
    assert result.food.score == 5
    assert result.overall_sentiment is Sentiment.POSITIVE
    prompt = calls[0][1]["json"]["contents"][0]["parts"][0]["text"]
    assert "Sam" in prompt
    assert "loved the food" in prompt


def test_extract_falls_back_to_keyword_sentiment(llm_settings, posted):
    _, replies = posted
    replies.append(gemini_reply('{"isReview": true, "venueName": "The Grand"}'))

    result = ReviewAnalysisService(GeminiClient(llm_settings)).extract(
        "Great pool but the room was dirty"
    )

    assert result.overall_sentiment is Sentiment.MIXED


def test_synthesize_falls_back_to_joined_transcripts(llm_settings, posted):
    _, replies = posted
    replies.append(requests.ConnectionError("down"))

    cleaned = ReviewAnalysisService(GeminiClient(llm_settings)).synthesize(["one", "two"])

    assert cleaned == "one two"


def test_verify_adds_city_to_query(llm_settings, posted):
    calls, replies = posted
    replies.append(gemini_reply(
        '{"exists": true, "fullName": "Drawing House", "latitude": 48.83, "longitude": 2.33}'
    ))

    result = VenueVerificationService(GeminiClient(llm_settings)).verify("Drawing House", "Paris")

    assert result.exists
    assert result.canonical_name == "Drawing House"
    prompt = calls[0][1]["json"]["contents"][0]["parts"][0]["text"]
    assert '"Drawing House, Paris"' in prompt


def test_verify_not_found_returns_suggestion(llm_settings, posted):
    _, replies = posted
    replies.append(gemini_reply('{"exists": false, "similarVenue": "Hotel Lutetia"}'))

    result = VenueVerificationService(GeminiClient(llm_settings)).verify("Hotel Lutecia Paris", "Paris")

    assert not result.exists
    assert result.suggestion == "Hotel Lutetia"


def test_extract_keeps_known_sentiment_when_model_omits_it(llm_settings, posted):
    _, replies = posted
    replies.append(gemini_reply('{"isReview": false, "reviewerName": "Sam"}'))
    prior = ReviewSession(
        sender="1", venue_name="The Grand", overall_sentiment=Sentiment.POSITIVE
    )

    result = ReviewAnalysisService(GeminiClient(llm_settings)).extract("I'm Sam", prior)
    merged = merge(prior, result, "I'm Sam", T0)

    assert result.overall_sentiment is None
    assert merged.overall_sentiment is Sentiment.POSITIVE
    assert merged.reviewer_name == "Sam"


def test_extract_guesses_sentiment_for_session_without_one(llm_settings, posted):
    _, replies = posted
    replies.append(gemini_reply('{"isReview": true, "venueName": "The Grand"}'))
    prior = ReviewSession(sender="1", venue_name="The Grand")

    result = ReviewAnalysisService(GeminiClient(llm_settings)).extract("the staff were rude", prior)

    assert result.overall_sentiment is Sentiment.NEGATIVE
