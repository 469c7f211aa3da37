"""
Shared fixtures: fake collaborators and a fully wired ReviewService.
"""

import time
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from voicereview.application import ReviewService
from voicereview.domain.models import ExtractionResult, VerificationResult
from voicereview.infrastructure.config import Settings, ReviewSettings
from voicereview.infrastructure.llm import GeminiServiceError
from voicereview.infrastructure.persistence import Database
from voicereview.infrastructure.whatsapp import MessagingProvider

SENDER = "447700900123"
T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeProvider(MessagingProvider):
    """Records outbound messages instead of sending them."""

    def __init__(self):
        self.messages: List[tuple] = []
        self.locations: List[tuple] = []

    def connect(self, **kwargs) -> bool:
        return True

    def is_connected(self) -> bool:
        return True

    def send_message(self, phone: str, text: str) -> bool:
        self.messages.append((phone, text))
        return True

    def send_location(self, phone, name, address, latitude, longitude) -> bool:
        self.locations.append((phone, name, address, latitude, longitude))
        return True

    def fetch_media(self, url: str) -> bytes:
        return b"audio"

    def close(self) -> None:
        pass

    def texts(self, phone: str = SENDER) -> List[str]:
        return [text for to, text in self.messages if to == phone]


class FakeTranscriber:
    """Maps audio refs to transcripts; unknown refs fail."""

    def __init__(self, transcripts: Optional[Dict[str, str]] = None):
        self.transcripts = transcripts or {}

    def transcribe(self, audio_ref: str) -> str:
        if audio_ref not in self.transcripts:
            raise GeminiServiceError("cannot transcribe")
        return self.transcripts[audio_ref]


class FakeAnalyzer:
    """Scripted extraction keyed by turn text."""

    def __init__(self, script: Optional[Dict[str, ExtractionResult]] = None, delay: float = 0.0):
        self.script = script or {}
        self.delay = delay
        self.extract_calls: List[str] = []
        self.fail_extraction = False

    def extract(self, text, prior=None) -> ExtractionResult:
        self.extract_calls.append(text)
        if self.delay:
            time.sleep(self.delay)
        if self.fail_extraction:
            raise GeminiServiceError("extraction down")
        return self.script.get(text, ExtractionResult())

    def synthesize(self, transcripts) -> str:
        return "Cleaned: " + " ".join(transcripts)


class FakeVerifier:
    """Every venue exists unless listed in `results`."""

    def __init__(self, results: Optional[Dict[str, VerificationResult]] = None, delay: float = 0.0):
        self.results = results or {}
        self.delay = delay
        self.calls: List[tuple] = []

    def verify(self, name, city=None) -> VerificationResult:
        self.calls.append((name, city))
        if self.delay:
            time.sleep(self.delay)
        if name in self.results:
            return self.results[name]
        return VerificationResult(
            exists=True,
            canonical_name=f"{name} Hotel",
            description="A fine place.",
            location="Paris, France",
            address="1 Rue de Test",
            latitude=48.85,
            longitude=2.35,
            category="boutique",
            amenities=("pool",),
        )


@pytest.fixture
def review_settings():
    return ReviewSettings(
        approval_timeout_seconds=0.05,
        session_timeout_seconds=300,
        sweep_interval_seconds=120,
        location_message_delay_seconds=0.01,
    )


@pytest.fixture
def db(tmp_path):
    database = Database(tmp_path / "catalog.db")
    database.init()
    return database


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def transcriber():
    return FakeTranscriber()


@pytest.fixture
def analyzer():
    return FakeAnalyzer()


@pytest.fixture
def verifier():
    return FakeVerifier()


@pytest.fixture
def service(db, provider, transcriber, analyzer, verifier, review_settings, tmp_path):
    settings = Settings(review=review_settings, database_file=tmp_path / "catalog.db")
    return ReviewService(
        db=db,
        provider=provider,
        transcriber=transcriber,
        analyzer=analyzer,
        verifier=verifier,
        settings=settings,
    )
