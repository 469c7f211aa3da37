"""
Review Service - Wires the Application Layer Together
======================================================

One object owning the session store, venue catalog, controller, sweep
and deferred tasks, so the web layer has a single handle to start,
query and stop.
"""

import logging
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from .concurrency import DeferredTasks
from .finalizer import VenueFinalizer
from .outbound import Notifier
from .reclamation import ReclamationSweep
from .session_controller import SessionController
from .session_store import InMemorySessionStore, SessionStore
from .venue_catalog import VenueCatalog
from ..infrastructure.config import Settings, get_settings
from ..infrastructure.llm import (
    GeminiClient,
    ReviewAnalysisService,
    TranscriptionService,
    VenueVerificationService,
)
from ..infrastructure.persistence import Database, init_database
from ..infrastructure.whatsapp import MessagingProvider, create_provider

logger = logging.getLogger(__name__)


class TranscriptLog:
    """Per-sender history of received voice notes, newest last."""

    def __init__(self):
        self._entries: Dict[str, List[Dict[str, Any]]] = defaultdict(list)

    def record(self, sender: str, timestamp: datetime, audio_url: str, transcript: Optional[str]):
        self._entries[sender].append({
            "timestamp": timestamp.isoformat(),
            "audioUrl": audio_url,
            "transcript": transcript if transcript is not None else "Transcription failed - check logs",
        })

    def all(self) -> Dict[str, List[Dict[str, Any]]]:
        return {sender: list(entries) for sender, entries in self._entries.items()}

    def clear(self):
        self._entries.clear()


class ReviewService:

    def __init__(
        self,
        db: Database,
        provider: MessagingProvider,
        transcriber,
        analyzer,
        verifier,
        settings: Settings,
        store: Optional[SessionStore] = None,
    ):
        review_settings = settings.review
        self.provider = provider
        self.deferred = DeferredTasks()
        self.catalog = VenueCatalog(db)
        self.transcripts = TranscriptLog()

        notifier = Notifier(provider)
        self.finalizer = VenueFinalizer(
            self.catalog, verifier, notifier, self.deferred, review_settings
        )
        self.controller = SessionController(
            store or InMemorySessionStore(),
            transcriber,
            analyzer,
            self.finalizer,
            notifier,
            self.deferred,
            review_settings,
        )
        self.sweep = ReclamationSweep(self.controller, self.finalizer, review_settings)

    async def handle_voice(self, sender: str, audio_url: str, timestamp: datetime) -> None:
        transcript = await self.controller.ingest_voice_turn(sender, audio_url, timestamp)
        self.transcripts.record(sender, timestamp, audio_url, transcript)

    async def handle_text(self, sender: str, text: str, timestamp: datetime) -> None:
        await self.controller.ingest_text_turn(sender, text, timestamp)

    def start(self) -> None:
        self.sweep.start()

    async def stop(self) -> None:
        await self.sweep.stop()
        await self.deferred.shutdown()
        self.provider.close()


def build_service(settings: Optional[Settings] = None) -> ReviewService:
    """Create a ReviewService backed by Gemini, Vonage and SQLite."""
    settings = settings or get_settings()

    for issue in settings.validate():
        logger.warning(issue)

    db = init_database(settings.database_file)

    provider = create_provider(settings.messaging)
    gemini = GeminiClient(settings.llm)

    return ReviewService(
        db=db,
        provider=provider,
        transcriber=TranscriptionService(gemini, provider.fetch_media),
        analyzer=ReviewAnalysisService(gemini),
        verifier=VenueVerificationService(gemini),
        settings=settings,
    )
