"""
Session Controller - Conversational Review State Machine
=========================================================

Drives one ReviewSession per sender through

    COLLECTING -> AWAITING_APPROVAL -> COMPLETED
                                    -> ABANDONED
                                    -> COLLECTING (venue could not be verified)

CONCURRENCY:
- Every transition for a sender runs under that sender's lock, so
  duplicate or racing deliveries are applied one after the other.
- Collaborators are blocking HTTP clients and run in worker threads.
- The approval timer and an explicit reply both resolve through
  _resolve_approval(), which is a no-op once awaiting_approval is False.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .concurrency import DeferredTasks, KeyedLocks
from .finalizer import FinalizeOutcome, FinalizeResult, VenueFinalizer
from .outbound import Notifier
from .session_store import SessionStore
from ..domain.conversation import (
    APPROVAL_PROMPT,
    APPROVAL_REPROMPT,
    REJECTED_NOTICE,
    VENUE_QUESTION,
    ApprovalReply,
    follow_up_question,
    merge,
    missing_items,
    parse_approval,
)
from ..domain.errors import CollaboratorUnavailable
from ..domain.models import ReviewSession, SessionState
from ..infrastructure.config import ReviewSettings

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionController:
    """
    USAGE:
        controller = SessionController(store, transcriber, analyzer, finalizer, notifier, ...)
        await controller.ingest_voice_turn("447700900123", audio_url, timestamp)
        await controller.ingest_text_turn("447700900123", "yes", timestamp)
    """

    def __init__(
        self,
        store: SessionStore,
        transcriber,
        analyzer,
        finalizer: VenueFinalizer,
        notifier: Notifier,
        deferred: DeferredTasks,
        settings: ReviewSettings,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._transcriber = transcriber
        self._analyzer = analyzer
        self._finalizer = finalizer
        self._notifier = notifier
        self._deferred = deferred
        self._settings = settings
        self._clock = clock
        self._locks = KeyedLocks()

    @property
    def store(self) -> SessionStore:
        return self._store

    def sender_lock(self, sender: str):
        """Async context manager; shared with the reclamation sweep."""
        return self._locks.hold(sender)

    # ── Entry points ───────────────────────────────────────────────

    async def ingest_voice_turn(
        self, sender: str, audio_ref: str, timestamp: datetime
    ) -> Optional[str]:
        """
        Transcribe a voice note and feed it into the sender's conversation.

        Returns the transcript, or None if transcription failed.
        """
        try:
            transcript = await asyncio.to_thread(self._transcriber.transcribe, audio_ref)
        except CollaboratorUnavailable as e:
            logger.warning(f"Transcription failed for {sender}: {e}")
            return None

        if not transcript:
            logger.info(f"Empty transcript for {sender}, ignoring")
            return None

        async with self.sender_lock(sender):
            session = self._store.get(sender)
            if session is not None and session.awaiting_approval:
                await self._handle_approval_reply(session, transcript, timestamp)
            else:
                await self._collect(sender, session, transcript, timestamp, may_start=True)
        return transcript

    async def ingest_text_turn(self, sender: str, text: str, timestamp: datetime) -> None:
        """Feed a text reply into an existing conversation; no-op without one."""
        if not text or not text.strip():
            return

        async with self.sender_lock(sender):
            session = self._store.get(sender)
            if session is None:
                logger.debug(f"No active review session for {sender}, ignoring text")
                return

            if session.awaiting_approval:
                await self._handle_approval_reply(session, text, timestamp)
            else:
                await self._collect(sender, session, text, timestamp, may_start=False)

    # ── COLLECTING ─────────────────────────────────────────────────

    async def _collect(
        self,
        sender: str,
        session: Optional[ReviewSession],
        text: str,
        timestamp: datetime,
        may_start: bool,
    ) -> None:
        try:
            update = await asyncio.to_thread(self._analyzer.extract, text, session)
        except CollaboratorUnavailable as e:
            logger.warning(f"Extraction failed for {sender}, dropping turn: {e}")
            return

        if session is None:
            if not may_start or not update.is_review:
                logger.info(f"Turn from {sender} is not a review, ignoring")
                return
            logger.info(f"Starting review session for {sender}")
            session = ReviewSession(sender=sender, last_activity=timestamp)

        session = merge(session, update, text, timestamp)
        self._store.put(session)

        logger.info(
            f"Session {sender}: venue={session.venue_name!r} "
            f"reviewer={session.reviewer_name!r} questions={session.questions_asked}"
        )

        if session.venue_name is None:
            await self._notifier.send(sender, VENUE_QUESTION)
            return

        missing = missing_items(session)
        if missing and session.questions_asked < self._settings.max_follow_up_questions:
            session.questions_asked += 1
            question = follow_up_question(session, missing)
            logger.info(f"Asking {sender} follow-up {session.questions_asked}: {missing[:2]}")
            await self._notifier.send(sender, question)
            return

        await self._request_approval(session)

    async def _request_approval(self, session: ReviewSession) -> None:
        try:
            cleaned = await asyncio.to_thread(self._analyzer.synthesize, list(session.transcripts))
        except CollaboratorUnavailable as e:
            logger.warning(f"Synthesis failed for {session.sender}, using raw transcripts: {e}")
            cleaned = None

        session.cleaned_review = cleaned or " ".join(session.transcripts)
        session.awaiting_approval = True
        session.state = SessionState.AWAITING_APPROVAL
        session.approval_deadline = self._clock() + timedelta(
            seconds=self._settings.approval_timeout_seconds
        )
        self._store.put(session)

        await self._notifier.send(session.sender, APPROVAL_PROMPT.format(review=session.cleaned_review))

        sender = session.sender
        self._deferred.schedule(
            self._timer_key(sender),
            self._settings.approval_timeout_seconds,
            lambda: self._on_approval_timeout(sender),
        )
        logger.info(f"Review for {sender} sent for approval")

    # ── AWAITING_APPROVAL ──────────────────────────────────────────

    async def _handle_approval_reply(
        self, session: ReviewSession, text: str, timestamp: datetime
    ) -> None:
        reply = parse_approval(text)

        if reply is ApprovalReply.AMBIGUOUS:
            await self._notifier.send(session.sender, APPROVAL_REPROMPT)
            return

        await self._resolve_approval(session, reply is ApprovalReply.APPROVED, timestamp)

    async def _on_approval_timeout(self, sender: str) -> None:
        async with self.sender_lock(sender):
            session = self._store.get(sender)
            if session is None or not session.awaiting_approval:
                return
            logger.info(f"No reply from {sender}, auto-approving review")
            await self._resolve_approval(session, True, session.last_activity or self._clock())

    async def _resolve_approval(
        self, session: ReviewSession, approved: bool, timestamp: datetime
    ) -> Optional[FinalizeResult]:
        """First resolution wins; later ones see awaiting_approval False."""
        if not session.awaiting_approval:
            return None
        session.awaiting_approval = False
        session.approval_deadline = None
        self._deferred.cancel(self._timer_key(session.sender))

        if not approved:
            logger.info(f"{session.sender} rejected the review")
            await self._notifier.send(session.sender, REJECTED_NOTICE)
            self._end(session, SessionState.ABANDONED)
            return None

        result = await self._finalizer.finalize(session, timestamp)
        self._apply_outcome(session, result.outcome)
        return result

    def _apply_outcome(self, session: ReviewSession, outcome: FinalizeOutcome) -> None:
        if outcome is FinalizeOutcome.SAVED:
            self._end(session, SessionState.COMPLETED)
        elif outcome is FinalizeOutcome.ABANDONED:
            self._end(session, SessionState.ABANDONED)
        else:
            # Venue unverified: ask for the name again on the next turn
            session.venue_name = None
            session.state = SessionState.COLLECTING
            self._store.put(session)

    def end_session(self, session: ReviewSession, state: SessionState) -> None:
        """Remove a session from the store; used by the reclamation sweep too."""
        self._end(session, state)

    def _end(self, session: ReviewSession, state: SessionState) -> None:
        session.state = state
        session.awaiting_approval = False
        self._deferred.cancel(self._timer_key(session.sender))
        self._store.delete(session.sender)
        logger.info(f"Session for {session.sender} ended: {state.value}")

    @staticmethod
    def _timer_key(sender: str) -> str:
        return f"approval:{sender}"
