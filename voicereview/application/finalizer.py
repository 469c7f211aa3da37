"""
Venue Finalizer - Verify the Venue, Then Record the Review
===========================================================

Runs once a review is approved (explicitly, by timeout, or by the
reclamation sweep). A venue is verified against the real world the
first time it is mentioned; afterwards the catalog entry is reused.

Unverifiable venues follow the retry policy: the sender gets another
chance to name the venue unless the same name failed twice in a row or
too many verifications have failed overall.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .concurrency import DeferredTasks
from .outbound import Notifier
from .venue_catalog import VenueCatalog
from ..domain.errors import CollaboratorUnavailable
from ..domain.models import (
    Review,
    ReviewSession,
    Sentiment,
    VenueProfile,
    VerificationResult,
)
from ..domain.scoring import aggregate_rating, render_stars, venue_identifier
from ..infrastructure.config import ReviewSettings

logger = logging.getLogger(__name__)

# ── Message Templates ──────────────────────────────────────────
THANK_YOU_MSG = "Thank you{name}! Your review of {venue} has been recorded. Rating: {stars} ({rating}/5 stars)"
NOT_FOUND_MSG = "Venue not found. I couldn't find \"{venue}\" as a real venue."
SUGGESTION_SUFFIX = " Did you mean {suggestion}?"
ASK_AGAIN_SUFFIX = " Could you please say the venue name again?"
REPEATED_FAILURE_MSG = "I could not find \"{venue}\" as a real venue. Your review was not saved."
TOO_MANY_FAILURES_MSG = "I could not verify the venue name. Your review was not saved."

DEFAULT_DESCRIPTION = "A verified venue."
DEFAULT_LOCATION = "Location unknown"
DEFAULT_CATEGORY = "venue"


class FinalizeOutcome(Enum):
    SAVED = "saved"
    RETRY = "retry"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class FinalizeResult:
    outcome: FinalizeOutcome
    venue: Optional[VenueProfile] = None
    review: Optional[Review] = None


class VenueFinalizer:

    def __init__(
        self,
        catalog: VenueCatalog,
        verifier,
        notifier: Notifier,
        deferred: DeferredTasks,
        settings: ReviewSettings,
    ):
        self._catalog = catalog
        self._verifier = verifier
        self._notifier = notifier
        self._deferred = deferred
        self._settings = settings

    async def finalize(self, session: ReviewSession, timestamp: datetime) -> FinalizeResult:
        """
        Verify the session's venue and append its review.

        On a failed verification the session's failure counters are
        updated in place; clearing the venue name for a retry is left to
        the caller.
        """
        venue_id = venue_identifier(session.venue_name or "")

        async with self._catalog.lock(venue_id):
            venue = await self._catalog.get(venue_id) if venue_id else None

            if venue is None:
                verification = await self._verify(session) if venue_id else VerificationResult(exists=False)
                if not verification.exists:
                    outcome = await self._handle_unverified(session, verification)
                    return FinalizeResult(outcome)

                venue = await self._catalog.create(
                    self._build_profile(venue_id, session, verification, timestamp)
                )
            else:
                logger.info(f"Venue {venue_id} already in catalog, skipping verification")

            review = await self._build_review(session, timestamp)
            await self._catalog.append_review(venue, review)

        logger.info(
            f"Added review for {venue.name} by {review.reviewer_name} - Rating: {review.rating}"
        )
        await self._notify_saved(session, venue, review)
        return FinalizeResult(FinalizeOutcome.SAVED, venue, review)

    async def _verify(self, session: ReviewSession) -> VerificationResult:
        try:
            return await asyncio.to_thread(
                self._verifier.verify, session.venue_name, session.venue_city
            )
        except CollaboratorUnavailable as e:
            logger.warning(f"Venue verification unavailable for {session.venue_name!r}: {e}")
            return VerificationResult(exists=False)

    async def _handle_unverified(
        self, session: ReviewSession, verification: VerificationResult
    ) -> FinalizeOutcome:
        name = session.venue_name or ""
        previous = session.last_failed_venue_name
        session.failed_verification_count += 1
        session.last_failed_venue_name = name

        if previous is not None and previous.lower() == name.lower():
            logger.info(f"Sender repeated unverifiable venue {name!r}, abandoning")
            await self._notifier.send(session.sender, REPEATED_FAILURE_MSG.format(venue=name))
            return FinalizeOutcome.ABANDONED

        if session.failed_verification_count >= self._settings.max_failed_verifications:
            logger.info(f"Too many failed verifications for {session.sender}, abandoning")
            await self._notifier.send(session.sender, TOO_MANY_FAILURES_MSG)
            return FinalizeOutcome.ABANDONED

        message = NOT_FOUND_MSG.format(venue=name)
        if verification.suggestion:
            message += SUGGESTION_SUFFIX.format(suggestion=verification.suggestion)
        else:
            message += ASK_AGAIN_SUFFIX
        await self._notifier.send(session.sender, message)
        return FinalizeOutcome.RETRY

    def _build_profile(
        self,
        venue_id: str,
        session: ReviewSession,
        verification: VerificationResult,
        timestamp: datetime,
    ) -> VenueProfile:
        return VenueProfile(
            id=venue_id,
            name=verification.canonical_name or session.venue_name,
            description=verification.description or DEFAULT_DESCRIPTION,
            location=verification.location or session.venue_city or DEFAULT_LOCATION,
            category=verification.category or DEFAULT_CATEGORY,
            address=verification.address,
            latitude=verification.latitude,
            longitude=verification.longitude,
            website=verification.website,
            amenities=list(verification.amenities),
            created_at=timestamp,
        )

    async def _build_review(self, session: ReviewSession, timestamp: datetime) -> Review:
        exact, rating = aggregate_rating(session)
        reviewer = session.reviewer_name or await self._catalog.next_guest_name()

        return Review(
            reviewer_name=reviewer,
            sender=session.sender,
            text=session.cleaned_review or " ".join(session.transcripts),
            rating=rating,
            rating_exact=exact,
            sentiment=session.overall_sentiment or Sentiment.NEUTRAL,
            aspects=session.aspects(),
            transcripts=tuple(session.transcripts),
            timestamp=timestamp,
        )

    async def _notify_saved(self, session: ReviewSession, venue: VenueProfile, review: Review):
        thank_you = THANK_YOU_MSG.format(
            name=f", {session.reviewer_name}" if session.reviewer_name else "",
            venue=venue.name,
            stars=render_stars(review.rating),
            rating=review.rating,
        )
        await self._notifier.send(session.sender, thank_you)

        if venue.coordinates:
            latitude, longitude = venue.coordinates

            async def send_location():
                await self._notifier.send_location(
                    session.sender,
                    venue.name,
                    venue.address or venue.location,
                    latitude,
                    longitude,
                )

            self._deferred.spawn(self._settings.location_message_delay_seconds, send_location)
