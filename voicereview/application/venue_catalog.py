"""
Venue Catalog
=============

Async facade over the SQLite repository. Writes for one venue id are
serialized through a per-venue lock held by the finalize flow; writes
to different venues may interleave freely.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

from .concurrency import KeyedLocks
from ..domain.models import Review, VenueProfile
from ..infrastructure.persistence import Database

logger = logging.getLogger(__name__)


class VenueCatalog:

    def __init__(self, db: Database):
        self._db = db
        self._locks = KeyedLocks()

    def lock(self, venue_id: str):
        """Async context manager serializing writes to one venue."""
        return self._locks.hold(venue_id)

    async def get(self, venue_id: str) -> Optional[VenueProfile]:
        return await asyncio.to_thread(self._db.get_venue, venue_id)

    async def create(self, venue: VenueProfile) -> VenueProfile:
        """Insert a venue; if it already exists the stored one wins."""
        created = await asyncio.to_thread(self._db.add_venue, venue)
        if not created:
            existing = await self.get(venue.id)
            if existing is not None:
                return existing
        logger.info(f"Created venue profile {venue.id} ({venue.name})")
        return venue

    async def append_review(self, venue: VenueProfile, review: Review) -> None:
        await asyncio.to_thread(self._db.add_review, venue.id, review)
        venue.reviews.append(review)

    async def next_guest_name(self) -> str:
        number = await asyncio.to_thread(self._db.next_guest_number)
        return f"Guest {number}"

    # ── Read-only queries ──────────────────────────────────────────

    async def list_venues(self) -> List[Dict[str, Any]]:
        """Venue summaries, most reviewed first."""
        venues = await asyncio.to_thread(self._db.get_all_venues)
        summaries = [venue.summary() for venue in venues]
        summaries.sort(key=lambda s: s["reviewCount"], reverse=True)
        return summaries

    async def venue_details(self, venue_id: str) -> Optional[Dict[str, Any]]:
        venue = await self.get(venue_id)
        return venue.to_dict() if venue else None

    async def clear(self) -> None:
        """Administrative bulk clear of venues, reviews and the guest counter."""
        await asyncio.to_thread(self._db.clear_catalog)
