"""
SQLite Database Repository - Venue Catalog Persistence
=======================================================

Stores verified venues and their reviews. Reviews are append-only;
the only delete is the administrative bulk clear.
"""

import json
import sqlite3
import logging
from datetime import datetime
from typing import List, Optional
from contextlib import contextmanager

from ...domain.models import AspectRating, Review, Sentiment, VenueProfile

logger = logging.getLogger(__name__)

DATABASE_FILE = "voicereview.db"

GUEST_COUNTER_KEY = "guest_counter"


class Database:
    """
    SQLite database for the venue catalog.

    Usage:
        db = Database()
        db.init()

        db.add_venue(profile)
        db.add_review(profile.id, review)

        venue = db.get_venue("the-grand-paris")
    """

    def __init__(self, db_path: str = DATABASE_FILE):
        self.db_path = str(db_path)

    @contextmanager
    def _get_connection(self):
        """Get database connection with context manager."""
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def init(self):
        """Initialize database tables."""
        with self._get_connection() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS venues (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL,
                    description TEXT DEFAULT '',
                    location TEXT DEFAULT '',
                    address TEXT,
                    latitude REAL,
                    longitude REAL,
                    website TEXT,
                    category TEXT DEFAULT 'venue',
                    amenities TEXT DEFAULT '[]',
                    created_at TEXT
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS reviews (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT UNIQUE NOT NULL,
                    venue_id TEXT NOT NULL REFERENCES venues(id),
                    reviewer_name TEXT NOT NULL,
                    sender TEXT NOT NULL,
                    text TEXT NOT NULL,
                    rating INTEGER NOT NULL,
                    rating_exact REAL NOT NULL,
                    sentiment TEXT NOT NULL,
                    aspects TEXT NOT NULL,
                    transcripts TEXT NOT NULL,
                    timestamp TEXT NOT NULL
                )
            """)

            conn.execute("""
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
            """)

            logger.info(f"Database initialized: {self.db_path}")

    # ── Venue CRUD ─────────────────────────────────────────────────

    def add_venue(self, venue: VenueProfile) -> bool:
        """Insert a new venue. Returns False if the id already exists."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """INSERT INTO venues (id, name, description, location, address, latitude,
                                           longitude, website, category, amenities, created_at)
                       VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                    (
                        venue.id, venue.name, venue.description, venue.location, venue.address,
                        venue.latitude, venue.longitude, venue.website, venue.category,
                        json.dumps(venue.amenities),
                        venue.created_at.isoformat() if venue.created_at else None,
                    )
                )
                return True
        except sqlite3.IntegrityError:
            logger.warning(f"Venue {venue.id} already exists")
            return False

    def get_venue(self, venue_id: str) -> Optional[VenueProfile]:
        """Get a venue with its reviews in insertion order."""
        with self._get_connection() as conn:
            row = conn.execute("SELECT * FROM venues WHERE id = ?", (venue_id,)).fetchone()
            if not row:
                return None
            reviews = conn.execute(
                "SELECT * FROM reviews WHERE venue_id = ? ORDER BY seq", (venue_id,)
            ).fetchall()
            return self._row_to_venue(row, reviews)

    def get_all_venues(self) -> List[VenueProfile]:
        """Get all venues with their reviews."""
        with self._get_connection() as conn:
            rows = conn.execute("SELECT * FROM venues ORDER BY created_at, id").fetchall()
            review_rows = conn.execute("SELECT * FROM reviews ORDER BY seq").fetchall()

        by_venue = {}
        for review_row in review_rows:
            by_venue.setdefault(review_row["venue_id"], []).append(review_row)
        return [self._row_to_venue(row, by_venue.get(row["id"], [])) for row in rows]

    def add_review(self, venue_id: str, review: Review):
        """Append a review to a venue."""
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO reviews (id, venue_id, reviewer_name, sender, text, rating,
                                        rating_exact, sentiment, aspects, transcripts, timestamp)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    review.id, venue_id, review.reviewer_name, review.sender, review.text,
                    review.rating, review.rating_exact, review.sentiment.value,
                    json.dumps({
                        name: aspect.to_dict() if aspect else None
                        for name, aspect in review.aspects.items()
                    }),
                    json.dumps(list(review.transcripts)),
                    review.timestamp.isoformat(),
                )
            )
        logger.info(f"Stored review {review.id} for venue {venue_id}")

    def clear_catalog(self):
        """Delete all venues and reviews and reset the guest counter."""
        with self._get_connection() as conn:
            conn.execute("DELETE FROM reviews")
            conn.execute("DELETE FROM venues")
            conn.execute("DELETE FROM settings WHERE key = ?", (GUEST_COUNTER_KEY,))
        logger.info("Venue catalog cleared")

    # ── Guest Counter ──────────────────────────────────────────────

    def next_guest_number(self) -> int:
        """Increment and return the anonymous reviewer counter."""
        with self._get_connection() as conn:
            conn.execute(
                """INSERT INTO settings (key, value) VALUES (?, '1')
                   ON CONFLICT(key) DO UPDATE SET value = CAST(value AS INTEGER) + 1""",
                (GUEST_COUNTER_KEY,)
            )
            row = conn.execute(
                "SELECT value FROM settings WHERE key = ?", (GUEST_COUNTER_KEY,)
            ).fetchone()
            return int(row["value"])

    # ── Row Conversion ─────────────────────────────────────────────

    def _row_to_venue(self, row: sqlite3.Row, review_rows: list) -> VenueProfile:
        """Convert database rows to a VenueProfile."""
        return VenueProfile(
            id=row["id"],
            name=row["name"],
            description=row["description"] or "",
            location=row["location"] or "",
            category=row["category"] or "venue",
            address=row["address"],
            latitude=row["latitude"],
            longitude=row["longitude"],
            website=row["website"],
            amenities=json.loads(row["amenities"] or "[]"),
            created_at=datetime.fromisoformat(row["created_at"]) if row["created_at"] else None,
            reviews=[self._row_to_review(r) for r in review_rows],
        )

    def _row_to_review(self, row: sqlite3.Row) -> Review:
        """Convert database row to Review object."""
        aspects = {
            name: AspectRating.from_dict(data)
            for name, data in json.loads(row["aspects"]).items()
        }
        return Review(
            id=row["id"],
            reviewer_name=row["reviewer_name"],
            sender=row["sender"],
            text=row["text"],
            rating=row["rating"],
            rating_exact=row["rating_exact"],
            sentiment=Sentiment(row["sentiment"]),
            aspects=aspects,
            transcripts=tuple(json.loads(row["transcripts"])),
            timestamp=datetime.fromisoformat(row["timestamp"]),
        )


# Quick init helper
def init_database(db_path: str = DATABASE_FILE) -> Database:
    """Create the database file and tables if needed."""
    db = Database(db_path)
    db.init()
    return db
