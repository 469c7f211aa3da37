"""
Domain Models - Review Sessions, Venues and Reviews
====================================================

Pure data structures with no I/O. The extraction and verification
results are parsed here from the loosely-typed JSON the LLM returns,
so everything past this module works with typed optional fields.
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

ASPECTS = ("food", "amenities", "location", "service")


class SessionState(Enum):
    """Lifecycle state of a review conversation."""
    COLLECTING = "collecting"
    AWAITING_APPROVAL = "awaiting_approval"
    COMPLETED = "completed"
    ABANDONED = "abandoned"


class Sentiment(Enum):
    """Overall sentiment of a review."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    MIXED = "mixed"
    NEUTRAL = "neutral"

    @classmethod
    def parse(cls, value: Any) -> Optional["Sentiment"]:
        """Map a free-form label to a Sentiment, or None if unknown."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


def round_half_up(value: float, digits: int = 0) -> float:
    """Round with halves going up: 2.25 -> 2.3 at one decimal, 2.5 -> 3."""
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() in ("null", "none", "not mentioned"):
        return None
    return value


def _parse_score(value: Any) -> Optional[int]:
    """Coerce an LLM score to an int in 1..5, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        score = int(round_half_up(float(value)))
    except (TypeError, ValueError):
        return None
    return min(5, max(1, score))


def _parse_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


@dataclass(frozen=True)
class AspectRating:
    """One review dimension: a short summary and a 1-5 score."""
    summary: str
    score: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"summary": self.summary, "score": self.score}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["AspectRating"]:
        if not data:
            return None
        return cls(summary=data["summary"], score=data.get("score"))


@dataclass(frozen=True)
class ExtractionResult:
    """
    Structured fields extracted from one conversational turn.

    Every field is optional; a missing field means "nothing new learned",
    never "clear what we knew".
    """
    is_review: bool = False
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None
    reviewer_name: Optional[str] = None
    cleaned_review: Optional[str] = None
    food: Optional[AspectRating] = None
    amenities: Optional[AspectRating] = None
    location: Optional[AspectRating] = None
    service: Optional[AspectRating] = None
    overall_sentiment: Optional[Sentiment] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        """Build from the extraction JSON, accepting venue or hotel keys."""
        aspects = {}
        for name in ASPECTS:
            summary = _clean_str(data.get(name))
            if summary:
                aspects[name] = AspectRating(summary, _parse_score(data.get(f"{name}Score")))

        is_review = data.get("isReview", data.get("isHotelReview", False))

        return cls(
            is_review=is_review is True or str(is_review).lower() == "true",
            venue_name=_clean_str(data.get("venueName") or data.get("hotelName")),
            venue_city=_clean_str(data.get("venueCity") or data.get("hotelCity")),
            reviewer_name=_clean_str(data.get("reviewerName") or data.get("personName")),
            cleaned_review=_clean_str(data.get("cleanedReview")),
            overall_sentiment=Sentiment.parse(data.get("overallSentiment")),
            **aspects,
        )


@dataclass
class ReviewSession:
    """Per-sender accumulating record of an in-progress review."""
    sender: str
    venue_name: Optional[str] = None
    venue_city: Optional[str] = None
    reviewer_name: Optional[str] = None
    food: Optional[AspectRating] = None
    amenities: Optional[AspectRating] = None
    location: Optional[AspectRating] = None
    service: Optional[AspectRating] = None
    overall_sentiment: Optional[Sentiment] = None
    transcripts: List[str] = field(default_factory=list)
    cleaned_review: Optional[str] = None
    questions_asked: int = 0
    awaiting_approval: bool = False
    approval_deadline: Optional[datetime] = None
    failed_verification_count: int = 0
    last_failed_venue_name: Optional[str] = None
    last_activity: Optional[datetime] = None
    state: SessionState = SessionState.COLLECTING

    def aspects(self) -> Dict[str, Optional[AspectRating]]:
        return {name: getattr(self, name) for name in ASPECTS}


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of checking that a venue exists in the real world."""
    exists: bool
    canonical_name: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    website: Optional[str] = None
    category: Optional[str] = None
    amenities: Tuple[str, ...] = ()
    suggestion: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VerificationResult":
        if data.get("exists") is not True:
            suggestion = (
                data.get("similarVenue") or data.get("similarHotel") or data.get("suggestion")
            )
            return cls(exists=False, suggestion=_clean_str(suggestion))

        amenities = data.get("amenities") or []
        if not isinstance(amenities, list):
            amenities = []

        return cls(
            exists=True,
            canonical_name=_clean_str(data.get("fullName") or data.get("canonicalName")),
            description=_clean_str(data.get("description")),
            location=_clean_str(data.get("location")),
            address=_clean_str(data.get("address")),
            latitude=_parse_float(data.get("latitude")),
            longitude=_parse_float(data.get("longitude")),
            website=_clean_str(data.get("website")),
            category=_clean_str(data.get("category")),
            amenities=tuple(str(a) for a in amenities if a),
        )


@dataclass(frozen=True)
class Review:
    """An approved review, immutable once appended to its venue."""
    reviewer_name: str
    sender: str
    text: str
    rating: int
    rating_exact: float
    sentiment: Sentiment
    aspects: Dict[str, Optional[AspectRating]]
    transcripts: Tuple[str, ...]
    timestamp: datetime
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "reviewerName": self.reviewer_name,
            "phoneNumber": self.sender,
            "text": self.text,
            "rating": self.rating,
            "ratingExact": self.rating_exact,
            "sentiment": self.sentiment.value,
            "categories": {
                name: aspect.to_dict() if aspect else None
                for name, aspect in self.aspects.items()
            },
            "originalTranscripts": list(self.transcripts),
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class VenueProfile:
    """A verified venue and its chronological reviews."""
    id: str
    name: str
    description: str
    location: str
    category: str
    address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    website: Optional[str] = None
    amenities: List[str] = field(default_factory=list)
    created_at: Optional[datetime] = None
    reviews: List[Review] = field(default_factory=list)

    @property
    def coordinates(self) -> Optional[Tuple[float, float]]:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def average_rating(self) -> float:
        if not self.reviews:
            return 0.0
        avg = sum(r.rating for r in self.reviews) / len(self.reviews)
        return round_half_up(avg, 1)

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "category": self.category,
            "reviewCount": len(self.reviews),
            "averageRating": self.average_rating,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "location": self.location,
            "address": self.address,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "website": self.website,
            "category": self.category,
            "amenities": list(self.amenities),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "averageRating": self.average_rating,
            "reviews": [
                r.to_dict() for r in sorted(self.reviews, key=lambda r: r.timestamp, reverse=True)
            ],
        }
