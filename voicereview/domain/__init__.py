# Domain Layer
# ============
# Pure review logic with no external dependencies:
# - models: sessions, extraction/verification results, venues, reviews
# - conversation: merge, follow-up questions, approval replies
# - scoring: aggregate ratings and venue identifiers

from .models import (
    ASPECTS,
    AspectRating,
    ExtractionResult,
    Review,
    ReviewSession,
    Sentiment,
    SessionState,
    VenueProfile,
    VerificationResult,
)
from .errors import CollaboratorUnavailable
