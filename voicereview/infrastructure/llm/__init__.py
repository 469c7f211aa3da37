from .gemini_client import GeminiClient, GeminiServiceError, parse_json_response
from .transcription_service import TranscriptionService
from .review_analysis_service import ReviewAnalysisService
from .venue_verifier import VenueVerificationService

__all__ = [
    "GeminiClient",
    "GeminiServiceError",
    "parse_json_response",
    "TranscriptionService",
    "ReviewAnalysisService",
    "VenueVerificationService",
]
