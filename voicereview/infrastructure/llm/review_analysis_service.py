"""
Review Analysis Service - LLM-Based Review Extraction and Synthesis
====================================================================

ARCHITECTURAL DECISION:
- Uses Gemini to pull venue, reviewer and four aspect ratings out of free text
- Prior session state is passed back in so follow-up answers are read in context
- Falls back to keyword heuristics for the overall sentiment when the model omits it
- Synthesis falls back to plain concatenation; it never fails the flow

EXTENSIBILITY:
- To use a different model: change GEMINI_MODEL
- To support another LLM: implement extract()/synthesize() on a new class
"""

import dataclasses
import logging
from typing import Optional, Sequence

from .gemini_client import GeminiClient, GeminiServiceError
from ...domain.models import ExtractionResult, ReviewSession, Sentiment

logger = logging.getLogger(__name__)


class ReviewAnalysisService:
    """
    Review extraction and synthesis using Gemini.

    USAGE:
        service = ReviewAnalysisService(GeminiClient())
        result = service.extract("The Grand, loved the food", None)
        print(result.venue_name)  # "The Grand"

    FALLBACK BEHAVIOR:
    - extract(): raises GeminiServiceError if the model is unavailable
    - synthesize(): joins the raw transcripts if the model is unavailable
    """

    PREVIOUS_CONTEXT_TEMPLATE = (
        "Previous information gathered:\n"
        "- Venue name: {venue_name}\n"
        "- Venue city: {venue_city}\n"
        "- Person name: {reviewer_name}\n"
        "- Food quality: {food}\n"
        "- Amenities: {amenities}\n"
        "- Location: {location}\n"
        "- Service: {service}\n"
    )

    EXTRACTION_PROMPT = """Analyze this voice review transcript and extract venue review information.
{previous_context}
New transcript: '''{transcript}'''

You must respond with ONLY a valid JSON object (no markdown, no backticks, no explanation) in this exact format:
{{
  "isReview": true/false,
  "venueName": "venue name WITH city if mentioned (e.g. 'Drawing House Paris') or null",
  "venueCity": "city mentioned (e.g. 'Paris') or null",
  "reviewerName": "reviewer's name if they introduced themselves or null",
  "cleanedReview": "the review with filler words (uh, um, like, you know, I mean, basically) removed",
  "food": "SHORT summary of food opinion (2-6 words) or null",
  "foodScore": 1-5 or null,
  "amenities": "SHORT summary of amenities/room opinion (2-6 words) or null",
  "amenitiesScore": 1-5 or null,
  "location": "SHORT summary of location (2-6 words) or null",
  "locationScore": 1-5 or null,
  "service": "SHORT summary of service (2-6 words) or null",
  "serviceScore": 1-5 or null,
  "overallSentiment": "positive/negative/mixed/neutral"
}}

SCORING GUIDE:
- 5: "great", "awesome", "amazing", "excellent", "fantastic", "perfect", "loved it"
- 4: "really good", "very good", "nice", "enjoyed", "impressed"
- 3: "ok", "okay", "fine", "decent", "alright", "acceptable"
- 2: "not great", "mediocre", "disappointing", "could be better"
- 1: "bad", "awful", "terrible", "horrible", "worst", "not good"

LOCATION SCORES:
- 5: "central", "perfect location", "heart of the city"
- 4: "fairly central", "close to center", "good location"
- 3: "a bit off center", "not too far", "walkable to center"
- 2: "far from center", "quite far", "off the beaten path"
- 1: "very far", "middle of nowhere", "terrible location", "isolated"

IMPORTANT:
- venueName should INCLUDE the city if mentioned
- Write SHORT summaries (2-6 words), NOT full sentences
- Use null for anything not mentioned in the new transcript or the previous information"""

    SYNTHESIS_PROMPT = """Combine these voice message transcripts into ONE coherent, readable review.

Transcripts:
{transcripts}

RULES:
1. Remove ALL filler words: uh, um, er, ah, like, you know, I mean, basically, actually, so, yeah, well, right
2. Fix grammar and punctuation
3. DO NOT change the actual words or meaning - only clean up
4. DO NOT add any new information or opinions
5. Make it flow as one natural paragraph
6. If they introduced themselves, keep that at the start

Return ONLY the cleaned review text, nothing else."""

    # Keywords for heuristic sentiment fallback
    POSITIVE_KEYWORDS = [
        "great", "good", "love", "loved", "excellent", "awesome",
        "amazing", "happy", "wonderful", "fantastic", "perfect", "best",
    ]

    NEGATIVE_KEYWORDS = [
        "bad", "terrible", "disappoint", "poor", "hate", "worst",
        "awful", "horrible", "dirty", "rude", "noisy", "never again",
    ]

    def __init__(self, client: GeminiClient):
        self._client = client

    def extract(self, text: str, prior: Optional[ReviewSession] = None) -> ExtractionResult:
        """
        Extract review fields from one turn.

        Args:
            text: Transcript or text reply.
            prior: Current session, so the model sees what is already known.

        Raises:
            GeminiServiceError: if the model is unavailable or returns garbage.
        """
        prompt = self.EXTRACTION_PROMPT.format(
            previous_context=self._previous_context(prior),
            transcript=text,
        )
        data = self._client.generate_json(prompt)
        result = ExtractionResult.from_dict(data)

        known = prior.overall_sentiment if prior is not None else None
        if result.overall_sentiment is None and known is None:
            sentiment = self._classify_with_heuristics(text)
            logger.debug(f"Model gave no sentiment, heuristic says {sentiment.value}")
            result = dataclasses.replace(result, overall_sentiment=sentiment)

        logger.info(
            f"Extracted review fields: is_review={result.is_review} "
            f"venue={result.venue_name!r} reviewer={result.reviewer_name!r}"
        )
        return result

    def synthesize(self, transcripts: Sequence[str]) -> str:
        """Merge all transcripts into one cleaned paragraph."""
        fallback = " ".join(transcripts)
        if not transcripts:
            return fallback

        prompt = self.SYNTHESIS_PROMPT.format(transcripts="\n\n".join(transcripts))
        try:
            cleaned = self._client.generate([{"text": prompt}])
        except GeminiServiceError as e:
            logger.warning(f"Review synthesis failed ({e}), using raw transcripts")
            return fallback

        logger.info(f"Generated cleaned review from {len(transcripts)} transcripts")
        return cleaned

    def _previous_context(self, prior: Optional[ReviewSession]) -> str:
        if prior is None:
            return ""

        def show(value) -> str:
            if value is None:
                return "Not mentioned"
            return getattr(value, "summary", value)

        return self.PREVIOUS_CONTEXT_TEMPLATE.format(
            venue_name=show(prior.venue_name),
            venue_city=show(prior.venue_city),
            reviewer_name=show(prior.reviewer_name),
            food=show(prior.food),
            amenities=show(prior.amenities),
            location=show(prior.location),
            service=show(prior.service),
        )

    def _classify_with_heuristics(self, text: str) -> Sentiment:
        """
        Fallback classification using keyword matching.

        Simple but effective for obvious cases.
        """
        lower_text = text.lower()

        has_positive = any(kw in lower_text for kw in self.POSITIVE_KEYWORDS)
        has_negative = any(kw in lower_text for kw in self.NEGATIVE_KEYWORDS)

        if has_positive and has_negative:
            return Sentiment.MIXED
        if has_positive:
            return Sentiment.POSITIVE
        if has_negative:
            return Sentiment.NEGATIVE
        return Sentiment.NEUTRAL
