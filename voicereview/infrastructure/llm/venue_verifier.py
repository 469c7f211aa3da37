"""
Venue Verifier - Confirms a Venue Exists Before Reviews Are Saved
==================================================================

Asks Gemini to look up the named venue in the named city and return its
canonical profile, or a similar real venue in the same city when the
name does not match anything.
"""

import logging
from typing import Optional

from .gemini_client import GeminiClient
from ...domain.models import VerificationResult

logger = logging.getLogger(__name__)


class VenueVerificationService:
    """
    USAGE:
        verifier = VenueVerificationService(GeminiClient())
        result = verifier.verify("Drawing House", "Paris")
        if result.exists:
            print(result.canonical_name, result.latitude, result.longitude)
    """

    PROMPT_TEMPLATE = """Find and verify this venue: "{query}"

TASK: Search for this venue (hotel, restaurant, bar, resort...) and return its REAL location data.

CRITICAL RULES:
1. If a city is mentioned, find the venue IN THAT CITY ONLY
2. Do NOT return a venue from a different city
3. Return the actual coordinates of THIS specific venue

Respond with ONLY a valid JSON object (no markdown, no backticks):

If the venue EXISTS in the specified location:
{{
  "exists": true,
  "fullName": "official full name of the venue",
  "description": "2-3 sentence description",
  "location": "city, country where THIS venue is located",
  "address": "full street address of THIS venue",
  "latitude": actual latitude coordinate,
  "longitude": actual longitude coordinate,
  "website": "official website URL or null",
  "category": "luxury/boutique/resort/business/budget/historic/restaurant/bar",
  "amenities": ["list", "of", "amenities"]
}}

If the venue does NOT exist in that specific city:
{{
  "exists": false,
  "similarVenue": "name of a real similar venue IN THE SAME CITY, or null"
}}"""

    def __init__(self, client: GeminiClient):
        self._client = client

    def verify(self, name: str, city: Optional[str] = None) -> VerificationResult:
        """
        Verify that a venue exists.

        Raises:
            GeminiServiceError: if the lookup itself failed.
        """
        query = name
        if city and city.lower() not in name.lower():
            query = f"{name}, {city}"

        logger.info(f"Verifying venue: {query}")
        data = self._client.generate_json(self.PROMPT_TEMPLATE.format(query=query))
        result = VerificationResult.from_dict(data)

        if result.exists:
            logger.info(f"Venue verified: {result.canonical_name or name}")
        else:
            logger.info(f"Venue not found: {query} (suggestion: {result.suggestion})")
        return result
