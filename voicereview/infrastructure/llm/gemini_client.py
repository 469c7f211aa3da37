"""
Gemini Client - Shared HTTP Access to the Gemini API
=====================================================

ARCHITECTURAL DECISION:
- One thin client used by transcription, extraction and verification
- Plain requests calls; the application layer runs them off the event loop
- Every failure surfaces as GeminiServiceError so callers can degrade

WHY GEMINI:
- Accepts inline audio, so voice notes need no separate speech-to-text service
- Same API for transcription and JSON extraction
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

import requests

from ..config import get_settings
from ..config.settings import LLMSettings
from ...domain.errors import CollaboratorUnavailable

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?|```$", re.IGNORECASE | re.MULTILINE)


class GeminiServiceError(CollaboratorUnavailable):
    """Gemini call failed, timed out or returned nothing usable."""

    def __init__(self, message: str = ""):
        super().__init__("gemini", message)


def strip_code_fences(text: str) -> str:
    """Remove ```json fences the model sometimes wraps around JSON."""
    return _CODE_FENCE.sub("", text).strip()


def parse_json_response(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object from model output.

    Falls back to the outermost {...} block when the model adds prose.
    """
    cleaned = strip_code_fences(text)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        match = re.search(r"\{.*\}", cleaned, re.DOTALL)
        if not match:
            raise GeminiServiceError(f"no JSON object in response: {cleaned[:80]!r}")
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError as e:
            raise GeminiServiceError(f"invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise GeminiServiceError("expected a JSON object")
    return data


class GeminiClient:
    """
    Minimal generateContent client.

    USAGE:
        client = GeminiClient()
        text = client.generate([{"text": "Say hi"}])
    """

    def __init__(self, settings: Optional[LLMSettings] = None):
        settings = settings or get_settings().llm
        self._api_key = settings.api_key
        self._api_url = settings.api_url
        self._model = settings.model
        self._temperature = settings.temperature
        self._timeout = settings.timeout_seconds

        if not self._api_key:
            logger.warning(
                "No GEMINI_API_KEY set. "
                "Transcription, extraction and verification are disabled."
            )

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def generate(self, parts: List[Dict[str, Any]], temperature: Optional[float] = None) -> str:
        """
        Send content parts and return the first candidate's text.

        Raises:
            GeminiServiceError: on missing key, HTTP failure or empty output.
        """
        if not self._api_key:
            raise GeminiServiceError("GEMINI_API_KEY not configured")

        url = f"{self._api_url}/{self._model}:generateContent"
        payload = {
            "contents": [{"parts": parts}],
            "generationConfig": {
                "temperature": self._temperature if temperature is None else temperature,
            },
        }

        try:
            response = requests.post(
                url,
                params={"key": self._api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self._timeout,
            )
            response.raise_for_status()
            data = response.json()

        except requests.Timeout as e:
            raise GeminiServiceError("request timed out") from e

        except requests.RequestException as e:
            raise GeminiServiceError(f"request failed: {e}") from e

        except ValueError as e:
            raise GeminiServiceError("response was not JSON") from e

        content = self._extract_response_content(data)
        if not content:
            raise GeminiServiceError("empty response")
        return content

    def generate_json(self, prompt: str) -> Dict[str, Any]:
        """Send a text prompt and parse the reply as a JSON object."""
        content = self.generate([{"text": prompt}])
        logger.debug(f"Raw Gemini response: {content}")
        return parse_json_response(content)

    def _extract_response_content(self, data: dict) -> str:
        """Extract text content from API response."""
        try:
            candidates = data.get("candidates", [])
            if candidates:
                parts = candidates[0].get("content", {}).get("parts", [])
                if parts:
                    return (parts[0].get("text") or "").strip()
        except (KeyError, IndexError, TypeError, AttributeError):
            pass
        return ""
