"""
Transcription Service - Voice Notes to Text
===========================================

Downloads the voice note through the messaging provider (media URLs
need the provider's credentials) and asks Gemini for a verbatim
transcript.
"""

import base64
import logging
from typing import Callable

from .gemini_client import GeminiClient, GeminiServiceError

logger = logging.getLogger(__name__)

UNTRANSCRIBABLE = "[Unable to transcribe]"


class TranscriptionService:
    """
    USAGE:
        service = TranscriptionService(GeminiClient(), provider.fetch_media)
        text = service.transcribe("https://api.nexmo.com/v3/media/...")
    """

    PROMPT = (
        "Transcribe this audio message exactly as spoken. Only output the "
        "transcription, nothing else. If you cannot understand the audio or it "
        f'is empty, respond with "{UNTRANSCRIBABLE}".'
    )

    def __init__(
        self,
        client: GeminiClient,
        fetch_media: Callable[[str], bytes],
        mime_type: str = "audio/ogg",
    ):
        self._client = client
        self._fetch_media = fetch_media
        self._mime_type = mime_type

    def transcribe(self, audio_ref: str) -> str:
        """
        Return the transcript of the voice note at audio_ref.

        Raises:
            CollaboratorUnavailable: download or transcription failed, or
                the audio was not understandable.
        """
        audio = self._fetch_media(audio_ref)
        if not audio:
            raise GeminiServiceError("audio download was empty")

        logger.info(f"Transcribing {len(audio)} bytes of audio")

        transcript = self._client.generate([
            {
                "inline_data": {
                    "mime_type": self._mime_type,
                    "data": base64.b64encode(audio).decode("ascii"),
                }
            },
            {"text": self.PROMPT},
        ])

        if transcript.strip() == UNTRANSCRIBABLE:
            raise GeminiServiceError("audio could not be understood")

        logger.info(f"Transcription complete: {transcript[:80]}")
        return transcript.strip()
