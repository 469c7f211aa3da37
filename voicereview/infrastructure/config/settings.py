"""
Settings Module - Centralized Configuration Management
=======================================================

ARCHITECTURAL DECISION:
- All configuration is loaded from environment variables (no hardcoded secrets)
- Settings are immutable dataclasses for safety and clarity
- Single source of truth for all configurable values

EXTENSIBILITY:
- To switch LLM provider: add provider-specific API settings
- To switch messaging provider: add a new settings group next to MessagingSettings
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file if present (development convenience)
load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float from the environment, ignoring malformed values."""
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class LLMSettings:
    """Gemini settings for transcription, extraction and verification."""

    api_key: str = field(default_factory=lambda: os.getenv("GEMINI_API_KEY", ""))
    api_url: str = "https://generativelanguage.googleapis.com/v1beta/models"
    model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash"))

    # Deterministic output for extraction
    temperature: float = 0.0
    timeout_seconds: int = 30


@dataclass(frozen=True)
class MessagingSettings:
    """Vonage Messages API settings for outbound WhatsApp messages."""

    api_key: str = field(default_factory=lambda: os.getenv("VONAGE_API_KEY", ""))
    api_secret: str = field(default_factory=lambda: os.getenv("VONAGE_API_SECRET", ""))
    sender_number: str = field(default_factory=lambda: os.getenv("VONAGE_SENDER_NUMBER", ""))
    api_url: str = "https://api.nexmo.com/v1/messages"
    channel: str = "whatsapp"
    timeout_seconds: int = 15

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.api_secret and self.sender_number)


@dataclass(frozen=True)
class ReviewSettings:
    """Conversation flow timings and limits."""

    # Silence after the approval prompt counts as "yes"
    approval_timeout_seconds: float = field(
        default_factory=lambda: _env_float("REVIEW_APPROVAL_TIMEOUT", 15.0)
    )
    max_follow_up_questions: int = 3

    # Reclamation sweep
    session_timeout_seconds: float = field(
        default_factory=lambda: _env_float("REVIEW_SESSION_TIMEOUT", 300.0)
    )
    sweep_interval_seconds: float = field(
        default_factory=lambda: _env_float("REVIEW_SWEEP_INTERVAL", 120.0)
    )

    location_message_delay_seconds: float = 1.5
    max_failed_verifications: int = 3


@dataclass(frozen=True)
class Settings:
    """
    Root settings container - Single source of truth for all configuration.

    Usage:
        from voicereview.infrastructure.config import get_settings
        settings = get_settings()
        print(settings.llm.api_key)
    """

    # Sub-settings groups
    llm: LLMSettings = field(default_factory=LLMSettings)
    messaging: MessagingSettings = field(default_factory=MessagingSettings)
    review: ReviewSettings = field(default_factory=ReviewSettings)

    # File paths
    database_file: Path = field(
        default_factory=lambda: Path(os.getenv("DATABASE_FILE", "voicereview.db"))
    )

    def validate(self) -> list[str]:
        """
        Validate settings and return list of warnings/errors.
        Returns empty list if all settings are valid.
        """
        issues = []

        if not self.llm.api_key:
            issues.append(
                "WARNING: GEMINI_API_KEY not set. "
                "Voice notes will not be transcribed or analyzed."
            )

        if not self.messaging.is_configured:
            issues.append(
                "WARNING: VONAGE_API_KEY / VONAGE_API_SECRET / VONAGE_SENDER_NUMBER "
                "not set. Outbound messages will only be logged."
            )

        if self.review.approval_timeout_seconds <= 0:
            issues.append("ERROR: REVIEW_APPROVAL_TIMEOUT must be positive.")

        return issues


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get singleton Settings instance.
    Cached to ensure consistent settings throughout application lifecycle.
    """
    return Settings()
