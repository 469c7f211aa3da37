from .settings import (
    Settings,
    LLMSettings,
    MessagingSettings,
    ReviewSettings,
    get_settings,
)

__all__ = [
    "Settings",
    "LLMSettings",
    "MessagingSettings",
    "ReviewSettings",
    "get_settings",
]
