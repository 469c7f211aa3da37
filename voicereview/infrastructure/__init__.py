# Infrastructure Layer
# ====================
# Contains all external service integrations:
# - llm/: Gemini transcription, review extraction and venue verification
# - whatsapp/: Vonage Messages API provider and webhook parsing
# - persistence/: SQLite venue catalog repository
# - config/: Environment and settings management
#
# This layer can be replaced entirely without affecting domain/application layers.
