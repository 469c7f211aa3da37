# Voice Review Collector - WhatsApp Voice Note Review System
# ===========================================================
# Turns WhatsApp voice notes into verified, multi-aspect venue reviews
# through a short conversation with the sender.
#
# ARCHITECTURE LAYERS:
# - Presentation:   FastAPI webhooks and catalog API (web/)
# - Application:    Session state machine, finalize flow, reclamation sweep
# - Domain:         Pure review data model, merge and scoring rules
# - Infrastructure: External services (Gemini, Vonage, SQLite, config)
#
# Infrastructure components can be replaced (e.g. another LLM provider or
# a persistent session store) without touching the state machine.
