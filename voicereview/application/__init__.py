# Application Layer
# =================
# Use cases and orchestration:
# - session_controller: per-sender review conversation state machine
# - finalizer: venue verification and review recording
# - reclamation: periodic cleanup of inactive sessions
# - service: wiring for the web layer

from .session_store import SessionStore, InMemorySessionStore
from .venue_catalog import VenueCatalog
from .finalizer import VenueFinalizer, FinalizeOutcome, FinalizeResult
from .session_controller import SessionController
from .reclamation import ReclamationSweep
from .service import ReviewService, TranscriptLog, build_service
