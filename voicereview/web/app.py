"""
FastAPI Web Application - Voice Review Webhooks and Catalog API
================================================================

Receives inbound WhatsApp webhooks, hands voice notes and replies to the
review conversation in the background, and exposes the venue catalog.
"""

import logging
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, BackgroundTasks

from ..application import ReviewService, build_service
from ..infrastructure.whatsapp import InboundMessage, parse_inbound

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# ── Globals ────────────────────────────────────────────────────────
service: Optional[ReviewService] = None


def get_service() -> ReviewService:
    if service is None:
        raise HTTPException(status_code=503, detail="Service not ready")
    return service


# ── Lifespan ───────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    global service
    service = build_service()
    service.start()
    logger.info("Voice review service ready")
    yield
    await service.stop()
    service = None


app = FastAPI(
    title="Voice Review Collector",
    description="WhatsApp voice note venue reviews",
    lifespan=lifespan,
)


async def _process_voice(svc: ReviewService, sender: str, audio_url: str, timestamp):
    try:
        await svc.handle_voice(sender, audio_url, timestamp)
    except Exception as e:
        logger.exception(f"Voice turn from {sender} failed: {e}")


async def _process_text(svc: ReviewService, sender: str, text: str, timestamp):
    try:
        await svc.handle_text(sender, text, timestamp)
    except Exception as e:
        logger.exception(f"Text turn from {sender} failed: {e}")


# ══════════════════════════════════════════════════════════════════
#  WEBHOOKS
# ══════════════════════════════════════════════════════════════════

@app.post("/webhooks/inbound")
async def inbound_webhook(message: InboundMessage, background_tasks: BackgroundTasks):
    """Accept an inbound message and process it after responding."""
    svc = get_service()
    event = parse_inbound(message)

    if event.is_voice:
        logger.info(f"Voice message from {event.sender}")
        background_tasks.add_task(_process_voice, svc, event.sender, event.audio_url, event.timestamp)
    elif event.text:
        background_tasks.add_task(_process_text, svc, event.sender, event.text, event.timestamp)
    else:
        logger.info(f"Ignoring {message.message_type} message from {event.sender}")

    return {"success": True}


@app.post("/webhooks/status")
async def status_webhook(payload: dict):
    logger.info(f"Message status: {payload.get('message_uuid')} -> {payload.get('status')}")
    return {"success": True}


# ══════════════════════════════════════════════════════════════════
#  VENUE CATALOG API
# ══════════════════════════════════════════════════════════════════

@app.get("/api/venues")
async def list_venues():
    return {"venues": await get_service().catalog.list_venues()}


@app.get("/api/venues/{venue_id}")
async def get_venue(venue_id: str):
    venue = await get_service().catalog.venue_details(venue_id)
    if venue is None:
        raise HTTPException(status_code=404, detail="Venue not found")
    return venue


@app.delete("/api/venues")
async def clear_venues():
    await get_service().catalog.clear()
    logger.info("All venues and reviews cleared")
    return {"success": True}


# ══════════════════════════════════════════════════════════════════
#  TRANSCRIPTS & HEALTH
# ══════════════════════════════════════════════════════════════════

@app.get("/api/transcripts")
async def list_transcripts():
    return {"transcripts": get_service().transcripts.all()}


@app.delete("/api/transcripts")
async def clear_transcripts():
    get_service().transcripts.clear()
    return {"success": True}


@app.get("/_/health")
async def health():
    return {"status": "OK"}
