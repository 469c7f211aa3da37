"""
Conversation Rules - Merge, Follow-up Questions and Approval Replies
=====================================================================

Pure functions only. The session controller calls these to decide what
to do next; nothing here talks to the network or touches shared state.
"""

import dataclasses
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .models import ASPECTS, ExtractionResult, ReviewSession

# ── Message Templates ──────────────────────────────────────────
VENUE_QUESTION = "Thank you for your feedback! Could you please tell me which venue you visited?"
OPEN_QUESTION = (
    "Thank you for sharing your experience at {venue}! To complete your review, "
    "could you tell me a bit more? I'd love to hear about {items}. What was your experience like?"
)
TWO_ITEM_QUESTION = "Thanks for the details! Could you also share your thoughts on {items}?"
ONE_ITEM_QUESTION = "Almost done! One more thing - how was {item}?"
APPROVAL_PROMPT = 'Here is your review:\n\n"{review}"\n\nIs this ok? Reply Yes or No'
APPROVAL_REPROMPT = "Please reply Yes to confirm or No to start over."
REJECTED_NOTICE = (
    "No problem! Your review was not saved. "
    "Send a new voice message to start a fresh review."
)

# Missing items in the order they are asked about
MISSING_ITEM_ORDER = ("reviewer_name",) + ASPECTS

MISSING_ITEM_PHRASES = {
    "reviewer_name": "your name (so I can attribute your review)",
    "food": "the food or dining experience",
    "amenities": "the amenities (room, pool, gym, spa, etc.)",
    "location": "the location and accessibility",
    "service": "the service and staff",
}

APPROVE_WORDS = frozenset({"yes", "y", "ok", "okay"})
REJECT_WORDS = frozenset({"no", "n", "nope"})


class ApprovalReply(Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    AMBIGUOUS = "ambiguous"


def merge(
    session: ReviewSession,
    update: ExtractionResult,
    text: str,
    timestamp: datetime,
) -> ReviewSession:
    """
    Merge one extraction result into a session and return the new session.

    Non-null fields overwrite, null fields are a no-op. An aspect's
    summary and score travel together. The raw text is appended to the
    transcripts and last_activity is moved to the turn timestamp.
    """
    changes = {}
    for name in ("venue_name", "venue_city", "reviewer_name", "cleaned_review", "overall_sentiment"):
        value = getattr(update, name)
        if value is not None:
            changes[name] = value

    for name in ASPECTS:
        aspect = getattr(update, name)
        if aspect is not None:
            changes[name] = aspect

    return dataclasses.replace(
        session,
        transcripts=[*session.transcripts, text],
        last_activity=timestamp,
        **changes,
    )


def missing_items(session: ReviewSession) -> List[str]:
    """Items still unknown, in asking priority order."""
    return [name for name in MISSING_ITEM_ORDER if getattr(session, name) is None]


def follow_up_question(session: ReviewSession, missing: List[str]) -> Optional[str]:
    """
    Build the next question for the given missing items.

    Returns None when nothing is missing. Never called without a venue.
    """
    if not missing:
        return None

    phrases = [MISSING_ITEM_PHRASES[name] for name in missing]

    if len(missing) >= 4:
        return OPEN_QUESTION.format(venue=session.venue_name, items=" and ".join(phrases[:2]))

    if len(missing) >= 2:
        return TWO_ITEM_QUESTION.format(items=" and ".join(phrases[:2]))

    return ONE_ITEM_QUESTION.format(item=phrases[0])


def parse_approval(text: str) -> ApprovalReply:
    """Interpret a reply to the approval prompt."""
    word = (text or "").strip().lower()
    if word in APPROVE_WORDS:
        return ApprovalReply.APPROVED
    if word in REJECT_WORDS:
        return ApprovalReply.REJECTED
    return ApprovalReply.AMBIGUOUS
