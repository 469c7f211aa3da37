"""Rating aggregation and venue identifiers."""

import re
from typing import Tuple

from .models import ReviewSession, Sentiment, round_half_up

SENTIMENT_FALLBACK_SCORES = {
    Sentiment.POSITIVE: 4,
    Sentiment.NEGATIVE: 2,
    Sentiment.MIXED: 3,
    Sentiment.NEUTRAL: 3,
}
DEFAULT_SCORE = 3

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def venue_identifier(name: str) -> str:
    """'The Grand, Paris!' -> 'the-grand-paris'"""
    return _NON_ALNUM.sub("-", name.lower()).strip("-")


def aggregate_rating(session: ReviewSession) -> Tuple[float, int]:
    """
    Combine aspect scores into (exact, display) ratings.

    exact is the mean of the known aspect scores rounded to one decimal;
    display is exact rounded half-up and clamped to 1..5. Without any
    aspect scores the overall sentiment decides.
    """
    scores = [
        aspect.score
        for aspect in session.aspects().values()
        if aspect is not None and aspect.score is not None
    ]

    if scores:
        exact = round_half_up(sum(scores) / len(scores), 1)
    else:
        exact = float(SENTIMENT_FALLBACK_SCORES.get(session.overall_sentiment, DEFAULT_SCORE))

    display = int(min(5, max(1, round_half_up(exact))))
    return exact, display


def render_stars(rating: int) -> str:
    return "*" * rating
