"""
Unit tests for the pure conversation rules: merge, follow-up questions
and approval replies.
"""

from datetime import datetime, timedelta, timezone

import pytest

from voicereview.domain.conversation import (
    VENUE_QUESTION,
    ApprovalReply,
    follow_up_question,
    merge,
    missing_items,
    parse_approval,
)
from voicereview.domain.models import (
    AspectRating,
    ExtractionResult,
    ReviewSession,
    Sentiment,
)

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def test_merge_sets_new_fields_and_appends_transcript():
    session = ReviewSession(sender="1", last_activity=T0)
    update = ExtractionResult(
        is_review=True,
        venue_name="The Grand",
        food=AspectRating("loved the food", 5),
    )

    merged = merge(session, update, "The Grand, loved the food", T0 + timedelta(seconds=5))

    assert merged.venue_name == "The Grand"
    assert merged.food == AspectRating("loved the food", 5)
    assert merged.transcripts == ["The Grand, loved the food"]
    assert merged.last_activity == T0 + timedelta(seconds=5)


def test_merge_with_nulls_never_clears_known_values():
    session = ReviewSession(
        sender="1",
        venue_name="The Grand",
        reviewer_name="Sam",
        food=AspectRating("great", 5),
        overall_sentiment=Sentiment.POSITIVE,
        transcripts=["first"],
    )

    merged = merge(session, ExtractionResult(), "second", T0)

    assert merged.venue_name == "The Grand"
    assert merged.reviewer_name == "Sam"
    assert merged.food == AspectRating("great", 5)
    assert merged.overall_sentiment is Sentiment.POSITIVE
    assert merged.transcripts == ["first", "second"]


def test_merge_overwrites_with_newer_values():
    session = ReviewSession(sender="1", venue_name="Grand", food=AspectRating("ok", 3))
    update = ExtractionResult(venue_name="The Grand Paris", food=AspectRating("amazing", 5))

    merged = merge(session, update, "text", T0)

    assert merged.venue_name == "The Grand Paris"
    assert merged.food.score == 5


def test_merge_does_not_mutate_input_session():
    session = ReviewSession(sender="1", transcripts=["a"])
    merge(session, ExtractionResult(venue_name="X"), "b", T0)

    assert session.venue_name is None
    assert session.transcripts == ["a"]


def test_missing_items_in_priority_order():
    session = ReviewSession(sender="1", venue_name="X", amenities=AspectRating("pool", 4))
    assert missing_items(session) == ["reviewer_name", "food", "location", "service"]


def test_question_open_ended_when_four_or_more_missing():
    session = ReviewSession(sender="1", venue_name="The Grand")
    question = follow_up_question(session, missing_items(session))

    assert "The Grand" in question
    assert "your name" in question
    assert "food" in question
    assert "amenities" not in question


def test_question_covers_two_items():
    session = ReviewSession(
        sender="1",
        venue_name="The Grand",
        food=AspectRating("good", 4),
        amenities=AspectRating("pool", 4),
        location=AspectRating("far", 1),
    )
    question = follow_up_question(session, missing_items(session))

    assert question.startswith("Thanks for the details!")
    assert "your name" in question
    assert "service" in question


def test_question_single_item():
    session = ReviewSession(
        sender="1",
        venue_name="The Grand",
        reviewer_name="Sam",
        food=AspectRating("good", 4),
        amenities=AspectRating("pool", 4),
        location=AspectRating("far", 1),
    )
    question = follow_up_question(session, missing_items(session))

    assert question == "Almost done! One more thing - how was the service and staff?"


def test_no_question_when_nothing_missing():
    assert follow_up_question(ReviewSession(sender="1", venue_name="X"), []) is None


def test_venue_question_does_not_mention_aspects():
    assert "venue" in VENUE_QUESTION


@pytest.mark.parametrize("text", ["yes", "Y", " ok ", "OKAY"])
def test_parse_approval_yes(text):
    assert parse_approval(text) is ApprovalReply.APPROVED


@pytest.mark.parametrize("text", ["no", "N", "Nope"])
def test_parse_approval_no(text):
    assert parse_approval(text) is ApprovalReply.REJECTED


@pytest.mark.parametrize("text", ["maybe", "yes please", "", "sure"])
def test_parse_approval_ambiguous(text):
    assert parse_approval(text) is ApprovalReply.AMBIGUOUS
