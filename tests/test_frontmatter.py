"""Tests for the note frontmatter codec."""

from datetime import date, time

import pytest

from vaultcal import frontmatter
from vaultcal.event_record import Classification, EventRecord, RecurringTiming, SingleTiming
from vaultcal.exceptions import ValidationError


STANDUP = EventRecord(
    title="Standup",
    timing=SingleTiming(date(2024, 1, 10), start_time=time(9, 0), end_time=time(9, 15)),
    category=(Classification("Work", "#ff0000"),),
)

GYM = EventRecord(
    title="Gym: legs",
    timing=RecurringTiming(
        start_recur=date(2024, 1, 1),
        end_recur=date(2024, 6, 30),
        days_of_week=(0, 3),
        skip_dates=(date(2024, 1, 4), date(2024, 2, 1)),
        start_time=time(7, 30),
        end_time=time(8, 30),
    ),
)


@pytest.mark.parametrize("record", [STANDUP, GYM])
def test_parse_serialize_round_trip(record):
    assert frontmatter.parse(frontmatter.serialize(record)) == record


def test_serialize_layout():
    text = frontmatter.serialize(STANDUP, "Agenda\n")
    assert text.startswith("---\ntitle: Standup\n")
    assert text.endswith("---\nAgenda\n")


def test_parse_hand_written_note():
    """Unquoted dates and HH:MM times as written by hand are understood."""
    text = (
        "---\n"
        "title: Review\n"
        "date: 2024-01-10\n"
        "startTime: 10:30\n"
        "endTime: '11:00'\n"
        "---\n"
        "Bring the slides.\n"
    )
    record = frontmatter.parse(text)
    assert record.title == "Review"
    assert record.timing.date == date(2024, 1, 10)
    assert record.start_time == time(10, 30)
    assert record.end_time == time(11, 0)


def test_replace_frontmatter_keeps_body():
    original = frontmatter.serialize(STANDUP, "Notes\n\n- item\n")
    updated = frontmatter.replace_frontmatter(original, STANDUP.with_changes(title="Daily Standup"))
    assert frontmatter.parse(updated).title == "Daily Standup"
    assert updated.endswith("---\nNotes\n\n- item\n")


def test_split_frontmatter_without_block():
    assert frontmatter.split_frontmatter("Just text\n") == (None, "Just text\n")
    assert frontmatter.split_frontmatter("---\ntitle: open\n") == (None, "---\ntitle: open\n")


def test_parse_rejects_notes_without_events():
    with pytest.raises(ValidationError):
        frontmatter.parse("No frontmatter here\n")
    with pytest.raises(ValidationError):
        frontmatter.parse("---\ntitle: [unclosed\n---\n")
    with pytest.raises(ValidationError):
        frontmatter.parse("---\n- a\n- b\n---\n")
    with pytest.raises(ValidationError):
        frontmatter.parse("---\ntags: [meeting]\n---\n")


def test_parse_rejects_impossible_dates():
    with pytest.raises(ValidationError):
        frontmatter.parse("---\ntitle: Typo\ntype: single\ndate: 2024-02-30\n---\n")
    data, body = frontmatter.split_frontmatter("---\ntitle: Fine\n---\nbody\n")
    assert data == {"title": "Fine"}
    assert body == "body\n"
