"""
Frontmatter codec for one-note-per-event storage.

A note looks like:

    ---
    title: Standup
    type: single
    date: '2024-01-10'
    allDay: false
    startTime: 09:00
    endTime: 09:15
    ---
    Free-form notes about the event.

parse(serialize(record)) == record for every validated record.
"""

from typing import Optional

import yaml

from .event_record import EventRecord, to_raw, validate
from .exceptions import ValidationError


DELIMITER = "---"


def split_frontmatter(text: str) -> tuple[Optional[dict], str]:
    """
    Split a note into its frontmatter mapping and body.

    Returns:
        (frontmatter, body). frontmatter is None if the note has none.

    Raises:
        ValidationError: if the frontmatter block is not valid YAML.
    """
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip("\r\n") != DELIMITER:
        return None, text

    for index in range(1, len(lines)):
        if lines[index].rstrip("\r\n") == DELIMITER:
            block = "".join(lines[1:index])
            body = "".join(lines[index + 1:])
            try:
                data = yaml.safe_load(block) if block.strip() else {}
            except (yaml.YAMLError, ValueError) as e:
                # ValueError: impossible dates such as 2024-02-30
                raise ValidationError(f"Invalid frontmatter: {e}")
            if data is None:
                data = {}
            if not isinstance(data, dict):
                raise ValidationError("Frontmatter must be a mapping")
            return data, body

    return None, text


def serialize(record: EventRecord, body: str = "") -> str:
    """Render an event as note text, keeping the given body below the frontmatter."""
    block = yaml.safe_dump(
        to_raw(record),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"{DELIMITER}\n{block}{DELIMITER}\n{body}"


def parse(text: str) -> EventRecord:
    """
    Read the event stored in a note.

    Raises:
        ValidationError: if the note has no frontmatter or it is not a valid event.
    """
    data, _ = split_frontmatter(text)
    if data is None:
        raise ValidationError("Note has no frontmatter")
    return validate(data)


def replace_frontmatter(text: str, record: EventRecord) -> str:
    """Rewrite the frontmatter of an existing note, leaving its body alone."""
    _, body = split_frontmatter(text)
    return serialize(record, body)
