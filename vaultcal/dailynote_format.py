"""
Codec for events kept as list items under a heading of a daily note.

    ## Events
    - [ ] Standup [startTime:: 09:00] [endTime:: 09:15]
    - [ ] Company offsite [allDay:: true] [category:: Work]

The date of every item is the date of the note. Only top-level list items
between the heading and the next heading of the same or a higher level are
events. Line numbers are 0-based indexes into the note.
"""

import re
from datetime import date
from typing import Optional, Sequence

from .event_record import Classification, EventRecord, SingleTiming, validate
from .exceptions import ValidationError


HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)\s*#*\s*$")
LIST_ITEM_RE = re.compile(r"^[-*+] (?:\[(?P<check>.)\] )?(?P<text>.*)$")
FIELD_RE = re.compile(r"\[(?P<key>[A-Za-z]+)::\s*(?P<value>[^\]]*?)\s*\]")


def normalize_heading(heading: str) -> str:
    return heading.strip().lstrip("#").strip()


def find_section(lines: Sequence[str], heading: str) -> Optional[tuple[int, int]]:
    """
    Locate the body of a heading.

    Returns:
        (first, end) line indexes of the section body, end exclusive,
        or None if the heading is not in the note.
    """
    wanted = normalize_heading(heading)
    for index, line in enumerate(lines):
        match = HEADING_RE.match(line)
        if not match or match.group(2) != wanted:
            continue
        level = len(match.group(1))
        end = len(lines)
        for other in range(index + 1, len(lines)):
            other_match = HEADING_RE.match(lines[other])
            if other_match and len(other_match.group(1)) <= level:
                end = other
                break
        return index + 1, end
    return None


def parse_list_item(
    line: str,
    note_date: date,
    categories: Sequence[Classification] = (),
    default_color: str = "",
) -> Optional[EventRecord]:
    """
    Parse one list item into an event.

    Returns:
        The event, or None if the line is not a list item.

    Raises:
        ValidationError: if the item is a list item but not a valid event.
    """
    match = LIST_ITEM_RE.match(line.rstrip("\r\n"))
    if not match:
        return None

    text = match.group("text")
    fields: dict[str, str] = {}
    names: list[str] = []
    for field_match in FIELD_RE.finditer(text):
        key = field_match.group("key")
        value = field_match.group("value")
        if key == "category":
            names.append(value)
        else:
            fields[key] = value
    title = FIELD_RE.sub("", text).strip()

    by_name = {c.name: c for c in categories}
    category = [
        by_name.get(name, Classification(name=name, color=default_color))
        for name in names
    ]

    raw = {
        "title": title,
        "type": "single",
        "date": note_date,
        "allDay": fields.get("allDay", "false").lower() == "true",
        "startTime": fields.get("startTime"),
        "endTime": fields.get("endTime"),
        "category": [{"name": c.name, "color": c.color} for c in category],
    }
    if fields.get("endDate"):
        raw["endDate"] = fields["endDate"]
    return validate(raw)


def serialize_list_item(record: EventRecord) -> str:
    """Render an event as a list item line (without a trailing newline)."""
    timing = record.timing
    if not isinstance(timing, SingleTiming):
        raise ValidationError("Daily notes can only hold single events")

    parts = [f"- [ ] {record.title}"]
    if record.all_day:
        parts.append("[allDay:: true]")
    else:
        if timing.start_time is not None:
            parts.append(f"[startTime:: {timing.start_time.strftime('%H:%M')}]")
        if timing.end_time is not None:
            parts.append(f"[endTime:: {timing.end_time.strftime('%H:%M')}]")
    if timing.end_date is not None:
        parts.append(f"[endDate:: {timing.end_date.isoformat()}]")
    for classification in record.category:
        parts.append(f"[category:: {classification.name}]")
    return " ".join(parts)


def events_in_note(
    text: str,
    heading: str,
    note_date: date,
    categories: Sequence[Classification] = (),
    default_color: str = "",
) -> list[tuple[EventRecord, int]]:
    """
    List the events under a heading.

    Items that fail validation are skipped.

    Returns:
        (event, line number) pairs in note order.
    """
    lines = text.splitlines()
    section = find_section(lines, heading)
    if section is None:
        return []

    events = []
    first, end = section
    for line_no in range(first, end):
        try:
            record = parse_list_item(lines[line_no], note_date, categories, default_color)
        except ValidationError:
            continue
        if record is not None:
            events.append((record, line_no))
    return events


def _newline(text: str) -> str:
    """Line ending used by a note; CRLF notes stay CRLF."""
    return "\r\n" if "\r\n" in text else "\n"


def _join(lines: list[str], newline: str = "\n") -> str:
    if not lines:
        return ""
    return newline.join(lines) + newline


def append_to_section(text: str, heading: str, item: str) -> tuple[str, int]:
    """
    Add a list item at the end of the heading's list, creating the heading if needed.

    Returns:
        (new note text, line number of the new item).
    """
    lines = text.splitlines()
    section = find_section(lines, heading)
    if section is None:
        if lines and lines[-1].strip():
            lines.append("")
        lines.append(f"## {normalize_heading(heading)}")
        lines.append(item)
        return _join(lines, _newline(text)), len(lines) - 1

    first, end = section
    insert_at = first
    in_list = False
    for line_no in range(first, end):
        line = lines[line_no]
        if LIST_ITEM_RE.match(line):
            in_list = True
            insert_at = line_no + 1
        elif in_list and line.startswith((" ", "\t")):
            insert_at = line_no + 1
        elif line.strip():
            in_list = False
    lines.insert(insert_at, item)
    return _join(lines, _newline(text)), insert_at


def replace_line(text: str, line_no: int, new_line: str) -> str:
    lines = text.splitlines()
    lines[line_no] = new_line
    return _join(lines, _newline(text))


def remove_line(text: str, line_no: int) -> str:
    lines = text.splitlines()
    del lines[line_no]
    return _join(lines, _newline(text))
