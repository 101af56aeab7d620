"""Best-effort recovery of records from human-readable backend messages.

Both parsers are deterministic and never raise on a bad block; the block is
logged and dropped while its neighbours are kept.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional

from ..domain import CalendarSummary, NormalizedEvent
from ..validation import DateTimeInvalid
from .records import UNTITLED_EVENT, coerce_event_time

logger = logging.getLogger(__name__)

_RECORD_DELIMITER_RE = re.compile(r"(?:^|\n[ \t]*\n)[ \t]*\d+\.[ \t]+")
_LABEL_RE = re.compile(r"^\s*(?P<label>[A-Za-z][A-Za-z ]*?)\s*:\s*(?P<value>.*)$")
_CALENDAR_LINE_RE = re.compile(r"^\s*(?:\d+\.\s+)?(?P<summary>.+?)\s*\((?P<id>[^()]+)\)\s*(?P<rest>.*)$")

_EVENT_LABELS = {
    "event": "title",
    "title": "title",
    "summary": "title",
    "event id": "id",
    "id": "id",
    "description": "description",
    "start": "start",
    "end": "end",
    "location": "location",
    "view": "html_link",
    "link": "html_link",
    "status": "status",
    "attendees": "attendees",
    "color id": "color_id",
}
_CALENDAR_LABELS = {
    "timezone": "time_zone",
    "time zone": "time_zone",
    "access role": "access_role",
    "access": "access_role",
}


def _event_fields(block: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    lines = [line for line in block.splitlines() if line.strip()]
    for position, line in enumerate(lines):
        match = _LABEL_RE.match(line)
        key = _EVENT_LABELS.get(match["label"].lower()) if match else None
        if key is None:
            if position == 0:
                fields.setdefault("title", line.strip())
            continue
        fields.setdefault(key, match["value"].strip())
    return fields


def _event_from_block(block: str) -> Optional[NormalizedEvent]:
    fields = _event_fields(block)
    if not fields.get("id") or not fields.get("start") or not fields.get("end"):
        logger.debug("Skipping event block without id/start/end: %r", block[:80])
        return None
    try:
        start = coerce_event_time(fields["start"])
        end = coerce_event_time(fields["end"])
    except DateTimeInvalid as exc:
        logger.debug("Skipping event block with unreadable dates: %s", exc)
        return None
    attendees = [email.strip() for email in fields.get("attendees", "").split(",") if email.strip()]
    return NormalizedEvent(
        id=fields["id"],
        title=fields.get("title") or UNTITLED_EVENT,
        description=fields.get("description", ""),
        start=start,
        end=end,
        location=fields.get("location", ""),
        attendees=attendees,
        color_id=fields.get("color_id") or None,
        status=fields.get("status") or None,
        html_link=fields.get("html_link") or None,
    )


def parse_event_blocks(text: str) -> List[NormalizedEvent]:
    """Rebuild events from a numbered listing.

    >>> parse_event_blocks("Found 1 event(s):\\n\\n1. Event: Standup\\nEvent ID: abc\\n"
    ...                    "Start: 2025-08-20T09:00:00Z\\nEnd: 2025-08-20T09:15:00Z")[0].id
    'abc'
    """

    if not text:
        return []
    blocks = _RECORD_DELIMITER_RE.split(text)[1:]
    events: List[NormalizedEvent] = []
    for block in blocks:
        event = _event_from_block(block)
        if event is not None:
            events.append(event)
    return events


def parse_calendar_blocks(text: str) -> List[CalendarSummary]:
    """Rebuild calendars from ``Name (id)`` lines, with optional detail lines below each."""

    calendars: List[CalendarSummary] = []
    if not text:
        return calendars
    for line in text.splitlines():
        if not line.strip():
            continue
        label = _LABEL_RE.match(line)
        if label:
            attribute = _CALENDAR_LABELS.get(label["label"].lower())
            if attribute and calendars:
                setattr(calendars[-1], attribute, label["value"].strip() or None)
            continue
        match = _CALENDAR_LINE_RE.match(line)
        if not match:
            continue
        calendar_id = match["id"].strip()
        summary = match["summary"].strip()
        if not calendar_id or " " in calendar_id:
            continue
        calendars.append(
            CalendarSummary(
                id=calendar_id,
                summary=summary,
                primary="PRIMARY" in line,
            )
        )
    return calendars
