from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import Any, List, Mapping, Optional

from ..domain import CalendarSummary, NormalizedEvent
from ..validation import DateTimeInvalid, normalize_datetime

UNTITLED_EVENT = "Untitled Event"

_MONTHS = {
    name: index
    for index, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"), start=1
    )
}
_JS_DATE_RE = re.compile(
    r"^(?:[A-Za-z]{3},?\s+)?(?P<month>[A-Za-z]{3})\s+(?P<day>\d{1,2}),?\s+(?P<year>\d{4})"
    r"(?:\s+(?P<hour>\d{1,2}):(?P<minute>\d{2})(?::(?P<second>\d{2}))?)?"
    r"(?:\s+GMT(?P<offset>[+-]\d{4})?)?(?:\s+\(.*\))?$"
)


def parse_js_date(text: str) -> str:
    """Read JavaScript ``Date.toString()`` output such as
    ``Wed Aug 20 2025 15:00:00 GMT+0530 (India Standard Time)``."""

    match = _JS_DATE_RE.match(text.strip())
    if not match:
        raise DateTimeInvalid(f"Unrecognized date text: {text!r}")
    month = _MONTHS.get(match["month"].lower())
    if month is None:
        raise DateTimeInvalid(f"Unrecognized month in {text!r}")
    offset = timezone.utc
    if match["offset"]:
        sign = -1 if match["offset"][0] == "-" else 1
        offset = timezone(sign * timedelta(hours=int(match["offset"][1:3]), minutes=int(match["offset"][3:5])))
    try:
        value = datetime(
            int(match["year"]),
            month,
            int(match["day"]),
            int(match["hour"] or 0),
            int(match["minute"] or 0),
            int(match["second"] or 0),
            tzinfo=offset,
        )
    except ValueError as exc:
        raise DateTimeInvalid(f"Invalid date components: {text!r}") from exc
    return normalize_datetime(value)


def coerce_event_time(value: Any) -> str:
    """Normalize an event boundary given as RFC3339 text, JS date text or a
    Google ``{"dateTime": ...}`` / ``{"date": ...}`` object."""

    if isinstance(value, Mapping):
        value = value.get("dateTime") or value.get("date")
    if not isinstance(value, str) or not value.strip():
        raise DateTimeInvalid("Event time is missing")
    try:
        return normalize_datetime(value)
    except DateTimeInvalid:
        return parse_js_date(value)


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _optional_text(value: Any) -> Optional[str]:
    text = _text(value)
    return text or None


def attendee_emails(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    emails: List[str] = []
    for attendee in value:
        email = attendee.get("email") if isinstance(attendee, Mapping) else attendee
        email = _text(email)
        if email and email not in emails:
            emails.append(email)
    return emails


def event_from_record(record: Mapping[str, Any]) -> NormalizedEvent:
    """Build a :class:`NormalizedEvent` from a Google-style or flat event mapping.

    Raises :class:`DateTimeInvalid` when either boundary is missing or unreadable.
    """

    return NormalizedEvent(
        id=_optional_text(record.get("id") or record.get("eventId")),
        title=_text(record.get("summary") or record.get("title")) or UNTITLED_EVENT,
        description=_text(record.get("description")),
        start=coerce_event_time(record.get("start")),
        end=coerce_event_time(record.get("end")),
        location=_text(record.get("location")),
        attendees=attendee_emails(record.get("attendees")),
        color_id=_optional_text(record.get("colorId")),
        status=_optional_text(record.get("status")),
        html_link=_optional_text(record.get("htmlLink")),
        calendar_id=_optional_text(record.get("calendarId")),
    )


def calendar_from_record(record: Mapping[str, Any]) -> Optional[CalendarSummary]:
    calendar_id = _text(record.get("id"))
    if not calendar_id:
        return None
    return CalendarSummary(
        id=calendar_id,
        summary=_text(record.get("summaryOverride") or record.get("summary") or record.get("name")) or calendar_id,
        primary=bool(record.get("primary")),
        time_zone=_optional_text(record.get("timeZone")),
        access_role=_optional_text(record.get("accessRole")),
    )
