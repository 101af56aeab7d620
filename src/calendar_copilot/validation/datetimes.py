"""Coercion of loosely formatted date/time values into strict RFC3339 UTC.

Every timestamp that reaches the calendar backend passes through
:func:`normalize_datetime`, which always emits ``YYYY-MM-DDTHH:MM:SS.mmmZ``.
Values without an explicit offset are read as UTC, never as local time.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..domain import TimeWindow
from .errors import DateTimeInvalid, TimeWindowInvalid, ValidationFailed

DateLike = Union[str, datetime, date]

_MINUTE_PRECISION_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}$")
_OFFSET_SUFFIX_RE = re.compile(r"(?:Z|[+-]\d{2}(?::?\d{2})?)$", re.IGNORECASE)
_RFC3339_RE = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"(?:[T ](?P<hour>\d{2}):(?P<minute>\d{2})(?::(?P<second>\d{2})(?:[.,](?P<fraction>\d{1,9}))?)?)?"
    r"(?P<offset>Z|[+-]\d{2}(?::?\d{2})?)?$",
    re.IGNORECASE,
)


def format_rfc3339(value: datetime) -> str:
    """Serialize an aware datetime as UTC with millisecond precision and ``Z``."""

    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_offset(raw: Optional[str]) -> timezone:
    if not raw or raw.upper() == "Z":
        return timezone.utc
    sign = -1 if raw[0] == "-" else 1
    digits = raw[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4] or 0)
    if hours > 23 or minutes > 59:
        raise DateTimeInvalid(f"Invalid UTC offset: {raw}")
    return timezone(sign * timedelta(hours=hours, minutes=minutes))


def parse_datetime(value: DateLike) -> datetime:
    """Parse ``value`` into an aware UTC datetime or raise :class:`DateTimeInvalid`."""

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError as exc:
            raise DateTimeInvalid(f"DateTime out of range: {value!r}") from exc
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if value is None:
        raise DateTimeInvalid("DateTime is required")
    if not isinstance(value, str):
        raise DateTimeInvalid(f"DateTime must be a string or datetime, got {type(value).__name__}")

    text = value.strip()
    if not text:
        raise DateTimeInvalid("DateTime cannot be empty")
    if _MINUTE_PRECISION_RE.match(text):
        text += ":00"
    if "T" in text.upper() and not _OFFSET_SUFFIX_RE.search(text):
        text += "Z"

    match = _RFC3339_RE.match(text)
    if not match:
        raise DateTimeInvalid(f"Invalid date format: {value!r}")

    parts = match.groupdict()
    fraction = (parts["fraction"] or "0")[:6].ljust(6, "0")
    try:
        parsed = datetime(
            int(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts["hour"] or 0),
            int(parts["minute"] or 0),
            int(parts["second"] or 0),
            int(fraction),
            tzinfo=_parse_offset(parts["offset"]),
        )
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError) as exc:
        raise DateTimeInvalid(f"Invalid date components: {value!r}") from exc


def normalize_datetime(value: DateLike) -> str:
    """Return ``value`` as ``YYYY-MM-DDTHH:MM:SS.mmmZ``.

    >>> normalize_datetime("2025-08-20T15:00")
    '2025-08-20T15:00:00.000Z'
    """

    parsed = parse_datetime(value)
    # Truncated, never rounded.
    parsed = parsed.replace(microsecond=(parsed.microsecond // 1000) * 1000)
    return format_rfc3339(parsed)


def resolve_zone(zone: Optional[str], default: str) -> str:
    """Validate an IANA zone name, falling back to ``default`` when absent."""

    candidate = zone.strip() if isinstance(zone, str) else ""
    if not candidate:
        candidate = default
    try:
        ZoneInfo(candidate)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationFailed(f"Unknown time zone: {candidate}", field="timeZone") from exc
    return candidate


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_window(
    start: Optional[DateLike],
    end: Optional[DateLike],
    zone: Optional[str] = None,
    *,
    default_zone: str = "UTC",
    horizon: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> TimeWindow:
    """Build a :class:`TimeWindow` with both bounds normalized.

    With a ``horizon`` a missing start means "now" and a missing end means
    ``start + horizon``. Without one both bounds are required. Equal or
    inverted bounds are rejected, never swapped.
    """

    resolved_zone = resolve_zone(zone, default_zone)
    if _is_blank(start):
        if horizon is None:
            raise DateTimeInvalid("Window start is required", field="timeMin")
        start_dt = parse_datetime(now or utc_now())
    else:
        start_dt = parse_datetime(start)

    if _is_blank(end):
        if horizon is None:
            raise DateTimeInvalid("Window end is required", field="timeMax")
        try:
            end_dt = start_dt + horizon
        except OverflowError as exc:
            raise TimeWindowInvalid("Window end falls past the latest supported date", field="timeMax") from exc
    else:
        end_dt = parse_datetime(end)

    start_text = normalize_datetime(start_dt)
    end_text = normalize_datetime(end_dt)
    if parse_datetime(end_text) <= parse_datetime(start_text):
        raise TimeWindowInvalid("End time must be after start time", field="timeMax")
    return TimeWindow(start=start_text, end=end_text, zone=resolved_zone)


def day_window(zone: str, *, now: Optional[datetime] = None) -> TimeWindow:
    """Start of today through start of tomorrow in ``zone``."""

    tz = ZoneInfo(zone)
    local_now = (now or utc_now()).astimezone(tz)
    start_of_day = datetime.combine(local_now.date(), time.min, tzinfo=tz)
    next_day = datetime.combine(local_now.date() + timedelta(days=1), time.min, tzinfo=tz)
    return TimeWindow(start=normalize_datetime(start_of_day), end=normalize_datetime(next_day), zone=zone)


def validate_time_range(start: str, end: str) -> None:
    if parse_datetime(end) <= parse_datetime(start):
        raise TimeWindowInvalid("End time must be after start time", field="end")


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
