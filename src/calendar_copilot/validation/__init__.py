"""Field-level validation for calendar commands."""

from __future__ import annotations

from .datetimes import (
    day_window,
    format_rfc3339,
    normalize_datetime,
    normalize_window,
    parse_datetime,
    resolve_zone,
    utc_now,
    validate_time_range,
)
from .errors import DateTimeInvalid, FieldRequired, TimeWindowInvalid, ValidationFailed
from .strings import sanitize_attendees, sanitize_string, validate_email

__all__ = [
    "DateTimeInvalid",
    "FieldRequired",
    "TimeWindowInvalid",
    "ValidationFailed",
    "day_window",
    "format_rfc3339",
    "normalize_datetime",
    "normalize_window",
    "parse_datetime",
    "resolve_zone",
    "sanitize_attendees",
    "sanitize_string",
    "utc_now",
    "validate_email",
    "validate_time_range",
]
