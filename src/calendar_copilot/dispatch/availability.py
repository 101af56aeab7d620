from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from ..validation import ValidationFailed, format_rfc3339, parse_datetime

MIN_DURATION_MINUTES = 1
MAX_DURATION_MINUTES = 1440


def validate_duration(value: Any, default: int) -> int:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    if isinstance(value, bool):
        raise ValidationFailed("Duration must be a number of minutes", field="duration")
    try:
        minutes = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationFailed("Duration must be a number of minutes", field="duration") from exc
    if not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
        raise ValidationFailed(
            f"Duration must be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes",
            field="duration",
        )
    return minutes


def _slot(start: datetime, end: datetime) -> Dict[str, Any]:
    return {
        "start": format_rfc3339(start),
        "end": format_rfc3339(end),
        "duration": int((end - start).total_seconds() // 60),
    }


def find_available_slots(
    window_start: str,
    window_end: str,
    busy: Sequence[Mapping[str, str]],
    duration_minutes: int,
) -> List[Dict[str, Any]]:
    """Return the gaps of at least ``duration_minutes`` between busy periods.

    Busy periods may overlap and arrive in any order; gaps are clipped to the
    window.
    """

    start = parse_datetime(window_start)
    end = parse_datetime(window_end)
    minimum = timedelta(minutes=duration_minutes)
    periods: List[Tuple[datetime, datetime]] = sorted(
        (parse_datetime(period["start"]), parse_datetime(period["end"])) for period in busy
    )

    slots: List[Dict[str, Any]] = []
    cursor = start
    for busy_start, busy_end in periods:
        if cursor >= end:
            break
        gap_end = min(busy_start, end)
        if gap_end - cursor >= minimum:
            slots.append(_slot(cursor, gap_end))
        cursor = max(cursor, busy_end)

    if end - cursor >= minimum:
        slots.append(_slot(cursor, end))
    return slots
