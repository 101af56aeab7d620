from __future__ import annotations

import re
from typing import Any, Iterable, List

from .errors import FieldRequired, ValidationFailed

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_string(value: Any, field_name: str, required: bool = False) -> str:
    """Trim ``value`` to a string; blank required values raise :class:`FieldRequired`."""

    if value is None:
        if required:
            raise FieldRequired(f"{field_name} is required", field=field_name)
        return ""
    text = value if isinstance(value, str) else str(value)
    trimmed = text.strip()
    if required and not trimmed:
        raise FieldRequired(f"{field_name} cannot be empty", field=field_name)
    return trimmed


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.match(email))


def _attendee_candidates(value: Any) -> Iterable[Any]:
    if isinstance(value, str):
        return value.split(",")
    if isinstance(value, dict):
        return [value]
    if isinstance(value, (list, tuple)):
        return value
    raise ValidationFailed("Attendees must be a list of e-mail addresses", field="attendees")


def sanitize_attendees(value: Any) -> List[str]:
    """Collect attendee e-mails from strings, ``{"email": ...}`` mappings or a comma list."""

    if value is None:
        return []
    emails: List[str] = []
    for candidate in _attendee_candidates(value):
        raw = candidate.get("email") if isinstance(candidate, dict) else candidate
        email = sanitize_string(raw, "Attendee")
        if not email:
            continue
        if not validate_email(email):
            raise ValidationFailed(f"Invalid email address: {email}", field="attendees")
        if email not in emails:
            emails.append(email)
    return emails
