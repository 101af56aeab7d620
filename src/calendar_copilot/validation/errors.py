from __future__ import annotations

from typing import Optional


class ValidationFailed(ValueError):
    """Raised when a command field cannot be coerced into its wire format."""

    def __init__(self, message: str, *, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class FieldRequired(ValidationFailed):
    """Raised when a required field is missing or blank."""


class DateTimeInvalid(ValidationFailed):
    """Raised when a value does not describe a real calendar instant."""


class TimeWindowInvalid(ValidationFailed):
    """Raised when a window's end does not fall strictly after its start."""
