from __future__ import annotations

UNAVAILABLE_MESSAGE = "Calendar service is currently unavailable. Please try again later."


class CalendarClientError(RuntimeError):
    """Base class for calendar backend failures."""


class CalendarUnavailableError(CalendarClientError):
    """Raised when a call is attempted without a live backend connection."""


class CalendarUpstreamError(CalendarClientError):
    """Raised when the calendar backend rejects a call or the transport fails."""
