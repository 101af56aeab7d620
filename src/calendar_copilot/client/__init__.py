"""Calendar backend clients."""

from __future__ import annotations

from .errors import UNAVAILABLE_MESSAGE, CalendarClientError, CalendarUnavailableError, CalendarUpstreamError
from .mcp import McpCalendarClient, decode_tool_result, get_calendar_client
from .protocol import OPERATION_NAMES, CalendarClient

__all__ = [
    "OPERATION_NAMES",
    "UNAVAILABLE_MESSAGE",
    "CalendarClient",
    "CalendarClientError",
    "CalendarUnavailableError",
    "CalendarUpstreamError",
    "McpCalendarClient",
    "decode_tool_result",
    "get_calendar_client",
]
