from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..client import CalendarClient
from ..config import CalendarSettings
from ..domain import NormalizedEvent, OperationKind, TimeWindow
from ..responses import event_from_record, normalize_response
from ..validation import day_window, sanitize_string, utc_now

logger = logging.getLogger(__name__)


class TargetNotFound(LookupError):
    """Raised when a search-addressed update or delete matches no event."""


class FuzzyTargetResolver:
    """Find the event a request names by text instead of by identifier.

    Exactly one search is issued. The first event in backend order that has
    readable dates and an id wins. An empty result is final and the window is
    never widened.
    """

    def __init__(
        self,
        client: CalendarClient,
        settings: CalendarSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._client = client
        self._settings = settings
        self._clock = clock

    async def resolve(
        self,
        search_query: str,
        window: Optional[TimeWindow] = None,
        calendar_id: Optional[str] = None,
    ) -> Optional[NormalizedEvent]:
        query = sanitize_string(search_query, "searchQuery", required=True)
        window = window or day_window(self._settings.default_timezone, now=self._clock())
        args = {
            "calendarId": calendar_id or self._settings.default_calendar_id,
            "query": query,
            "timeMin": window.start,
            "timeMax": window.end,
            "timeZone": window.zone,
        }
        logger.debug("Resolving event target %r between %s and %s", query, window.start, window.end)
        raw = await self._client.invoke("search-events", args)
        events = normalize_response(OperationKind.SEARCH, raw)["events"]
        for record in events:
            if record.get("id"):
                return event_from_record(record)
        logger.info("No event matched %r", query)
        return None
