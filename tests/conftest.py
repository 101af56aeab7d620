"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

import pytest

from calendar_copilot.client import CalendarClient, CalendarUnavailableError
from calendar_copilot.config import CalendarSettings
from calendar_copilot.dispatch import CommandDispatcher

FIXED_NOW = datetime(2025, 8, 20, 6, 30, tzinfo=timezone.utc)


class RecordingCalendarClient(CalendarClient):
    """In-memory calendar client that records every call it receives."""

    def __init__(self, responses: Optional[Dict[str, Any]] = None, *, available: bool = True) -> None:
        self.responses: Dict[str, Any] = dict(responses or {})
        self.calls: List[Tuple[str, Dict[str, Any]]] = []
        self.available = available
        self.connect_attempts = 0
        self._connected = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> bool:
        self.connect_attempts += 1
        self._connected = self.available
        return self._connected

    async def call(self, operation: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        if not self._connected:
            raise CalendarUnavailableError("not connected")
        self.calls.append((operation, dict(args or {})))
        response = self.responses.get(operation)
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(dict(args or {}))
        return response

    async def disconnect(self) -> None:
        self._connected = False

    def operations(self) -> List[str]:
        return [operation for operation, _ in self.calls]


@pytest.fixture
def calendar_settings() -> CalendarSettings:
    return CalendarSettings(
        default_timezone="Asia/Kolkata",
        default_calendar_id="primary",
        list_horizon=timedelta(days=7),
        search_horizon=timedelta(days=30),
        availability_horizon=timedelta(days=7),
        freebusy_horizon=timedelta(days=7),
        default_duration_minutes=60,
    )


@pytest.fixture
def fake_client() -> RecordingCalendarClient:
    return RecordingCalendarClient()


@pytest.fixture
def dispatcher(fake_client: RecordingCalendarClient, calendar_settings: CalendarSettings) -> CommandDispatcher:
    return CommandDispatcher(fake_client, calendar_settings, clock=lambda: FIXED_NOW)


@pytest.fixture
def google_event() -> Dict[str, Any]:
    return {
        "id": "evt-123",
        "summary": "Team Sync",
        "description": "Weekly sync",
        "start": {"dateTime": "2025-08-20T18:00:00+05:30", "timeZone": "Asia/Kolkata"},
        "end": {"dateTime": "2025-08-20T19:00:00+05:30", "timeZone": "Asia/Kolkata"},
        "location": "Room 4",
        "attendees": [{"email": "ana@example.com"}, {"email": "raj@example.com"}],
        "status": "confirmed",
        "htmlLink": "https://calendar.google.com/event?eid=abc",
    }
