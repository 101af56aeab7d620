from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from ..client import CalendarClient
from ..config import CalendarSettings
from ..domain import Command, TimeWindow
from ..validation import normalize_window, resolve_zone, sanitize_string
from .resolver import FuzzyTargetResolver

_TARGET_START = ("searchTimeMin", "timeMin")
_TARGET_END = ("searchTimeMax", "timeMax")


@dataclass
class OperationContext:
    """Everything an operation handler may touch while running one command."""

    client: CalendarClient
    settings: CalendarSettings
    resolver: FuzzyTargetResolver
    clock: Callable[[], datetime]

    def calendar_id(self, command: Command) -> str:
        return sanitize_string(command.param("calendarId"), "calendarId") or self.settings.default_calendar_id

    def zone(self, command: Command) -> str:
        return resolve_zone(command.param("timeZone", "timezone"), self.settings.default_timezone)

    def window(
        self,
        command: Command,
        horizon: timedelta,
        *,
        start_names: Sequence[str] = ("timeMin", "start"),
        end_names: Sequence[str] = ("timeMax", "end"),
    ) -> TimeWindow:
        """Read the command's window, defaulting from now over ``horizon``."""

        return normalize_window(
            command.param(*start_names),
            command.param(*end_names),
            command.param("timeZone", "timezone"),
            default_zone=self.settings.default_timezone,
            horizon=horizon,
            now=self.clock(),
        )

    def target_window(self, command: Command) -> Optional[TimeWindow]:
        """Window for a fuzzy target search, or ``None`` to search today."""

        if command.param(*_TARGET_START) is None and command.param(*_TARGET_END) is None:
            return None
        return self.window(command, timedelta(days=1), start_names=_TARGET_START, end_names=_TARGET_END)
