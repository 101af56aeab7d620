from __future__ import annotations

import abc
from typing import Any, Mapping, Optional

from .errors import UNAVAILABLE_MESSAGE, CalendarUnavailableError

OPERATION_NAMES = (
    "create-event",
    "list-events",
    "search-events",
    "update-event",
    "delete-event",
    "list-calendars",
    "list-colors",
    "get-current-time",
    "get-freebusy",
)


class CalendarClient(abc.ABC):
    """Narrow connect/call/disconnect contract over a calendar backend transport.

    Implementations own their connection state. ``call`` must only be used
    after ``ensure_connected`` reported a live connection.
    """

    @property
    @abc.abstractmethod
    def is_connected(self) -> bool:
        ...

    @abc.abstractmethod
    async def connect(self) -> bool:
        """Open the connection if needed; return whether it is live."""

    @abc.abstractmethod
    async def call(self, operation: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        ...

    @abc.abstractmethod
    async def disconnect(self) -> None:
        ...

    async def ensure_connected(self) -> bool:
        if self.is_connected:
            return True
        return await self.connect()

    async def invoke(self, operation: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        """Connect if needed, then call ``operation``."""

        if not await self.ensure_connected():
            raise CalendarUnavailableError(UNAVAILABLE_MESSAGE)
        return await self.call(operation, args)
