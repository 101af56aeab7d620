from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from ..client import CalendarClient, CalendarClientError, get_calendar_client
from ..config import CalendarSettings, get_settings
from ..domain import Command, ErrorStage, OperationResult
from ..validation import ValidationFailed, utc_now
from . import operations  # noqa: F401
from .context import OperationContext
from .registry import get_handler
from .resolver import FuzzyTargetResolver, TargetNotFound

logger = logging.getLogger(__name__)


class CommandDispatcher:
    """Run a validated :class:`Command` as exactly one calendar operation.

    Failures never escape as exceptions: validation problems, unresolved
    targets and backend errors come back as ``ok=False`` results tagged with
    their stage. Nothing is retried here.
    """

    def __init__(
        self,
        client: Optional[CalendarClient] = None,
        settings: Optional[CalendarSettings] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.client = client or get_calendar_client()
        self.settings = settings or get_settings().calendar
        self.resolver = FuzzyTargetResolver(self.client, self.settings, clock=clock)
        self._context = OperationContext(
            client=self.client,
            settings=self.settings,
            resolver=self.resolver,
            clock=clock,
        )

    async def dispatch(self, command: Command) -> OperationResult:
        handler = get_handler(command.kind)
        logger.debug("Dispatching %s with params %s", command.kind.value, command.params)
        try:
            data = await handler.func(self._context, command)
        except ValidationFailed as exc:
            logger.info("Rejected %s command: %s", command.kind.value, exc)
            return self._failure(command, ErrorStage.VALIDATE, str(exc))
        except TargetNotFound as exc:
            return self._failure(command, ErrorStage.RESOLVE, str(exc))
        except CalendarClientError as exc:
            logger.warning("Calendar backend failed during %s: %s", command.kind.value, exc)
            return self._failure(command, ErrorStage.UPSTREAM, str(exc))
        return OperationResult.success(command.kind, data, message=command.human_message)

    def _failure(self, command: Command, stage: ErrorStage, message: str) -> OperationResult:
        return OperationResult.failure(stage, message, kind=command.kind, human_message=command.human_message)
