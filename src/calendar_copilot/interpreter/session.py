from __future__ import annotations

import logging
from typing import Optional

from ..dispatch import CommandDispatcher
from ..domain import ErrorStage, OperationResult, ParseFailure
from .parser import parse_command

logger = logging.getLogger(__name__)


class CommandInterpreter:
    """Text in, one :class:`OperationResult` out.

    Model replies without a command come back as ``extract``/``parse``
    failures, which callers render as plain prose.
    """

    def __init__(self, dispatcher: Optional[CommandDispatcher] = None) -> None:
        self.dispatcher = dispatcher or CommandDispatcher()

    async def handle(self, text: Optional[str]) -> OperationResult:
        parsed = parse_command(text)
        if isinstance(parsed, ParseFailure):
            if parsed.stage is not ErrorStage.EXTRACT:
                logger.info("Calendar command rejected at %s stage: %s", parsed.stage.value, parsed.message)
            return parsed.to_result()
        return await self.dispatcher.dispatch(parsed)
