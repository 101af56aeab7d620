from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional
from zoneinfo import ZoneInfo

import orjson
from openai import AsyncOpenAI

from ..config import AppSettings, get_settings
from ..dispatch import get_operation_handlers
from ..domain import OperationResult
from ..interpreter import CommandInterpreter
from .prompts import SYSTEM_PROMPT_TEMPLATE

logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    text: str
    result: Optional[OperationResult] = None
    attempts: int = 0

    @property
    def has_command(self) -> bool:
        return self.result is not None and not self.result.is_fallthrough


class CalendarChatOrchestrator:
    """Ask the model for a reply, run any calendar command in it, and retry
    backend failures with exponential backoff."""

    def __init__(
        self,
        interpreter: Optional[CommandInterpreter] = None,
        settings: Optional[AppSettings] = None,
        *,
        llm_client: Optional[AsyncOpenAI] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.interpreter = interpreter or CommandInterpreter()
        self._client = llm_client or self._build_client()
        self._sleep = sleep
        catalog = sorted((handler.as_catalog_entry() for handler in get_operation_handlers()), key=lambda e: e["kind"])
        self._operation_catalog = orjson.dumps(catalog, option=orjson.OPT_INDENT_2).decode()

    # ------------------------------------------------------------------ public API

    async def respond(self, history: List[Dict[str, str]], user_message: str) -> ChatReply:
        if self._client is None:
            missing = ", ".join(self.settings.llm.missing_env_vars)
            return ChatReply(text=f"The language model is not configured. Missing: {missing or 'unknown'}.")

        try:
            content = await self.complete(history, user_message)
        except Exception as exc:  # noqa: BLE001
            logger.error("Model request failed: %s", exc)
            return ChatReply(text=f"Model request failed: {exc}")

        result, attempts = await self.run_command(content)
        return ChatReply(text=self.render(content, result), result=result, attempts=attempts)

    async def complete(self, history: List[Dict[str, str]], user_message: str) -> str:
        if self._client is None:
            raise RuntimeError("Language model client is not configured.")
        messages = [
            {"role": "system", "content": self._system_prompt()},
            *(history or []),
            {"role": "user", "content": user_message},
        ]
        completion = await self._client.chat.completions.create(
            model=self.settings.llm.model,
            temperature=0.2,
            messages=messages,
        )
        return completion.choices[0].message.content or ""

    async def run_command(self, text: str) -> tuple[OperationResult, int]:
        """Interpret ``text``; only ``upstream`` failures are tried again."""

        retry = self.settings.retry
        result = await self.interpreter.handle(text)
        attempts = 1
        while result.is_retryable and attempts <= retry.attempts:
            delay = retry.base_backoff * (2 ** (attempts - 1))
            logger.warning(
                "Calendar backend failed (%s); retrying in %.1fs (%d/%d)",
                result.error.message if result.error else "unknown error",
                delay,
                attempts,
                retry.attempts,
            )
            await self._sleep(delay)
            result = await self.interpreter.handle(text)
            attempts += 1
        return result, attempts

    @staticmethod
    def render(text: str, result: OperationResult) -> str:
        if result.is_fallthrough:
            return text.strip()
        if result.ok:
            return result.message or f"Done: {result.kind.value if result.kind else 'calendar request'}."
        detail = result.error.message if result.error else "unknown error"
        return f"Sorry, I couldn't complete that calendar request: {detail}"

    # ------------------------------------------------------------------ helpers

    def _system_prompt(self) -> str:
        zone = self.settings.calendar.default_timezone
        return SYSTEM_PROMPT_TEMPLATE.format(
            today=datetime.now(ZoneInfo(zone)).strftime("%A %Y-%m-%d %H:%M"),
            timezone=zone,
            operation_catalog=self._operation_catalog,
        )

    def _build_client(self) -> Optional[AsyncOpenAI]:
        llm = self.settings.llm
        if not llm.is_configured:
            return None
        return AsyncOpenAI(
            api_key=llm.api_key,
            base_url=llm.base_url,
            organization=llm.organization,
            project=llm.project,
        )
