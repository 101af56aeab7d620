from __future__ import annotations

import asyncio
import logging
from contextlib import AsyncExitStack
from functools import lru_cache
from typing import Any, Callable, Mapping, Optional

import orjson
from fastmcp import Client
from fastmcp.client.transports import StdioTransport
from mcp.types import Implementation

from .. import __version__
from ..config import McpSettings, get_settings
from .errors import UNAVAILABLE_MESSAGE, CalendarUnavailableError, CalendarUpstreamError
from .protocol import CalendarClient

logger = logging.getLogger(__name__)


def _content_text(result: Any) -> str:
    for block in getattr(result, "content", None) or []:
        if getattr(block, "type", None) == "text":
            return getattr(block, "text", "") or ""
    return ""


def decode_tool_result(operation: str, result: Any) -> Any:
    """Turn an MCP ``CallToolResult`` into a plain Python value.

    Structured content wins; otherwise the first text block is read as JSON and
    falls back to ``{"message": text}`` when it is prose.
    """

    text = _content_text(result)
    if getattr(result, "isError", False):
        raise CalendarUpstreamError(f"{operation} was rejected: {text or 'unknown error'}")

    structured = getattr(result, "structuredContent", None)
    if structured:
        return structured
    if not text.strip():
        return None
    try:
        return orjson.loads(text)
    except orjson.JSONDecodeError:
        return {"message": text}


class McpCalendarClient(CalendarClient):
    """Calendar client backed by a Google Calendar MCP server.

    The server is reached over stdio (a spawned command) or over HTTP when
    ``CALENDAR_MCP_URL`` is set. Connection failures are logged and leave the
    client disconnected instead of raising.
    """

    def __init__(
        self,
        settings: Optional[McpSettings] = None,
        *,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._settings = settings or get_settings().mcp
        self._client_factory = client_factory or self._build_client
        self._client: Any = None
        self._stack: Optional[AsyncExitStack] = None
        self._connected = False
        self._connecting: Optional[asyncio.Task[bool]] = None

    @property
    def is_connected(self) -> bool:
        return self._connected

    def _build_client(self) -> Client:
        settings = self._settings
        if settings.url:
            transport: Any = settings.url
        else:
            transport = StdioTransport(
                command=settings.command or "",
                args=list(settings.args),
                env=settings.server_env,
            )
        return Client(transport, client_info=Implementation(name=settings.client_name, version=__version__))

    async def connect(self) -> bool:
        if self._connected:
            return True
        task = self._connecting
        if task is None:
            task = asyncio.create_task(self._attempt_connect())
            self._connecting = task
        try:
            return await asyncio.shield(task)
        finally:
            if task.done() and self._connecting is task:
                self._connecting = None

    async def _attempt_connect(self) -> bool:
        if not self._settings.is_configured:
            missing = ", ".join(self._settings.missing_env_vars)
            logger.warning("Calendar MCP server is not configured. Set one of: %s", missing)
            return False

        timeout = self._settings.connect_timeout
        logger.info("Connecting to calendar MCP server (timeout %.1fs)", timeout)
        stack = AsyncExitStack()
        try:
            client = self._client_factory()
            await asyncio.wait_for(stack.enter_async_context(client), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning("Calendar MCP connection timed out after %.1fs; calendar will be unavailable", timeout)
            await self._close_stack(stack)
            return False
        except Exception as exc:  # noqa: BLE001
            logger.warning("Failed to connect to calendar MCP server: %s; calendar will be unavailable", exc)
            await self._close_stack(stack)
            return False

        self._client = client
        self._stack = stack
        self._connected = True
        logger.info("Calendar MCP client connected")
        return True

    async def call(self, operation: str, args: Optional[Mapping[str, Any]] = None) -> Any:
        if not self._connected or self._client is None:
            raise CalendarUnavailableError(UNAVAILABLE_MESSAGE)

        arguments = dict(args or {})
        logger.debug("Calling calendar tool %s with %s", operation, arguments)
        try:
            result = await self._client.call_tool_mcp(operation, arguments)
        except Exception as exc:  # noqa: BLE001
            logger.error("Calendar tool %s failed: %s", operation, exc)
            await self.disconnect()
            raise CalendarUpstreamError(f"Failed to {operation.replace('-', ' ')}: {exc}") from exc
        return decode_tool_result(operation, result)

    async def disconnect(self) -> None:
        stack = self._stack
        self._stack = None
        self._client = None
        if self._connected:
            logger.info("Disconnecting calendar MCP client")
        self._connected = False
        if stack is not None:
            await self._close_stack(stack)

    async def _close_stack(self, stack: AsyncExitStack) -> None:
        try:
            await stack.aclose()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error closing calendar MCP session: %s", exc)


@lru_cache(maxsize=1)
def get_calendar_client() -> McpCalendarClient:
    return McpCalendarClient()
