from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from datetime import timedelta
from functools import lru_cache
from typing import Dict, Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class CalendarSettings:
    default_timezone: str
    default_calendar_id: str
    list_horizon: timedelta
    search_horizon: timedelta
    availability_horizon: timedelta
    freebusy_horizon: timedelta
    default_duration_minutes: int


@dataclass(frozen=True)
class McpSettings:
    url: Optional[str]
    command: Optional[str]
    args: tuple[str, ...]
    credentials_path: Optional[str]
    token_path: Optional[str]
    connect_timeout: float
    client_name: str

    @property
    def is_configured(self) -> bool:
        return bool(self.url or self.command)

    @property
    def missing_env_vars(self) -> list[str]:
        if self.is_configured:
            return []
        return ["CALENDAR_MCP_URL", "CALENDAR_MCP_COMMAND"]

    @property
    def server_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        if self.credentials_path:
            env["GOOGLE_OAUTH_CREDENTIALS"] = self.credentials_path
        if self.token_path:
            env["GOOGLE_CALENDAR_MCP_TOKEN_PATH"] = self.token_path
        return env


@dataclass(frozen=True)
class LlmSettings:
    api_key: Optional[str]
    model: str
    base_url: Optional[str]
    organization: Optional[str]
    project: Optional[str]

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.model)

    @property
    def missing_env_vars(self) -> list[str]:
        missing = []
        if not self.api_key:
            missing.append("OPENAI_API_KEY")
        if not self.model:
            missing.append("OPENAI_MODEL")
        return missing


@dataclass(frozen=True)
class RetrySettings:
    attempts: int
    base_backoff: float


@dataclass(frozen=True)
class AppSettings:
    calendar: CalendarSettings
    mcp: McpSettings
    llm: LlmSettings
    retry: RetrySettings


def _timedelta_from_env(name: str, default_days: int) -> timedelta:
    raw = os.getenv(name)
    if not raw:
        return timedelta(days=default_days)
    try:
        days = float(raw)
    except ValueError:
        return timedelta(days=default_days)
    return timedelta(days=days)


def _float_from_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    calendar = CalendarSettings(
        default_timezone=os.getenv("CALENDAR_DEFAULT_TIMEZONE", "Asia/Kolkata"),
        default_calendar_id=os.getenv("CALENDAR_DEFAULT_CALENDAR_ID", "primary"),
        list_horizon=_timedelta_from_env("CALENDAR_LIST_HORIZON_DAYS", 7),
        search_horizon=_timedelta_from_env("CALENDAR_SEARCH_HORIZON_DAYS", 30),
        availability_horizon=_timedelta_from_env("CALENDAR_AVAILABILITY_HORIZON_DAYS", 7),
        freebusy_horizon=_timedelta_from_env("CALENDAR_FREEBUSY_HORIZON_DAYS", 7),
        default_duration_minutes=int(os.getenv("CALENDAR_DEFAULT_DURATION_MINUTES", "60")),
    )

    mcp = McpSettings(
        url=os.getenv("CALENDAR_MCP_URL") or None,
        command=os.getenv("CALENDAR_MCP_COMMAND") or None,
        args=tuple(shlex.split(os.getenv("CALENDAR_MCP_ARGS", ""))),
        credentials_path=os.getenv("GOOGLE_OAUTH_CREDENTIALS"),
        token_path=os.getenv("GOOGLE_CALENDAR_MCP_TOKEN_PATH"),
        connect_timeout=_float_from_env("CALENDAR_MCP_CONNECT_TIMEOUT", 10.0),
        client_name=os.getenv("CALENDAR_MCP_CLIENT_NAME", "calendar-copilot"),
    )

    llm = LlmSettings(
        api_key=os.getenv("OPENAI_API_KEY"),
        model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        base_url=os.getenv("OPENAI_BASE_URL"),
        organization=os.getenv("OPENAI_ORG"),
        project=os.getenv("OPENAI_PROJECT"),
    )

    retry = RetrySettings(
        attempts=max(0, int(os.getenv("CALENDAR_UPSTREAM_RETRIES", "2"))),
        base_backoff=_float_from_env("CALENDAR_UPSTREAM_BACKOFF_SECONDS", 0.5),
    )

    return AppSettings(calendar=calendar, mcp=mcp, llm=llm, retry=retry)
