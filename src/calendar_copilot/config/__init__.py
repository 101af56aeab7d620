"""Configuration models and helpers."""

from __future__ import annotations

from .settings import AppSettings, CalendarSettings, LlmSettings, McpSettings, RetrySettings, get_settings

__all__ = ["AppSettings", "CalendarSettings", "LlmSettings", "McpSettings", "RetrySettings", "get_settings"]
