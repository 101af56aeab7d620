"""Chat driver around the command interpreter."""

from __future__ import annotations

from .chat import CalendarChatOrchestrator, ChatReply

__all__ = ["CalendarChatOrchestrator", "ChatReply"]
