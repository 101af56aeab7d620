from __future__ import annotations

from enum import Enum


class OperationKind(str, Enum):
    CREATE = "create"
    LIST = "list"
    SEARCH = "search"
    UPDATE = "update"
    DELETE = "delete"
    AVAILABILITY = "availability"
    LIST_CALENDARS = "list-calendars"
    LIST_COLORS = "list-colors"
    CURRENT_TIME = "current-time"
    FREE_BUSY = "free-busy"

    @classmethod
    def lookup(cls, value: object) -> "OperationKind | None":
        """Resolve a loosely written kind (``List_Calendars``) or return ``None``."""

        if not isinstance(value, str):
            return None
        cleaned = value.strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return cls(cleaned)
        except ValueError:
            return None


class ErrorStage(str, Enum):
    EXTRACT = "extract"
    PARSE = "parse"
    VALIDATE = "validate"
    RESOLVE = "resolve"
    UPSTREAM = "upstream"
