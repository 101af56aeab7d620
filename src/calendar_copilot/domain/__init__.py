"""Domain types shared by the interpreter, dispatcher and normalizer."""

from __future__ import annotations

from .enums import ErrorStage, OperationKind
from .models import (
    CalendarSummary,
    Command,
    ErrorInfo,
    NormalizedEvent,
    OperationResult,
    ParseFailure,
    ResultData,
    TimeWindow,
)
from .payloads import serialize_result

__all__ = [
    "CalendarSummary",
    "Command",
    "ErrorInfo",
    "ErrorStage",
    "NormalizedEvent",
    "OperationKind",
    "OperationResult",
    "ParseFailure",
    "ResultData",
    "TimeWindow",
    "serialize_result",
]
