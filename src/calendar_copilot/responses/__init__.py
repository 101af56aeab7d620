"""Canonicalization of calendar backend results."""

from __future__ import annotations

from .classify import EmptyResponse, MessageResponse, RawResponse, StructuredResponse, classify_response
from .normalizer import normalize_response
from .records import calendar_from_record, coerce_event_time, event_from_record, parse_js_date
from .text import parse_calendar_blocks, parse_event_blocks

__all__ = [
    "EmptyResponse",
    "MessageResponse",
    "RawResponse",
    "StructuredResponse",
    "calendar_from_record",
    "classify_response",
    "coerce_event_time",
    "event_from_record",
    "normalize_response",
    "parse_calendar_blocks",
    "parse_event_blocks",
    "parse_js_date",
]
