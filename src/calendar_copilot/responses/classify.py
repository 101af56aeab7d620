"""Tagged view over the shapes a calendar backend may answer with."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from ..client.errors import CalendarUpstreamError

_WRAPPER_KEYS = {"message", "success", "status"}


@dataclass(frozen=True, slots=True)
class StructuredResponse:
    payload: Any
    message: Optional[str] = None


@dataclass(frozen=True, slots=True)
class MessageResponse:
    text: str


@dataclass(frozen=True, slots=True)
class EmptyResponse:
    pass


RawResponse = Union[StructuredResponse, MessageResponse, EmptyResponse]


def _rejection_message(payload: Mapping[str, Any]) -> Optional[str]:
    error = payload.get("error")
    if payload.get("success") is False or error:
        if isinstance(error, Mapping):
            error = error.get("message")
        detail = error or payload.get("message") or "Calendar backend rejected the request"
        return str(detail)
    return None


def classify_response(raw: Any) -> RawResponse:
    """Sort ``raw`` into structured, message-only or empty.

    Wrappers flagged with ``success: false`` or an ``error`` field raise
    :class:`CalendarUpstreamError`.
    """

    if raw is None:
        return EmptyResponse()
    if isinstance(raw, str):
        return MessageResponse(raw.strip()) if raw.strip() else EmptyResponse()
    if isinstance(raw, Mapping):
        rejection = _rejection_message(raw)
        if rejection is not None:
            raise CalendarUpstreamError(rejection)
        message = raw.get("message")
        message = message.strip() if isinstance(message, str) and message.strip() else None
        useful = {key: value for key, value in raw.items() if key not in _WRAPPER_KEYS}
        if useful:
            return StructuredResponse(raw, message)
        if message:
            return MessageResponse(message)
        return EmptyResponse()
    if isinstance(raw, (list, tuple)):
        return StructuredResponse(list(raw)) if raw else EmptyResponse()
    return MessageResponse(str(raw))
