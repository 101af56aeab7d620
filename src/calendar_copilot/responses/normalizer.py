from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from ..domain import NormalizedEvent, OperationKind, ResultData
from ..validation import DateTimeInvalid
from .classify import EmptyResponse, MessageResponse, RawResponse, StructuredResponse, classify_response
from .records import calendar_from_record, coerce_event_time, event_from_record
from .text import parse_calendar_blocks, parse_event_blocks

logger = logging.getLogger(__name__)


def _with_message(data: Dict[str, Any], message: Optional[str]) -> Dict[str, Any]:
    if message:
        data["message"] = message
    return data


def _records(payload: Any, *keys: str) -> Optional[List[Any]]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, Mapping):
        for key in keys:
            value = payload.get(key)
            if isinstance(value, list):
                return value
    return None


def _events_from_records(records: List[Any]) -> List[Dict[str, Any]]:
    events: List[Dict[str, Any]] = []
    for record in records:
        if not isinstance(record, Mapping):
            continue
        try:
            events.append(event_from_record(record).to_record())
        except DateTimeInvalid as exc:
            logger.debug("Skipping event record %r: %s", record.get("id"), exc)
    return events


def _single_event(payload: Any) -> Optional[NormalizedEvent]:
    candidate = payload.get("event") if isinstance(payload, Mapping) and "event" in payload else payload
    if not isinstance(candidate, Mapping):
        return None
    try:
        return event_from_record(candidate)
    except DateTimeInvalid as exc:
        logger.debug("Event in response has unreadable dates: %s", exc)
        return None


def _normalize_event(response: RawResponse, request: Optional[NormalizedEvent]) -> Dict[str, Any]:
    event: Optional[NormalizedEvent] = None
    message: Optional[str] = None
    if isinstance(response, StructuredResponse):
        event = _single_event(response.payload)
        message = response.message
    elif isinstance(response, MessageResponse):
        parsed = parse_event_blocks(response.text)
        event = parsed[0] if parsed else None
        message = response.text

    if event is None and request is not None:
        event = request
    data: Dict[str, Any] = {}
    if event is not None:
        data["event"] = event.to_record()
    return _with_message(data, message)


def _normalize_events(response: RawResponse) -> Dict[str, Any]:
    if isinstance(response, StructuredResponse):
        records = _records(response.payload, "events", "items")
        if records is not None:
            return _with_message({"events": _events_from_records(records)}, response.message)
        if response.message:
            events = [event.to_record() for event in parse_event_blocks(response.message)]
            return _with_message({"events": events}, response.message)
        return {"events": []}
    if isinstance(response, MessageResponse):
        events = [event.to_record() for event in parse_event_blocks(response.text)]
        return _with_message({"events": events}, response.text)
    return {"events": []}


def _normalize_delete(
    response: RawResponse,
    request: Optional[NormalizedEvent],
    target_id: Optional[str],
) -> Dict[str, Any]:
    message: Optional[str] = None
    deleted = target_id or (request.id if request else None)
    if isinstance(response, StructuredResponse):
        message = response.message
        payload = response.payload
        if not deleted and isinstance(payload, Mapping):
            deleted = payload.get("eventId") or payload.get("id")
    elif isinstance(response, MessageResponse):
        message = response.text

    data: Dict[str, Any] = {"deleted": deleted}
    if request is not None:
        data["event"] = request.to_record()
    return _with_message(data, message)


def _normalize_calendars(response: RawResponse) -> Dict[str, Any]:
    calendars = []
    if isinstance(response, StructuredResponse):
        records = _records(response.payload, "calendars", "items")
        if records is not None:
            calendars = [calendar_from_record(record) for record in records if isinstance(record, Mapping)]
        elif response.message:
            calendars = parse_calendar_blocks(response.message)
    elif isinstance(response, MessageResponse):
        calendars = parse_calendar_blocks(response.text)
    return {"calendars": [calendar.to_record() for calendar in calendars if calendar is not None]}


def _busy_periods(periods: Any) -> List[Dict[str, str]]:
    busy: List[Dict[str, str]] = []
    for period in periods or []:
        if not isinstance(period, Mapping):
            continue
        try:
            busy.append({"start": coerce_event_time(period.get("start")), "end": coerce_event_time(period.get("end"))})
        except DateTimeInvalid as exc:
            logger.debug("Skipping busy period %r: %s", period, exc)
    return busy


def _normalize_free_busy(response: RawResponse) -> Dict[str, Any]:
    if isinstance(response, MessageResponse):
        return {"calendars": {}, "message": response.text}
    if not isinstance(response, StructuredResponse) or not isinstance(response.payload, Mapping):
        return {"calendars": {}}

    payload = response.payload
    source = payload.get("freebusy") if isinstance(payload.get("freebusy"), Mapping) else payload
    calendars = source.get("calendars") if isinstance(source.get("calendars"), Mapping) else {}
    normalized = {
        calendar_id: {"busy": _busy_periods(entry.get("busy") if isinstance(entry, Mapping) else None)}
        for calendar_id, entry in calendars.items()
    }
    return _with_message({"calendars": normalized}, response.message)


def _normalize_passthrough(response: RawResponse) -> ResultData:
    if isinstance(response, StructuredResponse):
        return response.payload
    if isinstance(response, MessageResponse):
        return {"message": response.text}
    return {}


def normalize_response(
    kind: OperationKind,
    raw: Any,
    *,
    request: Optional[NormalizedEvent] = None,
    target_id: Optional[str] = None,
) -> ResultData:
    """Convert a raw backend result into the canonical data for ``kind``.

    ``request`` is the event the caller asked for (used when the backend only
    answers with prose) and ``target_id`` the event a delete addressed.
    Raises :class:`CalendarUpstreamError` for wrappers that report failure.
    """

    response = classify_response(raw)
    if kind in (OperationKind.CREATE, OperationKind.UPDATE):
        return _normalize_event(response, request)
    if kind in (OperationKind.LIST, OperationKind.SEARCH):
        return _normalize_events(response)
    if kind is OperationKind.DELETE:
        return _normalize_delete(response, request, target_id)
    if kind is OperationKind.LIST_CALENDARS:
        return _normalize_calendars(response)
    if kind is OperationKind.FREE_BUSY:
        return _normalize_free_busy(response)
    return _normalize_passthrough(response)
