"""Per-operation handlers.

Each handler validates and normalizes the whole command before it awaits the
backend, so a rejected command never reaches the network.
"""

from __future__ import annotations

import dataclasses
import logging
from typing import Any, Dict, List, Optional, Tuple

from ..client import CalendarUpstreamError
from ..domain import Command, NormalizedEvent, OperationKind, ResultData
from ..responses import normalize_response
from ..validation import (
    FieldRequired,
    ValidationFailed,
    normalize_datetime,
    resolve_zone,
    sanitize_attendees,
    sanitize_string,
    validate_time_range,
)
from .availability import find_available_slots, validate_duration
from .context import OperationContext
from .registry import register_operation
from .resolver import TargetNotFound

logger = logging.getLogger(__name__)

_TARGET_ID = ("eventId", "id")
_TARGET_QUERY = ("searchQuery", "query", "search")


def _required_datetime(command: Command, field_name: str, *aliases: str) -> str:
    value = command.param(field_name, *aliases)
    if value is None:
        raise FieldRequired(f"{field_name} is required", field=field_name)
    return normalize_datetime(value)


def _optional_datetime(command: Command, field_name: str, *aliases: str) -> Optional[str]:
    value = command.param(field_name, *aliases)
    return None if value is None else normalize_datetime(value)


def _recurrence(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    rules = [value] if isinstance(value, str) else value
    if not isinstance(rules, (list, tuple)) or not all(isinstance(rule, str) for rule in rules):
        raise ValidationFailed("Recurrence must be a list of RRULE strings", field="recurrence")
    cleaned = [rule.strip() for rule in rules if rule.strip()]
    return cleaned or None


def _attendee_args(emails: List[str]) -> List[Dict[str, str]]:
    return [{"email": email} for email in emails]


def _zone_override(ctx: OperationContext, command: Command) -> Dict[str, Any]:
    zone = command.param("timeZone", "timezone")
    if zone is None:
        return {}
    return {"timeZone": resolve_zone(zone, ctx.settings.default_timezone)}


def _target(command: Command) -> Tuple[str, str]:
    event_id = sanitize_string(command.param(*_TARGET_ID), "eventId")
    search_query = sanitize_string(command.param(*_TARGET_QUERY), "searchQuery")
    if not event_id and not search_query:
        raise FieldRequired("Provide an eventId or a searchQuery to find the event", field="eventId")
    return event_id, search_query


async def _resolve_target(
    ctx: OperationContext,
    command: Command,
    search_query: str,
    calendar_id: str,
) -> NormalizedEvent:
    target = await ctx.resolver.resolve(search_query, ctx.target_window(command), calendar_id)
    if target is None or not target.id:
        raise TargetNotFound(f'No event matching "{search_query}" was found.')
    logger.info("Resolved %r to event %s", search_query, target.id)
    return target


@register_operation(
    OperationKind.CREATE,
    operation="create-event",
    description="Create a calendar event.",
    required=("title", "start", "end"),
    optional=("description", "location", "attendees", "calendarId", "timeZone", "colorId", "recurrence"),
)
async def create_event(ctx: OperationContext, command: Command) -> ResultData:
    title = sanitize_string(command.param("title", "summary"), "title", required=True)
    start = _required_datetime(command, "start", "startTime")
    end = _required_datetime(command, "end", "endTime")
    validate_time_range(start, end)
    calendar_id = ctx.calendar_id(command)
    zone = ctx.zone(command)
    description = sanitize_string(command.param("description"), "description")
    location = sanitize_string(command.param("location"), "location")
    attendees = sanitize_attendees(command.param("attendees"))
    color_id = sanitize_string(command.param("colorId"), "colorId") or None
    recurrence = _recurrence(command.param("recurrence"))

    args: Dict[str, Any] = {
        "calendarId": calendar_id,
        "summary": title,
        "description": description,
        "start": start,
        "end": end,
        "timeZone": zone,
    }
    if location:
        args["location"] = location
    if attendees:
        args["attendees"] = _attendee_args(attendees)
    if color_id:
        args["colorId"] = color_id
    if recurrence:
        args["recurrence"] = recurrence

    requested = NormalizedEvent(
        title=title,
        start=start,
        end=end,
        description=description,
        location=location,
        attendees=attendees,
        color_id=color_id,
        calendar_id=calendar_id,
    )
    raw = await ctx.client.invoke("create-event", args)
    return normalize_response(OperationKind.CREATE, raw, request=requested)


@register_operation(
    OperationKind.LIST,
    operation="list-events",
    description="List events in a time window (defaults to the next week).",
    optional=("timeMin", "timeMax", "timeZone", "calendarId"),
)
async def list_events(ctx: OperationContext, command: Command) -> ResultData:
    window = ctx.window(command, ctx.settings.list_horizon)
    args = {
        "calendarId": ctx.calendar_id(command),
        "timeMin": window.start,
        "timeMax": window.end,
        "timeZone": window.zone,
    }
    raw = await ctx.client.invoke("list-events", args)
    return normalize_response(OperationKind.LIST, raw)


@register_operation(
    OperationKind.SEARCH,
    operation="search-events",
    description="Search events by text (defaults to the next month).",
    required=("query",),
    optional=("timeMin", "timeMax", "timeZone", "calendarId"),
)
async def search_events(ctx: OperationContext, command: Command) -> ResultData:
    query = sanitize_string(command.param("query", "searchQuery", "search"), "query", required=True)
    window = ctx.window(command, ctx.settings.search_horizon)
    args = {
        "calendarId": ctx.calendar_id(command),
        "query": query,
        "timeMin": window.start,
        "timeMax": window.end,
        "timeZone": window.zone,
    }
    raw = await ctx.client.invoke("search-events", args)
    return normalize_response(OperationKind.SEARCH, raw)


def _update_changes(ctx: OperationContext, command: Command) -> Dict[str, Any]:
    changes: Dict[str, Any] = {}
    title = sanitize_string(command.param("title", "summary"), "title")
    if title:
        changes["summary"] = title
    for field_name in ("description", "location"):
        value = sanitize_string(command.param(field_name), field_name)
        if value:
            changes[field_name] = value
    start = _optional_datetime(command, "start", "startTime")
    end = _optional_datetime(command, "end", "endTime")
    if start and end:
        validate_time_range(start, end)
    if start:
        changes["start"] = start
    if end:
        changes["end"] = end
    if command.param("timeZone", "timezone") is not None:
        changes["timeZone"] = ctx.zone(command)
    if command.param("attendees") is not None:
        changes["attendees"] = _attendee_args(sanitize_attendees(command.param("attendees")))
    color_id = sanitize_string(command.param("colorId"), "colorId")
    if color_id:
        changes["colorId"] = color_id
    recurrence = _recurrence(command.param("recurrence"))
    if recurrence:
        changes["recurrence"] = recurrence
    if not changes:
        raise ValidationFailed("Nothing to update: provide at least one field to change")
    send_updates = sanitize_string(command.param("sendUpdates"), "sendUpdates")
    if send_updates:
        changes["sendUpdates"] = send_updates
    return changes


def _apply_changes(event: NormalizedEvent, changes: Dict[str, Any]) -> NormalizedEvent:
    updates: Dict[str, Any] = {}
    if "summary" in changes:
        updates["title"] = changes["summary"]
    for key in ("description", "location", "start", "end"):
        if key in changes:
            updates[key] = changes[key]
    if "attendees" in changes:
        updates["attendees"] = [attendee["email"] for attendee in changes["attendees"]]
    if "colorId" in changes:
        updates["color_id"] = changes["colorId"]
    return dataclasses.replace(event, **updates)


@register_operation(
    OperationKind.UPDATE,
    operation="update-event",
    description="Change an event found by eventId or by searchQuery (searched today by default).",
    required=("eventId|searchQuery",),
    optional=(
        "title",
        "description",
        "location",
        "start",
        "end",
        "timeZone",
        "attendees",
        "colorId",
        "recurrence",
        "calendarId",
        "searchTimeMin",
        "searchTimeMax",
    ),
)
async def update_event(ctx: OperationContext, command: Command) -> ResultData:
    event_id, search_query = _target(command)
    calendar_id = ctx.calendar_id(command)
    changes = _update_changes(ctx, command)

    target: Optional[NormalizedEvent] = None
    if not event_id:
        target = await _resolve_target(ctx, command, search_query, calendar_id)
        event_id = target.id or ""

    # A lone new start or end must still leave the resolved event ordered.
    if target is not None and ("start" in changes) != ("end" in changes):
        validate_time_range(changes.get("start", target.start), changes.get("end", target.end))

    args = {"calendarId": calendar_id, "eventId": event_id, **changes}
    raw = await ctx.client.invoke("update-event", args)
    requested = _apply_changes(target, changes) if target is not None else None
    return normalize_response(OperationKind.UPDATE, raw, request=requested)


@register_operation(
    OperationKind.DELETE,
    operation="delete-event",
    description="Delete an event found by eventId or by searchQuery (searched today by default).",
    required=("eventId|searchQuery",),
    optional=("calendarId", "sendUpdates", "searchTimeMin", "searchTimeMax"),
)
async def delete_event(ctx: OperationContext, command: Command) -> ResultData:
    event_id, search_query = _target(command)
    calendar_id = ctx.calendar_id(command)
    send_updates = sanitize_string(command.param("sendUpdates"), "sendUpdates") or "all"

    target: Optional[NormalizedEvent] = None
    if not event_id:
        target = await _resolve_target(ctx, command, search_query, calendar_id)
        event_id = target.id or ""

    args = {"calendarId": calendar_id, "eventId": event_id, "sendUpdates": send_updates}
    raw = await ctx.client.invoke("delete-event", args)
    return normalize_response(OperationKind.DELETE, raw, request=target, target_id=event_id)


def _calendar_ids(value: Any, default: str) -> List[str]:
    if value is None:
        return [default]
    items = value.split(",") if isinstance(value, str) else value
    if not isinstance(items, (list, tuple)):
        raise ValidationFailed("Calendars must be a list of calendar ids", field="calendars")
    ids: List[str] = []
    for item in items:
        calendar_id = sanitize_string(item.get("id") if isinstance(item, dict) else item, "calendars")
        if calendar_id and calendar_id not in ids:
            ids.append(calendar_id)
    return ids or [default]


@register_operation(
    OperationKind.FREE_BUSY,
    operation="get-freebusy",
    description="Busy periods for one or more calendars (defaults to the next week).",
    optional=("calendars", "timeMin", "timeMax", "timeZone", "calendarId"),
)
async def free_busy(ctx: OperationContext, command: Command) -> ResultData:
    calendars = _calendar_ids(command.param("calendars"), ctx.calendar_id(command))
    window = ctx.window(command, ctx.settings.freebusy_horizon)
    args = {
        "calendars": [{"id": calendar_id} for calendar_id in calendars],
        "timeMin": window.start,
        "timeMax": window.end,
        "timeZone": window.zone,
    }
    raw = await ctx.client.invoke("get-freebusy", args)
    return normalize_response(OperationKind.FREE_BUSY, raw)


@register_operation(
    OperationKind.AVAILABILITY,
    operation="get-freebusy",
    description="Free slots of at least `duration` minutes (default 60) in a window (defaults to the next week).",
    optional=("duration", "timeMin", "timeMax", "timeZone", "calendarId"),
)
async def availability(ctx: OperationContext, command: Command) -> ResultData:
    duration = validate_duration(
        command.param("duration", "durationMinutes"),
        ctx.settings.default_duration_minutes,
    )
    calendar_id = ctx.calendar_id(command)
    window = ctx.window(command, ctx.settings.availability_horizon)
    args = {
        "calendars": [{"id": calendar_id}],
        "timeMin": window.start,
        "timeMax": window.end,
        "timeZone": window.zone,
    }
    raw = await ctx.client.invoke("get-freebusy", args)
    calendars = normalize_response(OperationKind.FREE_BUSY, raw)["calendars"]
    entry = calendars.get(calendar_id)
    if entry is None and len(calendars) == 1:
        entry = next(iter(calendars.values()))
    if entry is None:
        raise CalendarUpstreamError(f"Calendar backend returned no free/busy data for {calendar_id}")

    busy = entry["busy"]
    slots = find_available_slots(window.start, window.end, busy, duration)
    return {
        "availableSlots": slots,
        "busySlots": busy,
        "durationMinutes": duration,
        "nextSlot": slots[0] if slots else None,
    }


@register_operation(
    OperationKind.LIST_CALENDARS,
    operation="list-calendars",
    description="List the user's calendars.",
    optional=("timeZone",),
)
async def list_calendars(ctx: OperationContext, command: Command) -> ResultData:
    raw = await ctx.client.invoke("list-calendars", _zone_override(ctx, command))
    return normalize_response(OperationKind.LIST_CALENDARS, raw)


@register_operation(
    OperationKind.LIST_COLORS,
    operation="list-colors",
    description="List event color ids.",
    optional=("timeZone",),
)
async def list_colors(ctx: OperationContext, command: Command) -> ResultData:
    raw = await ctx.client.invoke("list-colors", _zone_override(ctx, command))
    return normalize_response(OperationKind.LIST_COLORS, raw)


@register_operation(
    OperationKind.CURRENT_TIME,
    operation="get-current-time",
    description="Current date and time, optionally in a given zone.",
    optional=("timeZone",),
)
async def current_time(ctx: OperationContext, command: Command) -> ResultData:
    raw = await ctx.client.invoke("get-current-time", _zone_override(ctx, command))
    return normalize_response(OperationKind.CURRENT_TIME, raw)
