from __future__ import annotations

import pytest

from calendar_copilot.client import UNAVAILABLE_MESSAGE, CalendarUpstreamError
from calendar_copilot.dispatch import CommandDispatcher
from calendar_copilot.domain import Command, ErrorStage, OperationKind
from calendar_copilot.interpreter import CommandInterpreter

from .conftest import FIXED_NOW, RecordingCalendarClient


class TestCreate:
    @pytest.mark.asyncio
    async def test_create_normalizes_times_and_defaults_calendar(self, dispatcher, fake_client):
        fake_client.responses["create-event"] = {"message": "Event created: Study"}
        interpreter = CommandInterpreter(dispatcher)

        result = await interpreter.handle(
            'On it. {"kind":"create","title":"Study","start":"2025-08-20T15:00","end":"2025-08-20T16:00"}'
        )

        assert result.ok
        assert result.kind is OperationKind.CREATE
        assert fake_client.calls == [
            (
                "create-event",
                {
                    "calendarId": "primary",
                    "summary": "Study",
                    "description": "",
                    "start": "2025-08-20T15:00:00.000Z",
                    "end": "2025-08-20T16:00:00.000Z",
                    "timeZone": "Asia/Kolkata",
                },
            )
        ]
        assert result.data["event"]["title"] == "Study"
        assert result.data["event"]["start"] == "2025-08-20T15:00:00.000Z"

    @pytest.mark.asyncio
    async def test_optional_fields_are_forwarded(self, dispatcher, fake_client):
        command = Command(
            OperationKind.CREATE,
            {
                "summary": "Review",
                "start": "2025-08-21T10:00:00+05:30",
                "end": "2025-08-21T11:00:00+05:30",
                "attendees": "ana@example.com",
                "location": " Library ",
                "colorId": 5,
                "recurrence": "RRULE:FREQ=WEEKLY;COUNT=4",
            },
        )

        result = await dispatcher.dispatch(command)

        assert result.ok
        _, args = fake_client.calls[0]
        assert args["start"] == "2025-08-21T04:30:00.000Z"
        assert args["attendees"] == [{"email": "ana@example.com"}]
        assert args["location"] == "Library"
        assert args["colorId"] == "5"
        assert args["recurrence"] == ["RRULE:FREQ=WEEKLY;COUNT=4"]

    @pytest.mark.asyncio
    async def test_invalid_date_is_rejected_before_any_io(self, dispatcher, fake_client):
        command = Command(OperationKind.CREATE, {"title": "Study", "start": "2025-13-40T25:70:70", "end": "2025-08-20T16:00"})

        result = await dispatcher.dispatch(command)

        assert not result.ok
        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []
        assert fake_client.connect_attempts == 0

    @pytest.mark.asyncio
    async def test_end_before_start_is_rejected(self, dispatcher, fake_client):
        command = Command(OperationKind.CREATE, {"title": "Study", "start": "2025-08-20T16:00", "end": "2025-08-20T15:00"})

        result = await dispatcher.dispatch(command)

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_missing_title_is_rejected(self, dispatcher, fake_client):
        command = Command(OperationKind.CREATE, {"start": "2025-08-20T15:00", "end": "2025-08-20T16:00"})

        result = await dispatcher.dispatch(command)

        assert result.stage is ErrorStage.VALIDATE
        assert "title" in result.error.message

    @pytest.mark.asyncio
    async def test_out_of_range_offset_is_rejected(self, dispatcher, fake_client):
        command = Command(
            OperationKind.CREATE,
            {"title": "Study", "start": "0001-01-01T00:00:00+05:00", "end": "2025-08-20T16:00"},
        )

        result = await dispatcher.dispatch(command)

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []


class TestWindows:
    @pytest.mark.asyncio
    async def test_list_defaults_to_one_week_from_now(self, dispatcher, fake_client):
        fake_client.responses["list-events"] = {"events": []}

        result = await dispatcher.dispatch(Command(OperationKind.LIST))

        assert result.ok
        assert result.data == {"events": []}
        assert fake_client.calls == [
            (
                "list-events",
                {
                    "calendarId": "primary",
                    "timeMin": "2025-08-20T06:30:00.000Z",
                    "timeMax": "2025-08-27T06:30:00.000Z",
                    "timeZone": "Asia/Kolkata",
                },
            )
        ]

    @pytest.mark.asyncio
    async def test_search_defaults_to_one_month_and_requires_query(self, dispatcher, fake_client):
        missing = await dispatcher.dispatch(Command(OperationKind.SEARCH))
        assert missing.stage is ErrorStage.VALIDATE

        await dispatcher.dispatch(Command(OperationKind.SEARCH, {"query": "gym"}))

        _, args = fake_client.calls[0]
        assert args["query"] == "gym"
        assert args["timeMax"] == "2025-09-19T06:30:00.000Z"

    @pytest.mark.asyncio
    async def test_inverted_window_is_rejected(self, dispatcher, fake_client):
        command = Command(OperationKind.LIST, {"timeMin": "2025-08-22T00:00", "timeMax": "2025-08-21T00:00"})

        result = await dispatcher.dispatch(command)

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_horizon_past_latest_date_is_rejected(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.LIST, {"timeMin": "9999-12-30T00:00:00Z"}))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_free_busy_sends_calendar_objects(self, dispatcher, fake_client):
        command = Command(OperationKind.FREE_BUSY, {"calendars": ["primary", "work@example.com"]})

        await dispatcher.dispatch(command)

        operation, args = fake_client.calls[0]
        assert operation == "get-freebusy"
        assert args["calendars"] == [{"id": "primary"}, {"id": "work@example.com"}]


class TestFuzzyTargets:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("kind", [OperationKind.UPDATE, OperationKind.DELETE])
    async def test_no_match_fails_at_resolve_without_mutating(self, dispatcher, fake_client, kind):
        fake_client.responses["search-events"] = {"events": []}
        command = Command(kind, {"searchQuery": "6pm meeting", "title": "Moved"})

        result = await dispatcher.dispatch(command)

        assert not result.ok
        assert result.stage is ErrorStage.RESOLVE
        assert fake_client.operations() == ["search-events"]

    @pytest.mark.asyncio
    async def test_search_defaults_to_today_in_configured_zone(self, dispatcher, fake_client):
        fake_client.responses["search-events"] = {"events": []}

        await dispatcher.dispatch(Command(OperationKind.DELETE, {"searchQuery": "gym"}))

        _, args = fake_client.calls[0]
        assert args["timeMin"] == "2025-08-19T18:30:00.000Z"
        assert args["timeMax"] == "2025-08-20T18:30:00.000Z"
        assert args["timeZone"] == "Asia/Kolkata"

    @pytest.mark.asyncio
    async def test_delete_uses_first_match(self, dispatcher, fake_client, google_event):
        second = dict(google_event, id="evt-456", summary="Team Sync 2")
        fake_client.responses["search-events"] = {"events": [google_event, second]}
        fake_client.responses["delete-event"] = {"message": "Event deleted successfully"}

        result = await dispatcher.dispatch(Command(OperationKind.DELETE, {"query": "team sync"}))

        assert result.ok
        assert fake_client.calls[1] == (
            "delete-event",
            {"calendarId": "primary", "eventId": "evt-123", "sendUpdates": "all"},
        )
        assert result.data["deleted"] == "evt-123"
        assert result.data["event"]["title"] == "Team Sync"

    @pytest.mark.asyncio
    async def test_update_by_search_applies_changes(self, dispatcher, fake_client, google_event):
        fake_client.responses["search-events"] = [google_event]
        fake_client.responses["update-event"] = {"message": "Event updated"}

        result = await dispatcher.dispatch(Command(OperationKind.UPDATE, {"searchQuery": "sync", "title": "Team Retro"}))

        assert result.ok
        assert fake_client.calls[1] == (
            "update-event",
            {"calendarId": "primary", "eventId": "evt-123", "summary": "Team Retro"},
        )
        assert result.data["event"]["title"] == "Team Retro"
        assert result.data["event"]["id"] == "evt-123"

    @pytest.mark.asyncio
    async def test_update_by_id_skips_search(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.UPDATE, {"eventId": "evt-1", "location": "Lab 2"}))

        assert result.ok
        assert fake_client.operations() == ["update-event"]

    @pytest.mark.asyncio
    async def test_update_without_changes_is_rejected(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.UPDATE, {"eventId": "evt-1"}))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_target_is_required(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.DELETE))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []


class TestAvailability:
    @pytest.mark.asyncio
    async def test_slots_are_computed_from_free_busy(self, dispatcher, fake_client):
        fake_client.responses["get-freebusy"] = {
            "freebusy": {
                "calendars": {"primary": {"busy": [{"start": "2025-08-21T10:00:00Z", "end": "2025-08-21T10:30:00Z"}]}}
            }
        }
        command = Command(
            OperationKind.AVAILABILITY,
            {"timeMin": "2025-08-21T09:00:00Z", "timeMax": "2025-08-21T12:00:00Z", "duration": 60},
        )

        result = await dispatcher.dispatch(command)

        assert result.ok
        assert fake_client.calls[0][1]["calendars"] == [{"id": "primary"}]
        assert result.data["availableSlots"] == [
            {"start": "2025-08-21T09:00:00.000Z", "end": "2025-08-21T10:00:00.000Z", "duration": 60},
            {"start": "2025-08-21T10:30:00.000Z", "end": "2025-08-21T12:00:00.000Z", "duration": 90},
        ]
        assert result.data["nextSlot"] == result.data["availableSlots"][0]
        assert result.data["durationMinutes"] == 60

    @pytest.mark.asyncio
    async def test_missing_free_busy_data_is_upstream_failure(self, dispatcher, fake_client):
        fake_client.responses["get-freebusy"] = {"message": "Could not read free/busy"}

        result = await dispatcher.dispatch(Command(OperationKind.AVAILABILITY))

        assert result.stage is ErrorStage.UPSTREAM

    @pytest.mark.asyncio
    async def test_duration_out_of_range_is_rejected(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.AVAILABILITY, {"duration": 0}))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []


class TestUpstream:
    @pytest.mark.asyncio
    async def test_unavailable_backend_is_upstream_failure(self, calendar_settings):
        client = RecordingCalendarClient(available=False)
        dispatcher = CommandDispatcher(client, calendar_settings, clock=lambda: FIXED_NOW)

        result = await dispatcher.dispatch(Command(OperationKind.LIST_CALENDARS, human_message="Here you go"))

        assert not result.ok
        assert result.stage is ErrorStage.UPSTREAM
        assert result.error.message == UNAVAILABLE_MESSAGE
        assert result.is_retryable
        assert result.message == "Here you go"
        assert client.calls == []

    @pytest.mark.asyncio
    async def test_backend_error_is_upstream_failure(self, dispatcher, fake_client):
        fake_client.responses["list-colors"] = CalendarUpstreamError("boom")

        result = await dispatcher.dispatch(Command(OperationKind.LIST_COLORS))

        assert result.stage is ErrorStage.UPSTREAM
        assert "boom" in result.error.message

    @pytest.mark.asyncio
    async def test_rejection_wrapper_is_upstream_failure(self, dispatcher, fake_client):
        fake_client.responses["create-event"] = {"success": False, "error": "Calendar not found"}
        command = Command(OperationKind.CREATE, {"title": "x", "start": "2025-08-20T15:00", "end": "2025-08-20T16:00"})

        result = await dispatcher.dispatch(command)

        assert result.stage is ErrorStage.UPSTREAM
        assert result.error.message == "Calendar not found"

    @pytest.mark.asyncio
    async def test_current_time_validates_zone(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.CURRENT_TIME, {"timeZone": "Nowhere/City"}))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_calendar_listings_forward_zone_override(self, dispatcher, fake_client):
        fake_client.responses["list-calendars"] = {"calendars": []}
        fake_client.responses["list-colors"] = {"event": {}}

        await dispatcher.dispatch(Command(OperationKind.LIST_CALENDARS, {"timeZone": "Europe/Berlin"}))
        await dispatcher.dispatch(Command(OperationKind.LIST_COLORS))

        assert fake_client.calls == [
            ("list-calendars", {"timeZone": "Europe/Berlin"}),
            ("list-colors", {}),
        ]

    @pytest.mark.asyncio
    async def test_list_calendars_validates_zone(self, dispatcher, fake_client):
        result = await dispatcher.dispatch(Command(OperationKind.LIST_CALENDARS, {"timeZone": "Nowhere/City"}))

        assert result.stage is ErrorStage.VALIDATE
        assert fake_client.calls == []
