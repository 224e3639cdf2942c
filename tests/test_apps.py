"""Tests for the JXA-driven backends: Notes, Reminders, Calendar and Maps."""

import pytest

from apple_mcp.backends import AutomationError, BackendInitError
from apple_mcp.backends import calendar as calendar_module
from apple_mcp.backends import maps as maps_module
from apple_mcp.backends import notes as notes_module
from apple_mcp.backends import reminders as reminders_module
from apple_mcp.backends.calendar import CalendarBackend, date_window
from apple_mcp.backends.maps import MapsBackend
from apple_mcp.backends.notes import NotesBackend
from apple_mcp.backends.reminders import RemindersBackend


class JxaRecorder:
    """Replaces run_jxa; ``replies`` are returned in order, exceptions raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def __call__(self, body, args=None, timeout=None):
        self.calls.append(args)
        reply = self.replies.pop(0) if self.replies else None
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
def jxa(monkeypatch):
    def install(module, *replies):
        recorder = JxaRecorder(replies)
        monkeypatch.setattr(module, "run_jxa", recorder)
        return recorder

    return install


@pytest.mark.asyncio
async def test_find_note_falls_back_to_title_match(jxa):
    jxa(notes_module, [], [{"name": "Shopping List", "content": "milk"}, {"name": "Other", "content": ""}])
    found = await NotesBackend().find_note("shopping")
    assert [n.name for n in found] == ["Shopping List"]


@pytest.mark.asyncio
async def test_create_note_targets_default_folder(jxa):
    recorder = jxa(notes_module, {"success": True, "message": 'Created note "T" in folder "Claude"'})
    result = await NotesBackend("Claude").create_note("T", "body")
    assert result.success
    assert result.folder == "Claude"
    assert recorder.calls[0]["isDefaultFolder"] is True


@pytest.mark.asyncio
async def test_create_note_in_missing_folder_fails(jxa):
    jxa(notes_module, {"success": False, "message": 'Folder "Work" does not exist'})
    result = await NotesBackend().create_note("T", "body", folder_name="Work")
    assert not result.success
    assert result.message == 'Folder "Work" does not exist'


@pytest.mark.asyncio
async def test_notes_access_failure_is_init_error(jxa):
    jxa(notes_module, AutomationError("not authorized"))
    with pytest.raises(BackendInitError, match="Cannot access Notes app"):
        await notes_module.create()


@pytest.mark.asyncio
async def test_open_reminder_without_match_does_not_open_app(jxa):
    recorder = jxa(reminders_module, [])
    result = await RemindersBackend().open_reminder("nothing")
    assert not result.success
    assert result.message == "No matching reminders found"
    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_open_reminder_with_match(jxa):
    jxa(reminders_module, [{"name": "Buy milk", "id": "R1", "listName": "Groceries"}], None)
    result = await RemindersBackend().open_reminder("milk")
    assert result.success
    assert result.reminder.name == "Buy milk"
    assert result.reminder.list_name == "Groceries"


@pytest.mark.asyncio
async def test_list_by_id_uses_default_props(jxa):
    recorder = jxa(reminders_module, [{"name": "A", "completed": False}])
    found = await RemindersBackend().get_reminders_from_list_by_id("L1")
    assert found == [{"name": "A", "completed": False}]
    assert recorder.calls[0]["props"] == ["name", "body", "completed", "dueDate"]
    assert "delete" not in recorder.calls[0]["readable"]


@pytest.mark.asyncio
async def test_list_by_id_rejects_unreadable_props(jxa):
    recorder = jxa(reminders_module, [])
    with pytest.raises(ValueError, match="delete"):
        await RemindersBackend().get_reminders_from_list_by_id("L1", ["name", "delete"])
    assert recorder.calls == []


def test_date_window_defaults():
    start, end = date_window(None, None, 7)
    assert start < end
    assert date_window("2026-01-01", "2026-01-02", 7) == ("2026-01-01", "2026-01-02")


@pytest.mark.asyncio
async def test_create_event_rejects_end_before_start(jxa):
    recorder = jxa(calendar_module)
    result = await CalendarBackend().create_event("Bad", "2026-01-02T10:00:00Z", "2026-01-02T09:00:00Z")
    assert not result.success
    assert result.message == "End date must be after start date"
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_create_event_returns_id(jxa):
    jxa(calendar_module, {"success": True, "message": 'Event "Lunch" created successfully.', "eventId": "U1"})
    result = await CalendarBackend().create_event("Lunch", "2026-01-02T12:00:00Z", "2026-01-02T13:00:00Z")
    assert result.success
    assert result.event_id == "U1"


@pytest.mark.asyncio
async def test_create_event_accepts_mixed_offset_and_local_dates(jxa):
    recorder = jxa(calendar_module, {"success": True, "message": 'Event "Trip" created successfully.', "eventId": "U2"})
    result = await CalendarBackend().create_event("Trip", "2026-01-02T10:00:00Z", "2026-01-03T11:00:00")
    assert result.success
    assert len(recorder.calls) == 1

    rejected = await CalendarBackend().create_event("Trip", "2026-01-03T11:00:00", "2026-01-02T10:00:00Z")
    assert not rejected.success
    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_search_events_maps_fields(jxa):
    jxa(
        calendar_module,
        [{"id": "E1", "title": "Standup", "startDate": "2026-01-02T09:00:00Z", "calendarName": "Work"}],
    )
    events = await CalendarBackend().search_events("stand")
    assert events[0].title == "Standup"
    assert events[0].location is None
    assert events[0].is_all_day is False


@pytest.mark.asyncio
async def test_maps_search_applies_limit(jxa):
    jxa(maps_module, [{"name": f"Cafe {i}", "address": "Main St"} for i in range(8)])
    result = await MapsBackend().search_locations("cafe", limit=3)
    assert result.success
    assert len(result.locations) == 3
    assert result.message == 'Found 3 location(s) for "cafe"'


@pytest.mark.asyncio
async def test_maps_search_without_results(jxa):
    jxa(maps_module, [])
    result = await MapsBackend().search_locations("nowhere")
    assert not result.success


@pytest.mark.asyncio
async def test_directions_reject_unknown_transport(jxa):
    jxa(maps_module)
    with pytest.raises(ValueError, match="Unsupported transport type"):
        await MapsBackend().get_directions("A", "B", "teleport")


@pytest.mark.asyncio
async def test_add_to_guide_opens_quoted_address(jxa):
    recorder = jxa(maps_module, None)
    result = await MapsBackend().add_to_guide("1 Main St", "Favorites")
    assert result.success
    assert recorder.calls[0] == {"url": "maps://?q=1%20Main%20St"}
    assert result.extra == {"guideName": "Favorites", "locationName": "1 Main St"}
