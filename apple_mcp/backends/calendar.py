"""Apple Calendar backend"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from apple_mcp.automation.osascript import run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

# Events inspected per calendar before moving to the next one
MAX_EVENTS_PER_CALENDAR = 50

SEARCH_WINDOW_DAYS = 30
LIST_WINDOW_DAYS = 7

_EVENT_FIELDS_JS = """
function toEvent(event, calendarName) {
    const data = {id: "", title: "Unknown Title", location: null, notes: null,
                  startDate: null, endDate: null, calendarName: calendarName,
                  isAllDay: false, url: null};
    try { data.id = event.uid(); } catch (e) {}
    try { data.title = event.summary(); } catch (e) {}
    try { data.location = event.location() || null; } catch (e) {}
    try { data.notes = event.description() || null; } catch (e) {}
    try { data.startDate = event.startDate().toISOString(); } catch (e) {}
    try { data.endDate = event.endDate().toISOString(); } catch (e) {}
    try { data.isAllDay = event.alldayEvent(); } catch (e) {}
    try { data.url = event.url() || null; } catch (e) {}
    return data;
}
"""

_EVENTS_JXA = _EVENT_FIELDS_JS + """
const Calendar = Application('Calendar');
const start = new Date(args.fromDate);
const end = new Date(args.toDate);
const needle = args.searchText ? args.searchText.toLowerCase() : null;
const out = [];
for (const calendar of Calendar.calendars()) {
    if (out.length >= args.limit) break;
    try {
        const filters = [{startDate: {_greaterThan: start}}, {endDate: {_lessThan: end}}];
        if (args.searchText) filters.push({summary: {_contains: args.searchText}});
        const events = calendar.events.whose({_and: filters})();
        const count = Math.min(events.length, args.maxEventsPerCalendar);
        const calendarName = calendar.name();
        for (let i = 0; i < count && out.length < args.limit; i++) {
            const data = toEvent(events[i], calendarName);
            if (needle) {
                const haystack = [data.title, data.location, data.notes]
                    .map(v => (v || "").toLowerCase());
                if (!haystack.some(v => v.includes(needle))) continue;
            }
            out.push(data);
        }
    } catch (e) {
        // calendar not readable
    }
}
return out;
"""

_OPEN_JXA = """
const Calendar = Application('Calendar');
for (const calendar of Calendar.calendars()) {
    try {
        const events = calendar.events.whose({uid: {_equals: args.eventId}})();
        if (events.length > 0) {
            Calendar.activate();
            events[0].show();
            return {success: true, message: `Successfully opened event: ${events[0].summary()}`};
        }
    } catch (e) {
        // calendar not readable
    }
}
return {success: false, message: `No event found with ID: ${args.eventId}`};
"""

_CREATE_JXA = """
const Calendar = Application('Calendar');
let calendar = null;
if (args.calendarName) {
    const matches = Calendar.calendars.whose({name: args.calendarName})();
    if (matches.length === 0) {
        return {success: false, message: `Calendar "${args.calendarName}" not found`};
    }
    calendar = matches[0];
} else {
    calendar = Calendar.calendars()[0];
}
const props = {summary: args.title, startDate: new Date(args.startDate),
               endDate: new Date(args.endDate), alldayEvent: args.isAllDay};
if (args.location) props.location = args.location;
if (args.notes) props.description = args.notes;
const event = Calendar.Event(props);
calendar.events.push(event);
return {success: true, message: `Event "${args.title}" created successfully.`, eventId: event.uid()};
"""


@dataclass
class CalendarEvent:
    id: str
    title: str
    location: Optional[str]
    notes: Optional[str]
    start_date: Optional[str]
    end_date: Optional[str]
    calendar_name: str
    is_all_day: bool
    url: Optional[str]


@dataclass
class CalendarResult:
    success: bool
    message: str
    event_id: Optional[str] = None


def _to_event(raw: Dict[str, Any]) -> CalendarEvent:
    return CalendarEvent(
        id=str(raw.get("id") or ""),
        title=str(raw.get("title") or "Unknown Title"),
        location=raw.get("location"),
        notes=raw.get("notes"),
        start_date=raw.get("startDate"),
        end_date=raw.get("endDate"),
        calendar_name=str(raw.get("calendarName") or ""),
        is_all_day=bool(raw.get("isAllDay")),
        url=raw.get("url"),
    )


def parse_instant(value: str) -> datetime:
    """Parse an ISO date, reading a value without an offset as local time."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return parsed if parsed.tzinfo else parsed.astimezone()


def date_window(from_date: Optional[str], to_date: Optional[str], default_days: int) -> tuple:
    """ISO bounds for an event query, defaulting to now .. now + ``default_days``."""
    now = datetime.now().astimezone()
    start = from_date or now.isoformat()
    end = to_date or (now + timedelta(days=default_days)).isoformat()
    return start, end


class CalendarBackend:
    """Search, list, open and create calendar events"""

    async def check_access(self) -> None:
        try:
            await run_jxa("return Application('Calendar').name();")
        except AutomationError as e:
            raise BackendInitError(
                BackendId.CALENDAR.value,
                "Cannot access Calendar app. Please grant access in System Settings > "
                "Privacy & Security > Automation.",
            ) from e

    async def _events(
        self, search_text: Optional[str], limit: int, from_date: str, to_date: str
    ) -> List[CalendarEvent]:
        found = await run_jxa(
            _EVENTS_JXA,
            {
                "searchText": search_text,
                "limit": limit,
                "fromDate": from_date,
                "toDate": to_date,
                "maxEventsPerCalendar": MAX_EVENTS_PER_CALENDAR,
            },
        )
        return [_to_event(e) for e in found or []]

    async def search_events(
        self,
        search_text: str,
        limit: int = 10,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> List[CalendarEvent]:
        """Events whose title, location or notes contain ``search_text``."""
        start, end = date_window(from_date, to_date, SEARCH_WINDOW_DAYS)
        return await self._events(search_text, limit, start, end)

    async def get_events(
        self,
        limit: int = 10,
        from_date: Optional[str] = None,
        to_date: Optional[str] = None,
    ) -> List[CalendarEvent]:
        start, end = date_window(from_date, to_date, LIST_WINDOW_DAYS)
        return await self._events(None, limit, start, end)

    async def open_event(self, event_id: str) -> CalendarResult:
        raw = await run_jxa(_OPEN_JXA, {"eventId": event_id}) or {}
        return CalendarResult(success=bool(raw.get("success")), message=str(raw.get("message") or ""))

    async def create_event(
        self,
        title: str,
        start_date: str,
        end_date: str,
        location: Optional[str] = None,
        notes: Optional[str] = None,
        is_all_day: bool = False,
        calendar_name: Optional[str] = None,
    ) -> CalendarResult:
        if parse_instant(end_date) < parse_instant(start_date):
            return CalendarResult(success=False, message="End date must be after start date")
        raw = await run_jxa(
            _CREATE_JXA,
            {
                "title": title,
                "startDate": start_date,
                "endDate": end_date,
                "location": location,
                "notes": notes,
                "isAllDay": is_all_day,
                "calendarName": calendar_name,
            },
        ) or {}
        return CalendarResult(
            success=bool(raw.get("success")),
            message=str(raw.get("message") or "Failed to create event"),
            event_id=raw.get("eventId"),
        )


async def create(settings: Optional[Settings] = None) -> CalendarBackend:
    backend = CalendarBackend()
    await backend.check_access()
    return backend
