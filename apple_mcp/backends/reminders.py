"""Apple Reminders backend"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from apple_mcp.automation.osascript import run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

_REMINDER_FIELDS_JS = """
function toReminder(r, listName) {
    let due = null;
    try { const d = r.dueDate(); due = d ? d.toISOString() : null; } catch (e) {}
    return {
        name: r.name(),
        id: r.id(),
        body: r.body() || "",
        completed: r.completed(),
        dueDate: due,
        listName: listName
    };
}
"""

_ALL_LISTS_JXA = """
return Application('Reminders').lists().map(l => ({name: l.name(), id: l.id()}));
"""

_ALL_REMINDERS_JXA = _REMINDER_FIELDS_JS + """
const out = [];
for (const list of Application('Reminders').lists()) {
    const listName = list.name();
    for (const r of list.reminders()) {
        try { out.push(toReminder(r, listName)); } catch (e) {}
    }
}
return out;
"""

_SEARCH_JXA = _REMINDER_FIELDS_JS + """
const out = [];
for (const list of Application('Reminders').lists()) {
    const listName = list.name();
    const found = list.reminders.whose({_or: [
        {name: {_contains: args.searchText}},
        {body: {_contains: args.searchText}}
    ]})();
    for (const r of found) {
        try { out.push(toReminder(r, listName)); } catch (e) {}
    }
}
return out;
"""

_OPEN_JXA = """
const Reminders = Application('Reminders');
Reminders.activate();
return {opened: true};
"""

_CREATE_JXA = """
const Reminders = Application('Reminders');
let list = null;
if (args.listName) {
    const matches = Reminders.lists.whose({name: args.listName})();
    if (matches.length > 0) {
        list = matches[0];
    } else {
        list = Reminders.List({name: args.listName});
        Reminders.lists.push(list);
        list = Reminders.lists.whose({name: args.listName})()[0];
    }
} else {
    list = Reminders.defaultList();
}
const props = {name: args.name};
if (args.notes) props.body = args.notes;
if (args.dueDate) props.dueDate = new Date(args.dueDate);
const reminder = Reminders.Reminder(props);
list.reminders.push(reminder);
return {name: args.name, id: reminder.id(), listName: list.name()};
"""

_LIST_BY_ID_JXA = """
const Reminders = Application('Reminders');
const matches = Reminders.lists.whose({id: args.listId})();
if (matches.length === 0) return [];
const props = args.props.filter(p => args.readable.includes(p));
return matches[0].reminders().map(r => {
    const item = {};
    for (const prop of props) {
        try {
            let value = r[prop]();
            if (value instanceof Date) value = value.toISOString();
            item[prop] = value;
        } catch (e) {
            item[prop] = null;
        }
    }
    return item;
});
"""

DEFAULT_LIST_PROPS = ["name", "body", "completed", "dueDate"]

# Read-only reminder properties a listById caller may ask for
READABLE_PROPS = (
    "name",
    "id",
    "body",
    "completed",
    "dueDate",
    "priority",
    "flagged",
    "completionDate",
    "creationDate",
)


@dataclass
class ReminderList:
    name: str
    id: str


@dataclass
class Reminder:
    name: str
    id: str = ""
    body: str = ""
    completed: bool = False
    due_date: Optional[str] = None
    list_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class OpenResult:
    success: bool
    message: str
    reminder: Optional[Reminder] = None


def _to_reminder(raw: Dict[str, Any]) -> Reminder:
    return Reminder(
        name=str(raw.get("name") or ""),
        id=str(raw.get("id") or ""),
        body=str(raw.get("body") or ""),
        completed=bool(raw.get("completed")),
        due_date=raw.get("dueDate"),
        list_name=str(raw.get("listName") or ""),
    )


class RemindersBackend:
    """List, search, open and create reminders"""

    async def check_access(self) -> None:
        try:
            await run_jxa("return Application('Reminders').name();")
        except AutomationError as e:
            raise BackendInitError(
                BackendId.REMINDERS.value,
                "Cannot access Reminders app. Please grant access in System Settings > "
                "Privacy & Security > Reminders.",
            ) from e

    async def get_all_lists(self) -> List[ReminderList]:
        lists = await run_jxa(_ALL_LISTS_JXA)
        return [ReminderList(name=str(l.get("name")), id=str(l.get("id"))) for l in lists or []]

    async def get_all_reminders(self) -> List[Reminder]:
        return [_to_reminder(r) for r in await run_jxa(_ALL_REMINDERS_JXA) or []]

    async def search_reminders(self, search_text: str) -> List[Reminder]:
        found = await run_jxa(_SEARCH_JXA, {"searchText": search_text})
        return [_to_reminder(r) for r in found or []]

    async def open_reminder(self, search_text: str) -> OpenResult:
        """Bring Reminders to the front if a reminder matches ``search_text``."""
        matches = await self.search_reminders(search_text)
        if not matches:
            return OpenResult(success=False, message="No matching reminders found")
        await run_jxa(_OPEN_JXA)
        return OpenResult(success=True, message="Reminders app opened", reminder=matches[0])

    async def create_reminder(
        self,
        name: str,
        list_name: Optional[str] = None,
        notes: Optional[str] = None,
        due_date: Optional[str] = None,
    ) -> Reminder:
        raw = await run_jxa(
            _CREATE_JXA,
            {"name": name, "listName": list_name, "notes": notes, "dueDate": due_date},
        ) or {}
        return Reminder(
            name=str(raw.get("name") or name),
            id=str(raw.get("id") or ""),
            body=notes or "",
            due_date=due_date,
            list_name=str(raw.get("listName") or list_name or ""),
        )

    async def get_reminders_from_list_by_id(
        self, list_id: str, props: Optional[List[str]] = None
    ) -> List[Dict[str, Any]]:
        """Reminders of one list, each reduced to the requested properties.

        Only names in ``READABLE_PROPS`` are accepted; anything else raises
        ValueError before Reminders is touched.
        """
        props = list(props or DEFAULT_LIST_PROPS)
        unknown = [p for p in props if p not in READABLE_PROPS]
        if unknown:
            raise ValueError(f"Unsupported reminder properties: {', '.join(unknown)}")
        found = await run_jxa(
            _LIST_BY_ID_JXA,
            {"listId": list_id, "props": props, "readable": list(READABLE_PROPS)},
        )
        return list(found or [])


async def create(settings: Optional[Settings] = None) -> RemindersBackend:
    backend = RemindersBackend()
    await backend.check_access()
    return backend
