"""Tool dispatcher: validates arguments, resolves backends and formats replies."""

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple

from apple_mcp.backends import BackendId
from apple_mcp.backends.loader import BackendLoader
from apple_mcp.config import Settings
from apple_mcp.observability.metrics import get_metrics
from apple_mcp.server.args import (
    CalendarArgs,
    ContactsArgs,
    InvalidToolArguments,
    MailArgs,
    MapsArgs,
    MessagesArgs,
    NotesArgs,
    RemindersArgs,
    WebSearchArgs,
    parse_args,
)

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200
PAGE_CONTENT_CHARS = 1000


@dataclass
class ToolResult:
    content: str
    is_error: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)


def format_timestamp(value: Any) -> str:
    """Local "M/D/YYYY, H:MM:SS AM" rendering of a datetime or ISO string."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return value
    if value.tzinfo is not None:
        value = value.astimezone()
    return f"{value.month}/{value.day}/{value.year}, {value.strftime('%I:%M:%S %p').lstrip('0')}"


def truncate(text: str, limit: int = PREVIEW_CHARS) -> str:
    return text[:limit] + ("..." if len(text) > limit else "")


def _scope(account: Optional[str], mailbox: Optional[str]) -> str:
    scope = f' in account "{account}"' if account else ""
    if mailbox:
        scope += f' and mailbox "{mailbox}"'
    return scope


def _format_emails(emails) -> str:
    return "\n\n".join(
        f"[{e.date_sent}] From: {e.sender}\nMailbox: {e.mailbox}\nSubject: {e.subject}\n{truncate(e.content)}"
        for e in emails
    )


class ToolDispatcher:
    """Routes a tool call to its backend through the loader."""

    def __init__(self, loader: BackendLoader, settings: Optional[Settings] = None):
        self.loader = loader
        self.settings = settings or Settings()
        self._handlers: Dict[str, Tuple[Callable[[Any], Awaitable[ToolResult]], str]] = {
            "contacts": (self._contacts, "Error accessing contacts: "),
            "notes": (self._notes, "Error accessing notes: "),
            "messages": (self._messages, "Error with messages operation: "),
            "mail": (self._mail, "Error with mail operation: "),
            "reminders": (self._reminders, "Error in reminders tool: "),
            "webSearch": (self._web_search, "Error searching the web: "),
            "calendar": (self._calendar, "Error in calendar tool: "),
            "maps": (self._maps, "Error in maps tool: "),
        }

    def is_available(self, name: str) -> bool:
        return name in self._handlers and name in self.loader.registry

    async def invoke_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """Run one tool call. Failures come back as ``is_error`` results, never exceptions."""
        t0 = time.perf_counter()
        result = await self._invoke(name, arguments)
        get_metrics().record_tool_call(name, time.perf_counter() - t0, result.is_error)
        return result

    async def _invoke(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        if not self.is_available(name):
            return ToolResult(f"Unknown tool: {name}", is_error=True)

        await self.loader.wait_ready()

        try:
            args = parse_args(name, arguments)
        except InvalidToolArguments as e:
            logger.info(f"Rejected {name} call: {e.detail}", extra={"tool": name})
            return ToolResult(f"Error: {e}", is_error=True)

        handler, error_prefix = self._handlers[name]
        logger.info(f"Tool called: {name}", extra={"tool": name})
        try:
            return await handler(args)
        except Exception as e:
            logger.error(f"Tool {name} failed: {e}", exc_info=self.settings.debug, extra={"tool": name})
            return ToolResult(f"{error_prefix}{e}", is_error=True)

    async def _backend(self, backend_id: BackendId) -> Any:
        return await self.loader.resolve(backend_id)

    async def _contacts(self, args: ContactsArgs) -> ToolResult:
        contacts = await self._backend(BackendId.CONTACTS)
        if args.name:
            numbers = await contacts.find_number(args.name)
            if numbers:
                return ToolResult(f"{args.name}: {', '.join(numbers)}")
            return ToolResult(
                f'No contact found for "{args.name}". Try a different name or use no name '
                "parameter to list all contacts."
            )

        all_numbers = await contacts.get_all_numbers()
        if not all_numbers:
            return ToolResult(
                "No contacts found in the address book. Please make sure you have granted access to Contacts."
            )
        lines = [f"{name}: {', '.join(phones)}" for name, phones in all_numbers.items() if phones]
        if not lines:
            return ToolResult(
                "Found contacts but none have phone numbers. Try searching by name to see more details."
            )
        return ToolResult(f"Found {len(all_numbers)} contacts:\n\n" + "\n".join(lines))

    async def _notes(self, args: NotesArgs) -> ToolResult:
        notes = await self._backend(BackendId.NOTES)
        if args.operation == "create":
            result = await notes.create_note(args.title, args.body, args.folder_name)
            return ToolResult(result.message, is_error=not result.success, extra={"note": asdict(result)})

        if args.operation == "search":
            found = await notes.find_note(args.search_text)
            if not found:
                return ToolResult(f'No notes found for "{args.search_text}"')
        else:
            found = await notes.get_all_notes()
            if not found:
                return ToolResult("No notes found")
        return ToolResult("\n\n".join(f"{n.name}:\n{n.content}" for n in found))

    async def _messages(self, args: MessagesArgs) -> ToolResult:
        messages = await self._backend(BackendId.MESSAGES)

        if args.operation == "send":
            await messages.send_message(args.phone_number, args.message)
            return ToolResult(f"Message sent to {args.phone_number}")

        if args.operation == "read":
            found = await messages.read_messages(args.phone_number, args.limit)
            if not found:
                return ToolResult("No messages found")
            return ToolResult(
                "\n".join(
                    f"[{format_timestamp(m.date)}] {'Me' if m.is_from_me else m.sender}: {m.content}"
                    for m in found
                )
            )

        if args.operation == "schedule":
            scheduled = await messages.schedule_message(args.phone_number, args.message, args.scheduled_time)
            return ToolResult(
                f"Message scheduled to be sent to {args.phone_number} at {scheduled.scheduled_time.isoformat()}",
                extra={"id": scheduled.id},
            )

        found = await messages.get_unread_messages(args.limit)
        if not found:
            return ToolResult("No unread messages found")
        blocks = []
        for m in found:
            name = "Me" if m.is_from_me else (await self._contact_name(m.sender) or m.sender)
            blocks.append(f"[{format_timestamp(m.date)}] From {name}:\n{m.content}")
        return ToolResult(f"Found {len(found)} unread message(s):\n" + "\n\n".join(blocks))

    async def _contact_name(self, phone_number: str) -> Optional[str]:
        if BackendId.CONTACTS not in self.loader.registry:
            return None
        try:
            contacts = await self._backend(BackendId.CONTACTS)
        except Exception as e:
            logger.debug("Contacts unavailable for sender lookup: %s", e)
            return None
        return await contacts.find_contact_by_phone(phone_number)

    async def _mail(self, args: MailArgs) -> ToolResult:
        mail = await self._backend(BackendId.MAIL)
        scope = _scope(args.account, args.mailbox)

        if args.operation == "unread":
            emails = await mail.get_unread_mails(args.limit, args.account, args.mailbox)
            if not emails:
                return ToolResult(f"No unread emails found{scope}")
            return ToolResult(f"Found {len(emails)} unread email(s){scope}:\n\n" + _format_emails(emails))

        if args.operation == "search":
            emails = await mail.search_mails(args.search_term, args.limit, args.account, args.mailbox)
            if not emails:
                return ToolResult(f'No emails found for "{args.search_term}"{scope}')
            return ToolResult(
                f'Found {len(emails)} email(s) for "{args.search_term}"{scope}:\n\n' + _format_emails(emails)
            )

        if args.operation == "send":
            return ToolResult(
                await mail.send_mail(args.to, args.subject, args.body, args.cc, args.bcc, args.account)
            )

        if args.operation == "mailboxes":
            if args.account:
                boxes = await mail.get_mailboxes_for_account(args.account)
                if not boxes:
                    return ToolResult(
                        f'No mailboxes found for account "{args.account}". Make sure the account name is correct.'
                    )
                return ToolResult(
                    f'Found {len(boxes)} mailboxes for account "{args.account}":\n\n' + "\n".join(boxes)
                )
            boxes = await mail.get_mailboxes()
            if not boxes:
                return ToolResult("No mailboxes found. Make sure Mail app is running and properly configured.")
            return ToolResult(f"Found {len(boxes)} mailboxes:\n\n" + "\n".join(boxes))

        accounts = await mail.get_accounts()
        if not accounts:
            return ToolResult(
                "No email accounts found. Make sure Mail app is configured with at least one account."
            )
        return ToolResult(f"Found {len(accounts)} email accounts:\n\n" + "\n".join(accounts))

    async def _reminders(self, args: RemindersArgs) -> ToolResult:
        reminders = await self._backend(BackendId.REMINDERS)

        if args.operation == "list":
            lists = await reminders.get_all_lists()
            items = await reminders.get_all_reminders()
            return ToolResult(
                f"Found {len(lists)} lists and {len(items)} reminders.",
                extra={"lists": [asdict(l) for l in lists], "reminders": [r.to_dict() for r in items]},
            )

        if args.operation == "search":
            found = await reminders.search_reminders(args.search_text)
            text = (
                f'Found {len(found)} reminders matching "{args.search_text}".'
                if found
                else f'No reminders found matching "{args.search_text}".'
            )
            return ToolResult(text, extra={"reminders": [r.to_dict() for r in found]})

        if args.operation == "open":
            result = await reminders.open_reminder(args.search_text)
            text = (
                f"Opened Reminders app. Found reminder: {result.reminder.name}"
                if result.success
                else result.message
            )
            return ToolResult(text, is_error=not result.success)

        if args.operation == "create":
            created = await reminders.create_reminder(args.name, args.list_name, args.notes, args.due_date)
            where = f' in list "{args.list_name}"' if args.list_name else ""
            return ToolResult(f'Created reminder "{created.name}"{where}.', extra={"reminder": created.to_dict()})

        found = await reminders.get_reminders_from_list_by_id(args.list_id, args.props)
        text = (
            f'Found {len(found)} reminders in list with ID "{args.list_id}".'
            if found
            else f'No reminders found in list with ID "{args.list_id}".'
        )
        return ToolResult(text, extra={"reminders": found})

    async def _web_search(self, args: WebSearchArgs) -> ToolResult:
        search = await self._backend(BackendId.WEB_SEARCH)
        response = await search.search(args.query)
        if response.error:
            return ToolResult(f"Error searching the web: {response.error}", is_error=True)
        if not response.results:
            return ToolResult(f'No search results found for "{args.query}".')

        blocks = []
        for i, r in enumerate(response.results, 1):
            block = f"[{i}] {r.title}\nURL: {r.url}\nSummary: {r.snippet}"
            if r.content:
                block += f"\n\nContent:\n{truncate(r.content, PAGE_CONTENT_CHARS)}"
            elif r.error:
                block += f"\n\nContent unavailable: {r.error}"
            blocks.append(block)
        return ToolResult(
            f'Found {len(response.results)} results for "{args.query}":\n\n' + "\n\n".join(blocks)
        )

    async def _calendar(self, args: CalendarArgs) -> ToolResult:
        calendar = await self._backend(BackendId.CALENDAR)
        limit = args.limit or 10

        if args.operation == "search":
            events = await calendar.search_events(args.search_text, limit, args.from_date, args.to_date)
            if not events:
                return ToolResult(f'No events found matching "{args.search_text}".')
            return ToolResult(
                f'Found {len(events)} events matching "{args.search_text}":\n\n' + self._format_events(events)
            )

        if args.operation == "list":
            events = await calendar.get_events(limit, args.from_date, args.to_date)
            if not events:
                return ToolResult("No events found in the specified date range.")
            window = ""
            if args.from_date or args.to_date:
                window = f" from {args.from_date or 'today'} to {args.to_date or 'next week'}"
            return ToolResult(f"Found {len(events)} events{window}:\n\n" + self._format_events(events))

        if args.operation == "open":
            result = await calendar.open_event(args.event_id)
            return ToolResult(result.message, is_error=not result.success)

        result = await calendar.create_event(
            args.title,
            args.start_date,
            args.end_date,
            args.location,
            args.notes,
            args.is_all_day,
            args.calendar_name,
        )
        if not result.success:
            return ToolResult(result.message, is_error=True)
        text = (
            f"{result.message} Event scheduled from {format_timestamp(args.start_date)} "
            f"to {format_timestamp(args.end_date)}"
        )
        if result.event_id:
            text += f"\nEvent ID: {result.event_id}"
        return ToolResult(text, extra={"eventId": result.event_id})

    @staticmethod
    def _format_events(events) -> str:
        blocks = []
        for e in events:
            start = format_timestamp(e.start_date) if e.start_date else "Unknown start"
            end = format_timestamp(e.end_date) if e.end_date else "Unknown end"
            block = (
                f"{e.title} ({start} - {end})\n"
                f"Location: {e.location or 'Not specified'}\n"
                f"Calendar: {e.calendar_name}\n"
                f"ID: {e.id}"
            )
            if e.notes:
                block += f"\nNotes: {e.notes}"
            blocks.append(block)
        return "\n\n".join(blocks)

    async def _maps(self, args: MapsArgs) -> ToolResult:
        maps = await self._backend(BackendId.MAPS)
        op = args.operation

        if op == "search":
            result = await maps.search_locations(args.query, args.limit or 5)
            if not result.success:
                return ToolResult(result.message, is_error=True)
            blocks = []
            for loc in result.locations:
                block = f"Name: {loc.name}\nAddress: {loc.address}"
                if loc.latitude is not None and loc.longitude is not None:
                    block += f"\nCoordinates: {loc.latitude}, {loc.longitude}"
                blocks.append(block)
            return ToolResult(f"{result.message}:\n\n" + "\n\n".join(blocks))

        if op == "save":
            result = await maps.save_location(args.name, args.address)
        elif op == "directions":
            result = await maps.get_directions(args.from_address, args.to_address, args.transport_type)
        elif op == "pin":
            result = await maps.drop_pin(args.name, args.address)
        elif op == "listGuides":
            result = await maps.list_guides()
        elif op == "addToGuide":
            result = await maps.add_to_guide(args.address, args.guide_name)
        else:
            result = await maps.create_guide(args.guide_name)
        return ToolResult(result.message, is_error=not result.success, extra=dict(result.extra))
