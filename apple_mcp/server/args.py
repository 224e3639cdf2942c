"""Argument models for each tool.

Clients send camelCase keys; models accept those (or the snake_case field
names) and ignore anything they do not know. Fields required only by some
operations are checked in model validators.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator


class InvalidToolArguments(ValueError):
    """Arguments for ``tool`` failed validation."""

    def __init__(self, tool: str, detail: str):
        super().__init__(f"Invalid arguments for {tool} tool: {detail}")
        self.tool = tool
        self.detail = detail


class ToolArgs(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def require(self, operation: str, *fields: str) -> None:
        missing = [type(self).model_fields[f].alias or f for f in fields if not getattr(self, f)]
        if missing:
            raise ValueError(f"{', '.join(missing)} required for {operation} operation")


class ContactsArgs(ToolArgs):
    name: Optional[str] = None


class NotesArgs(ToolArgs):
    operation: Optional[Literal["search", "list", "create"]] = None
    search_text: Optional[str] = Field(default=None, alias="searchText")
    title: Optional[str] = None
    body: Optional[str] = None
    folder_name: Optional[str] = Field(default=None, alias="folderName")

    @model_validator(mode="after")
    def _check_operation(self) -> "NotesArgs":
        if self.operation is None:
            self.operation = "search" if self.search_text else "list"
        if self.operation == "search":
            self.require("search", "search_text")
        elif self.operation == "create":
            self.require("create", "title", "body")
        return self


class MessagesArgs(ToolArgs):
    operation: Literal["send", "read", "schedule", "unread"]
    phone_number: Optional[str] = Field(default=None, alias="phoneNumber")
    message: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    scheduled_time: Optional[datetime] = Field(default=None, alias="scheduledTime")

    @model_validator(mode="after")
    def _check_operation(self) -> "MessagesArgs":
        if self.operation == "send":
            self.require("send", "phone_number", "message")
        elif self.operation == "read":
            self.require("read", "phone_number")
        elif self.operation == "schedule":
            self.require("schedule", "phone_number", "message", "scheduled_time")
        return self


class MailArgs(ToolArgs):
    operation: Literal["unread", "search", "send", "mailboxes", "accounts"]
    account: Optional[str] = None
    mailbox: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    search_term: Optional[str] = Field(default=None, alias="searchTerm")
    to: Optional[str] = None
    subject: Optional[str] = None
    body: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None

    @model_validator(mode="after")
    def _check_operation(self) -> "MailArgs":
        if self.operation == "search":
            self.require("search", "search_term")
        elif self.operation == "send":
            self.require("send", "to", "subject", "body")
        return self


ReminderProp = Literal[
    "name", "id", "body", "completed", "dueDate", "priority", "flagged", "completionDate", "creationDate"
]


class RemindersArgs(ToolArgs):
    operation: Literal["list", "search", "open", "create", "listById"]
    search_text: Optional[str] = Field(default=None, alias="searchText")
    name: Optional[str] = None
    list_name: Optional[str] = Field(default=None, alias="listName")
    list_id: Optional[str] = Field(default=None, alias="listId")
    props: Optional[List[ReminderProp]] = None
    notes: Optional[str] = None
    due_date: Optional[str] = Field(default=None, alias="dueDate")

    @model_validator(mode="after")
    def _check_operation(self) -> "RemindersArgs":
        if self.operation in ("search", "open"):
            self.require(self.operation, "search_text")
        elif self.operation == "create":
            self.require("create", "name")
        elif self.operation == "listById":
            self.require("listById", "list_id")
        return self


class WebSearchArgs(ToolArgs):
    query: str = Field(min_length=1)


class CalendarArgs(ToolArgs):
    operation: Literal["search", "open", "list", "create"]
    search_text: Optional[str] = Field(default=None, alias="searchText")
    event_id: Optional[str] = Field(default=None, alias="eventId")
    limit: Optional[int] = Field(default=None, ge=1)
    from_date: Optional[str] = Field(default=None, alias="fromDate")
    to_date: Optional[str] = Field(default=None, alias="toDate")
    title: Optional[str] = None
    start_date: Optional[str] = Field(default=None, alias="startDate")
    end_date: Optional[str] = Field(default=None, alias="endDate")
    location: Optional[str] = None
    notes: Optional[str] = None
    is_all_day: bool = Field(default=False, alias="isAllDay")
    calendar_name: Optional[str] = Field(default=None, alias="calendarName")

    @field_validator("from_date", "to_date", "start_date", "end_date")
    @classmethod
    def _iso_date(cls, value: Optional[str]) -> Optional[str]:
        if value:
            datetime.fromisoformat(value.replace("Z", "+00:00"))
        return value

    @model_validator(mode="after")
    def _check_operation(self) -> "CalendarArgs":
        if self.operation == "search":
            self.require("search", "search_text")
        elif self.operation == "open":
            self.require("open", "event_id")
        elif self.operation == "create":
            self.require("create", "title", "start_date", "end_date")
        return self


class MapsArgs(ToolArgs):
    operation: Literal["search", "save", "directions", "pin", "listGuides", "addToGuide", "createGuide"]
    query: Optional[str] = None
    limit: Optional[int] = Field(default=None, ge=1)
    name: Optional[str] = None
    address: Optional[str] = None
    from_address: Optional[str] = Field(default=None, alias="fromAddress")
    to_address: Optional[str] = Field(default=None, alias="toAddress")
    transport_type: Literal["driving", "walking", "transit"] = Field(default="driving", alias="transportType")
    guide_name: Optional[str] = Field(default=None, alias="guideName")

    @model_validator(mode="after")
    def _check_operation(self) -> "MapsArgs":
        if self.operation == "search":
            self.require("search", "query")
        elif self.operation in ("save", "pin"):
            self.require(self.operation, "name", "address")
        elif self.operation == "directions":
            self.require("directions", "from_address", "to_address")
        elif self.operation == "addToGuide":
            self.require("addToGuide", "address", "guide_name")
        elif self.operation == "createGuide":
            self.require("createGuide", "guide_name")
        return self


ARG_MODELS: Dict[str, Type[ToolArgs]] = {
    "contacts": ContactsArgs,
    "notes": NotesArgs,
    "messages": MessagesArgs,
    "mail": MailArgs,
    "reminders": RemindersArgs,
    "webSearch": WebSearchArgs,
    "calendar": CalendarArgs,
    "maps": MapsArgs,
}


def _describe(error: ValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ()))
        msg = item.get("msg", "invalid value")
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts)


def parse_args(tool: str, raw: Optional[Dict[str, Any]]) -> ToolArgs:
    """Validate ``raw`` against the model registered for ``tool``."""
    model = ARG_MODELS.get(tool)
    if model is None:
        raise KeyError(tool)
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        raise InvalidToolArguments(tool, _describe(e)) from e
