"""Tests for tool argument validation."""

from datetime import datetime

import pytest

from apple_mcp.server.args import (
    CalendarArgs,
    InvalidToolArguments,
    MapsArgs,
    MessagesArgs,
    NotesArgs,
    parse_args,
)


def test_camel_case_and_snake_case_are_accepted():
    by_alias = parse_args("messages", {"operation": "read", "phoneNumber": "555"})
    by_name = parse_args("messages", {"operation": "read", "phone_number": "555"})
    assert isinstance(by_alias, MessagesArgs)
    assert by_alias.phone_number == by_name.phone_number == "555"


def test_unknown_keys_are_ignored():
    args = parse_args("contacts", {"name": "Ada", "verbose": True})
    assert args.name == "Ada"


def test_missing_operation_fields_are_named():
    with pytest.raises(InvalidToolArguments) as excinfo:
        parse_args("messages", {"operation": "send", "phoneNumber": "555"})
    assert str(excinfo.value) == "Invalid arguments for messages tool: message required for send operation"


def test_several_missing_fields_are_listed_by_client_name():
    with pytest.raises(InvalidToolArguments, match="phoneNumber, message, scheduledTime required"):
        parse_args("messages", {"operation": "schedule"})


def test_unsupported_operation_is_rejected():
    with pytest.raises(InvalidToolArguments, match="operation"):
        parse_args("mail", {"operation": "delete"})


def test_missing_arguments_object_is_treated_as_empty():
    with pytest.raises(InvalidToolArguments):
        parse_args("webSearch", None)
    with pytest.raises(InvalidToolArguments):
        parse_args("webSearch", {"query": ""})


def test_notes_operation_is_inferred():
    assert parse_args("notes", {}).operation == "list"
    assert parse_args("notes", {"searchText": "milk"}).operation == "search"
    with pytest.raises(InvalidToolArguments, match="title, body required for create"):
        parse_args("notes", {"operation": "create"})
    assert isinstance(parse_args("notes", {}), NotesArgs)


def test_schedule_time_is_parsed():
    args = parse_args(
        "messages",
        {"operation": "schedule", "phoneNumber": "555", "message": "hi", "scheduledTime": "2030-01-01T09:00:00Z"},
    )
    assert isinstance(args.scheduled_time, datetime)
    assert args.scheduled_time.year == 2030


def test_calendar_dates_must_be_iso():
    with pytest.raises(InvalidToolArguments):
        parse_args("calendar", {"operation": "list", "fromDate": "next tuesday"})
    args = parse_args("calendar", {"operation": "list", "fromDate": "2026-01-01T00:00:00Z"})
    assert isinstance(args, CalendarArgs)
    assert args.from_date == "2026-01-01T00:00:00Z"


def test_limits_must_be_positive():
    with pytest.raises(InvalidToolArguments):
        parse_args("mail", {"operation": "unread", "limit": 0})


def test_maps_transport_defaults_to_driving():
    args = parse_args("maps", {"operation": "directions", "fromAddress": "A", "toAddress": "B"})
    assert isinstance(args, MapsArgs)
    assert args.transport_type == "driving"
    with pytest.raises(InvalidToolArguments):
        parse_args("maps", {"operation": "directions", "fromAddress": "A", "toAddress": "B", "transportType": "fly"})


def test_unknown_tool_has_no_model():
    with pytest.raises(KeyError):
        parse_args("spotify", {})


def test_reminder_props_are_limited_to_readable_properties():
    args = parse_args("reminders", {"operation": "listById", "listId": "L1", "props": ["name", "flagged"]})
    assert args.props == ["name", "flagged"]
    with pytest.raises(InvalidToolArguments):
        parse_args("reminders", {"operation": "listById", "listId": "L1", "props": ["delete"]})
