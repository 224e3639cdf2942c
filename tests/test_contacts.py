"""Tests for Contacts phone matching and lookups."""

import pytest

from apple_mcp.backends import AutomationError
from apple_mcp.backends import contacts as contacts_module
from apple_mcp.backends.contacts import ContactsBackend, normalize_phone, phone_matches


def test_normalize_phone():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert normalize_phone("") == ""
    assert normalize_phone(None) == ""  # type: ignore[arg-type]


@pytest.mark.parametrize(
    "stored, wanted",
    [
        ("+15551234567", "5551234567"),
        ("+15551234567", "15551234567"),
        ("555-123-4567", "+15551234567"),
        ("(555) 123-4567", "555.123.4567"),
    ],
)
def test_phone_matches_across_formats(stored, wanted):
    assert phone_matches(stored, wanted)


def test_phone_mismatch():
    assert not phone_matches("+15551234567", "5559999999")
    assert not phone_matches("", "5551234567")


@pytest.fixture
def jxa(monkeypatch):
    calls = []

    def install(handler):
        async def fake_run_jxa(body, args=None, timeout=None):
            calls.append(args)
            return handler(body, args)

        monkeypatch.setattr(contacts_module, "run_jxa", fake_run_jxa)
        return calls

    return install


BOOK = {"Ada Lovelace": ["+1 555 123 4567"], "Charles Babbage": ["555-000-1111", "555-000-2222"]}


@pytest.mark.asyncio
async def test_find_number_falls_back_to_case_insensitive_scan(jxa):
    jxa(lambda body, args: [] if args else BOOK)
    assert await ContactsBackend().find_number("babbage") == ["555-000-1111", "555-000-2222"]
    assert await ContactsBackend().find_number("nobody") == []


@pytest.mark.asyncio
async def test_find_number_uses_direct_match(jxa):
    calls = jxa(lambda body, args: ["+15551234567"])
    assert await ContactsBackend().find_number("Ada") == ["+15551234567"]
    assert calls == [{"name": "Ada"}]


@pytest.mark.asyncio
async def test_find_contact_by_phone(jxa):
    jxa(lambda body, args: BOOK)
    backend = ContactsBackend()
    assert await backend.find_contact_by_phone("+15551234567") == "Ada Lovelace"
    assert await backend.find_contact_by_phone("+19998887777") is None


@pytest.mark.asyncio
async def test_find_contact_by_phone_never_raises(jxa):
    def broken(body, args):
        raise AutomationError("not authorized")

    jxa(broken)
    assert await ContactsBackend().find_contact_by_phone("555") is None


@pytest.mark.asyncio
async def test_listing_errors_are_prefixed(jxa):
    def broken(body, args):
        raise AutomationError("not authorized")

    jxa(broken)
    with pytest.raises(AutomationError, match="Error accessing contacts: not authorized"):
        await ContactsBackend().get_all_numbers()
