"""Apple Contacts backend"""

import logging
import re
from typing import Dict, List, Optional

from apple_mcp.automation.osascript import run_applescript, run_jxa
from apple_mcp.backends import AutomationError, BackendId, BackendInitError
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

ACCESS_HINT = (
    "Cannot access Contacts app. Please grant access in System Settings > "
    "Privacy & Security > Contacts."
)

_ALL_NUMBERS_JXA = """
const Contacts = Application('Contacts');
const people = Contacts.people();
const phoneNumbers = {};
for (const person of people) {
    try {
        const name = person.name();
        const phones = person.phones().map(phone => phone.value());
        phoneNumbers[name] = (phoneNumbers[name] || []).concat(phones);
    } catch (e) {
        // skip contacts that cannot be read
    }
}
return phoneNumbers;
"""

_FIND_NUMBER_JXA = """
const Contacts = Application('Contacts');
const people = Contacts.people.whose({name: {_contains: args.name}});
const phones = people.length > 0 ? people[0].phones() : [];
return phones.map(phone => phone.value());
"""


def normalize_phone(number: str) -> str:
    """Strip everything but digits and '+'."""
    return re.sub(r"[^0-9+]", "", number or "")


def phone_matches(stored: str, wanted: str) -> bool:
    """Compare two numbers allowing for a missing '+' or '+1' country prefix."""
    a = normalize_phone(stored)
    b = normalize_phone(wanted)
    if not a or not b:
        return False
    return a == b or a == f"+{b}" or a == f"+1{b}" or f"+1{a}" == b


class ContactsBackend:
    """Read access to the Contacts address book"""

    async def check_access(self) -> None:
        try:
            await run_applescript('tell application "Contacts"\n    count every person\nend tell')
        except AutomationError as e:
            raise BackendInitError(BackendId.CONTACTS.value, ACCESS_HINT) from e

    async def get_all_numbers(self) -> Dict[str, List[str]]:
        """Map of contact name to phone numbers."""
        try:
            numbers = await run_jxa(_ALL_NUMBERS_JXA)
        except AutomationError as e:
            raise AutomationError(f"Error accessing contacts: {e}") from e
        return {str(name): list(phones or []) for name, phones in (numbers or {}).items()}

    async def find_number(self, name: str) -> List[str]:
        """Phone numbers for the first contact whose name contains ``name``.

        Falls back to a case-insensitive substring match over every contact.
        """
        try:
            numbers = await run_jxa(_FIND_NUMBER_JXA, {"name": name})
        except AutomationError as e:
            raise AutomationError(f"Error finding contact: {e}") from e
        if numbers:
            return list(numbers)

        all_numbers = await self.get_all_numbers()
        needle = name.lower()
        for person_name, phones in all_numbers.items():
            if needle in person_name.lower():
                return phones
        return []

    async def find_contact_by_phone(self, phone_number: str) -> Optional[str]:
        """Name of the contact owning ``phone_number``, or None. Never raises."""
        try:
            all_numbers = await self.get_all_numbers()
        except Exception as e:
            logger.debug("Contact lookup by phone failed: %s", e)
            return None
        for name, numbers in all_numbers.items():
            if any(phone_matches(num, phone_number) for num in numbers):
                return name
        return None


async def create(settings: Optional[Settings] = None) -> ContactsBackend:
    backend = ContactsBackend()
    await backend.check_access()
    return backend
