"""PII detection and redaction for logs.

Contacts, messages and mail tools log phone numbers and addresses as part of
normal operation; these patterns mask them before records are emitted.
"""

import re
from typing import List, Pattern, Tuple

PII_REDACTED = "[REDACTED]"

# Order matters: emails before phones so "+1 555..." inside an address is not split
_PII_PATTERNS: List[Tuple[Pattern[str], str]] = [
    (re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}"), "email"),
    # International / E.164 numbers as stored by Messages and Contacts
    (re.compile(r"\+\d{1,3}[\s.-]?\(?\d{1,4}\)?(?:[\s.-]?\d{2,4}){2,4}"), "phone"),
    # US phone (various formats)
    (re.compile(r"\b\d{3}[-.\s]?\d{3}[-.\s]?\d{4}\b"), "phone"),
    (re.compile(r"\(\d{3}\)\s*\d{3}[-.\s]?\d{4}\b"), "phone"),
]


def redact_pii(text: str, replacement: str = PII_REDACTED) -> str:
    """
    Redact PII from text. Returns text with matches replaced.
    """
    if not text:
        return text
    result = text
    for pattern, _ in _PII_PATTERNS:
        result = pattern.sub(replacement, result)
    return result
