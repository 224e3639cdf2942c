"""Decoder for brace-delimited pseudo-records printed by AppleScript.

AppleScript lists of records come back from osascript as flat text such as::

    {subject:Hello, sender:a@b.com, mailbox:INBOX}, {subject:World, ...}

Decoding runs in three explicit steps so malformed input can be skipped piece
by piece: scan for ``{...}`` candidates, split each on commas, split each
fragment on its first colon. Values are trimmed but otherwise left as-is;
callers parse dates or truncate content themselves.
"""

import logging
from typing import Callable, Dict, Iterator, Optional

logger = logging.getLogger(__name__)

Record = Dict[str, str]
RecordPredicate = Callable[[Record], bool]


def iter_candidates(raw_text: str) -> Iterator[str]:
    """Yield the inner text of each flat ``{...}`` span, in order.

    An opening brace while a span is already open discards the open span as
    unbalanced. A closing brace with nothing open is ignored, as is a span
    left open at the end of the input.
    """
    start = -1
    for index, char in enumerate(raw_text):
        if char == "{":
            start = index
        elif char == "}" and start >= 0:
            inner = raw_text[start + 1:index]
            start = -1
            if inner.strip():
                yield inner


def parse_fields(candidate: str) -> Record:
    """Split one candidate into key/value pairs. Later duplicate keys win."""
    record: Record = {}
    for fragment in candidate.split(","):
        key, sep, value = fragment.partition(":")
        if not sep:
            continue
        key = key.strip()
        if not key:
            continue
        record[key] = value.strip()
    return record


def has_any_field(*names: str) -> RecordPredicate:
    """Predicate accepting records with a non-empty value for any of ``names``."""

    def predicate(record: Record) -> bool:
        return any(record.get(name) for name in names)

    return predicate


def decode(raw_text: str, is_record: Optional[RecordPredicate] = None) -> Iterator[Record]:
    """Decode every pseudo-record in ``raw_text``.

    Args:
        raw_text: osascript output
        is_record: Identifying-field rule; candidates it rejects are dropped.
            Defaults to accepting any candidate with at least one field.

    Yields:
        One key -> value dict per accepted candidate. Never raises.
    """
    if not isinstance(raw_text, str) or not raw_text:
        return
    for candidate in iter_candidates(raw_text):
        record = parse_fields(candidate)
        if not record:
            continue
        if is_record is not None:
            try:
                accepted = is_record(record)
            except Exception as e:
                logger.debug("Record predicate failed on %r: %s", record, e)
                accepted = False
            if not accepted:
                continue
        yield record
