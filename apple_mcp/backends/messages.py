"""Apple Messages backend: send via AppleScript, read from chat.db, one-shot scheduling"""

import asyncio
import logging
import sqlite3
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from apple_mcp.automation.osascript import escape_applescript, run_applescript
from apple_mcp.backends import AutomationError, BackendError, BackendId, BackendInitError
from apple_mcp.backends.contacts import normalize_phone
from apple_mcp.config import Settings

logger = logging.getLogger(__name__)

DEFAULT_MESSAGES_DB = Path.home() / "Library" / "Messages" / "chat.db"

# Seconds between the Unix epoch and Apple's reference date (2001-01-01 UTC)
APPLE_EPOCH_OFFSET = 978307200

MAX_MESSAGE_LIMIT = 50

_MESSAGE_COLUMNS = """
    SELECT m.ROWID AS rowid, m.text AS text, m.attributedBody AS body, m.date AS date,
           m.is_from_me AS is_from_me, COALESCE(h.id, '') AS sender
    FROM message m
    LEFT JOIN handle h ON m.handle_id = h.ROWID
"""


@dataclass
class Message:
    content: str
    date: datetime
    sender: str
    is_from_me: bool


@dataclass
class ScheduledMessage:
    id: str
    phone_number: str
    message: str
    scheduled_time: datetime
    status: str = "pending"
    error: Optional[str] = None


def apple_time_to_datetime(value: Optional[int]) -> datetime:
    """Convert a chat.db timestamp (seconds or nanoseconds since 2001) to UTC."""
    if not value:
        return datetime.fromtimestamp(APPLE_EPOCH_OFFSET, tz=timezone.utc)
    seconds = value / 1_000_000_000 if value > 10_000_000_000 else value
    return datetime.fromtimestamp(seconds + APPLE_EPOCH_OFFSET, tz=timezone.utc)


def decode_attributed_body(blob: Optional[bytes]) -> Optional[str]:
    """Pull the plain string out of an NSAttributedString typedstream blob."""
    if not blob:
        return None
    try:
        marker = blob.find(b"NSString")
        if marker < 0:
            return None
        rest = blob[marker + len(b"NSString") + 5:]
        length = rest[0]
        start = 1
        if length == 0x81:
            length = int.from_bytes(rest[1:3], "little")
            start = 3
        elif length == 0x82:
            length = int.from_bytes(rest[1:4], "little")
            start = 4
        return rest[start:start + length].decode("utf-8", errors="replace") or None
    except (IndexError, ValueError):
        return None


def phone_variants(phone_number: str) -> List[str]:
    """Forms a number may be stored under in the handle table."""
    digits = normalize_phone(phone_number)
    bare = digits.lstrip("+")
    variants = {phone_number, digits, bare, f"+{bare}"}
    if len(bare) == 10:
        variants.add(f"+1{bare}")
    if len(bare) == 11 and bare.startswith("1"):
        variants.add(bare[1:])
    return sorted(v for v in variants if v)


def clamp_limit(limit: Optional[int], default: int = 10) -> int:
    if not limit:
        return default
    return max(1, min(int(limit), MAX_MESSAGE_LIMIT))


class MessagesBackend:
    """Send, read and schedule iMessages"""

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else DEFAULT_MESSAGES_DB
        self._scheduled: Dict[str, ScheduledMessage] = {}
        self._timers: Dict[str, asyncio.Task] = {}

    async def check_access(self) -> None:
        try:
            await run_applescript('tell application "Messages" to get name')
        except AutomationError as e:
            raise BackendInitError(
                BackendId.MESSAGES.value,
                "Cannot access Messages app. Please grant access in System Settings > "
                "Privacy & Security > Automation.",
            ) from e

    async def send_message(self, phone_number: str, message: str) -> str:
        script = f'''
tell application "Messages"
    set targetService to 1st service whose service type = iMessage
    set targetBuddy to buddy "{escape_applescript(phone_number)}" of targetService
    send "{escape_applescript(message)}" to targetBuddy
end tell'''
        return await run_applescript(script)

    async def read_messages(self, phone_number: str, limit: Optional[int] = 10) -> List[Message]:
        variants = phone_variants(phone_number)
        placeholders = ", ".join("?" for _ in variants)
        query = f"{_MESSAGE_COLUMNS} WHERE h.id IN ({placeholders}) ORDER BY m.date DESC LIMIT ?"
        return await asyncio.to_thread(self._query, query, (*variants, clamp_limit(limit)))

    async def get_unread_messages(self, limit: Optional[int] = 10) -> List[Message]:
        query = (
            f"{_MESSAGE_COLUMNS} WHERE m.is_from_me = 0 AND m.is_read = 0 "
            "AND m.item_type = 0 ORDER BY m.date DESC LIMIT ?"
        )
        return await asyncio.to_thread(self._query, query, (clamp_limit(limit),))

    def _query(self, query: str, params: tuple) -> List[Message]:
        if not self.db_path.exists():
            raise BackendError(
                f"Messages database not found at {self.db_path}. Grant Full Disk Access "
                "to your terminal or MCP client in System Settings > Privacy & Security."
            )
        try:
            conn = sqlite3.connect(f"file:{self.db_path}?mode=ro", uri=True, timeout=2.0)
        except sqlite3.Error as e:
            raise BackendError(f"Cannot open Messages database: {e}") from e
        conn.row_factory = sqlite3.Row
        try:
            rows = conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            raise BackendError(f"Messages database query failed: {e}") from e
        finally:
            conn.close()

        messages = []
        for row in rows:
            content = row["text"] or decode_attributed_body(row["body"])
            if not content:
                continue
            messages.append(
                Message(
                    content=content,
                    date=apple_time_to_datetime(row["date"]),
                    sender=row["sender"],
                    is_from_me=bool(row["is_from_me"]),
                )
            )
        return messages

    async def schedule_message(
        self, phone_number: str, message: str, scheduled_time: datetime
    ) -> ScheduledMessage:
        """Send ``message`` at ``scheduled_time``. The schedule lives only in this process."""
        when = scheduled_time if scheduled_time.tzinfo else scheduled_time.astimezone()
        delay = (when - datetime.now(timezone.utc)).total_seconds()
        if delay <= 0:
            raise ValueError("Cannot schedule message in the past")

        scheduled = ScheduledMessage(
            id=uuid.uuid4().hex[:12],
            phone_number=phone_number,
            message=message,
            scheduled_time=when,
        )
        self._scheduled[scheduled.id] = scheduled
        self._timers[scheduled.id] = asyncio.create_task(self._send_later(scheduled, delay))
        logger.info(f"Scheduled message {scheduled.id} to {phone_number} at {when.isoformat()}")
        return scheduled

    async def _send_later(self, scheduled: ScheduledMessage, delay: float) -> None:
        try:
            await asyncio.sleep(delay)
            await self.send_message(scheduled.phone_number, scheduled.message)
            scheduled.status = "sent"
            logger.info(f"Sent scheduled message {scheduled.id}")
        except asyncio.CancelledError:
            scheduled.status = "cancelled"
            raise
        except Exception as e:
            scheduled.status = "failed"
            scheduled.error = str(e)
            logger.error(f"Scheduled message {scheduled.id} failed: {e}")
        finally:
            self._timers.pop(scheduled.id, None)
            self._scheduled.pop(scheduled.id, None)

    def cancel_scheduled(self, scheduled_id: str) -> bool:
        """Cancel a pending scheduled message. Returns False if it already ran or is unknown."""
        task = self._timers.pop(scheduled_id, None)
        if task is None:
            return False
        scheduled = self._scheduled.pop(scheduled_id, None)
        if scheduled is not None:
            scheduled.status = "cancelled"
        task.cancel()
        logger.info(f"Cancelled scheduled message {scheduled_id}")
        return True

    def pending(self) -> List[ScheduledMessage]:
        return [s for s in self._scheduled.values() if s.status == "pending"]


async def create(settings: Optional[Settings] = None) -> MessagesBackend:
    db_path = Path(settings.messages_db_path).expanduser() if settings else None
    backend = MessagesBackend(db_path)
    await backend.check_access()
    return backend
