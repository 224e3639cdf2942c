from enum import Enum
from typing import Optional


class BackendId(str, Enum):
    """Closed set of automation backends. Values double as tool names."""

    CONTACTS = "contacts"
    NOTES = "notes"
    MESSAGES = "messages"
    MAIL = "mail"
    REMINDERS = "reminders"
    CALENDAR = "calendar"
    MAPS = "maps"
    WEB_SEARCH = "webSearch"

    def __str__(self) -> str:
        return self.value


class BackendError(Exception):
    pass


class BackendInitError(BackendError):
    """An initializer could not produce its backend (e.g. automation access denied)."""

    def __init__(self, backend: str, message: str):
        super().__init__(message)
        self.backend = backend


class AutomationError(BackendError):
    """An osascript run failed."""

    def __init__(self, message: str, returncode: Optional[int] = None, stderr: str = ""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class AutomationTimeout(AutomationError):
    pass
