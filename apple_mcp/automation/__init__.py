"""OS automation: osascript runners shared by the app backends."""

from .osascript import (
    escape_applescript,
    run_applescript,
    run_jxa,
    set_default_timeout,
)

__all__ = [
    "escape_applescript",
    "run_applescript",
    "run_jxa",
    "set_default_timeout",
]
