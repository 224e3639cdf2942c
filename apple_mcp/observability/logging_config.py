"""Logging setup for the stdio server.

stdout carries MCP protocol frames, so handlers only ever write to stderr or
a log file.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Record attributes callers attach via ``extra=`` that JSON output keeps
CONTEXT_FIELDS = ("tool", "backend", "mode")

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("mcp", "aiohttp", "asyncio")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with tool/backend context when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = str(value)
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


def _build_handlers(log_file: Optional[str]) -> list:
    handlers: list = [logging.StreamHandler(sys.stderr)]
    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(path, encoding="utf-8"))
    return handlers


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    pii_redact: bool = False,
    log_file: Optional[str] = None,
) -> None:
    """Replace the root handlers with stderr (and optionally file) output.

    With ``pii_redact`` every handler masks phone numbers and email
    addresses before a record is written.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(numeric_level)
    for h in root.handlers[:]:
        root.removeHandler(h)

    formatter = JsonFormatter() if json_format else logging.Formatter(TEXT_FORMAT)
    pii_filter = None
    if pii_redact:
        from apple_mcp.utils.pii_filter import PIIRedactionFilter
        pii_filter = PIIRedactionFilter()

    for handler in _build_handlers(log_file):
        handler.setFormatter(formatter)
        if pii_filter:
            handler.addFilter(pii_filter)
        root.addHandler(handler)

    if numeric_level > logging.DEBUG:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
