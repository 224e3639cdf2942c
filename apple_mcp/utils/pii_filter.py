"""Logging filter that redacts PII from log records."""

import logging

from apple_mcp.safety.pii import redact_pii


class PIIRedactionFilter(logging.Filter):
    """Filter that redacts PII from log messages before they are emitted."""

    def filter(self, record: logging.LogRecord) -> bool:
        if record.args:
            # Render first so redaction sees the formatted message, not "%s"
            record.msg = redact_pii(record.getMessage())
            record.args = None
        else:
            record.msg = redact_pii(str(record.msg))
        return True
