"""Tests for log formatting and handler setup."""

import json
import logging
import sys

import pytest

from apple_mcp.observability import JsonFormatter, setup_logging
from apple_mcp.utils.pii_filter import PIIRedactionFilter


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield root
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()
    for h in saved_handlers:
        root.addHandler(h)
    root.setLevel(saved_level)


def make_record(msg, **context):
    record = logging.LogRecord("apple_mcp.test", logging.WARNING, __file__, 10, msg, None, None)
    for key, value in context.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_context_fields():
    line = JsonFormatter().format(make_record("mail failed", tool="mail", backend="mail"))
    entry = json.loads(line)
    assert entry["msg"] == "mail failed"
    assert entry["level"] == "WARNING"
    assert entry["tool"] == "mail"
    assert entry["backend"] == "mail"
    assert "mode" not in entry


def test_handlers_never_write_to_stdout(restore_root, tmp_path):
    log_file = tmp_path / "logs" / "server.log"
    setup_logging(level="DEBUG", json_format=True, pii_redact=True, log_file=str(log_file))

    handlers = restore_root.handlers
    assert len(handlers) == 2
    assert all(getattr(h, "stream", None) is not sys.stdout for h in handlers)
    assert all(any(isinstance(f, PIIRedactionFilter) for f in h.filters) for h in handlers)
    assert log_file.parent.is_dir()


def test_noisy_loggers_are_quieted_above_debug(restore_root):
    setup_logging(level="INFO")
    assert logging.getLogger("aiohttp").level == logging.WARNING
    assert restore_root.level == logging.INFO
