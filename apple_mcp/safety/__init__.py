"""Log safety: PII redaction for tool arguments that end up in logs."""

from .pii import redact_pii, PII_REDACTED

__all__ = ["redact_pii", "PII_REDACTED"]
