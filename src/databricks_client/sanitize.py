"""Credential redaction for log records and error messages."""
import re
from typing import Optional

REDACTED = "[REDACTED]"

# PWD=...; Password=...; token=... up to the next ';' or end of string.
_SECRET_FRAGMENT = re.compile(r"(?i)\b(pwd|password|token)=([^;]*)")


def redact(message: str, *secrets: Optional[str]) -> str:
    """
    Returns `message` with every secret value and every password-bearing
    connection-string fragment replaced by [REDACTED].
    """
    sanitized = str(message)
    for secret in secrets:
        if secret:
            sanitized = sanitized.replace(secret, REDACTED)
    return _SECRET_FRAGMENT.sub(
        lambda m: f"{m.group(1)}={REDACTED}" if m.group(2) else m.group(0),
        sanitized,
    )
