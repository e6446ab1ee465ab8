"""Error types and sanitization utilities to prevent information leakage."""

import re
from typing import Any


class ReconcileError(Exception):
    """A failure of the reconciliation machinery itself.

    Raised for patch failures, object load failures and anything else that is
    not reported by a resource handler. The message is prefixed with the phase
    that failed.
    """


class UnsupportedStateError(ReconcileError):
    """The stored lifecycle state is not one the state machine knows.

    This signals corrupted status data rather than a transient failure and
    must not be retried.
    """

    def __init__(self, state: str):
        self.state = state
        super().__init__(f'unsupported state "{state}"')


class ReapplyPeriodError(ValueError):
    """The reapply period annotation is malformed or too short."""


class VersionSelectionError(ValueError):
    """No single versioned spec could be selected for a resource."""


# Patterns that might expose sensitive information
SENSITIVE_PATTERNS = [
    r"mongodb(?:\+srv)?://[^:/\s]+:([^@\s]+)@",
    r"postgres(?:ql)?://[^:/\s]+:([^@\s]+)@",
    r"private[_\s]?key[:\s]+([A-Za-z0-9\-]+)",
    r"public[_\s]?key[:\s]+([A-Za-z0-9\-]+)",
    r"api[_\s]?key[:\s]+([A-Za-z0-9\-]+)",
    r"bearer\s+([A-Za-z0-9\-\._~\+/]+=*)",
]

# Fields to redact completely
SENSITIVE_FIELDS = {
    "password",
    "secret",
    "credentials",
    "token",
    "privatekey",
    "private_key",
    "connectionstring",
}


def sanitize_error_message(message: str) -> str:
    """Sanitize error message to remove sensitive information.

    Args:
        message: Original error message

    Returns:
        Sanitized error message with sensitive data redacted
    """
    sanitized = message

    for pattern in SENSITIVE_PATTERNS:
        sanitized = re.sub(
            pattern,
            lambda m: m.group(0).replace(m.group(1), "[REDACTED]"),
            sanitized,
            flags=re.IGNORECASE,
        )

    for field in SENSITIVE_FIELDS:
        sanitized = re.sub(
            rf"\b{field}[:=\s]+([^\s,;\)]+)",
            rf"{field}: [REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )

    return sanitized


def sanitize_exception(error: BaseException) -> str:
    """Sanitize exception message.

    Args:
        error: Exception object

    Returns:
        Sanitized error message
    """
    return sanitize_error_message(str(error))


def sanitize_dict(data: dict[str, Any], sensitive_keys: set[str] | None = None) -> dict[str, Any]:
    """Sanitize dictionary by redacting sensitive fields.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Additional keys to redact (merged with SENSITIVE_FIELDS)

    Returns:
        Sanitized dictionary with sensitive values redacted
    """
    if sensitive_keys is None:
        sensitive_keys = set()

    all_sensitive = SENSITIVE_FIELDS | sensitive_keys
    sanitized = {}

    for key, value in data.items():
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in all_sensitive):
            sanitized[key] = "[REDACTED]"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_dict(value, sensitive_keys)
        elif isinstance(value, str):
            sanitized[key] = sanitize_error_message(value)
        else:
            sanitized[key] = value

    return sanitized
