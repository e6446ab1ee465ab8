"""Structured logging configuration for the DBaaS Operator.

Resource events are written as one JSON object per line so log pipelines can
index them by controller, resource and correlation id.
"""

import json
import logging
import os
import sys
from typing import Any

from .utils.context import get_context_dict
from .utils.errors import sanitize_dict

# Top-level fields never written, whatever their value
SECRET_FIELDS = frozenset({"password", "private_key", "public_key", "connection_string", "token"})


def setup_structured_logging() -> None:
    """Configure structured JSON logging on stdout at LOG_LEVEL."""
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def log_resource_event(
    logger: logging.Logger,
    controller: str,
    resource_kind: str,
    resource_name: str,
    namespace: str,
    uid: str,
    event: str,
    reason: str,
    message: str,
    level: int = logging.INFO,
    **kwargs: Any,
) -> None:
    """Log a structured resource event.

    Extra keyword arguments are added to the record after nested secrets were
    redacted from them. The correlation id of the running reconcile pass is
    included when there is one.
    """
    log_data = {
        "controller": controller,
        "resource": resource_kind,
        "name": resource_name,
        "namespace": namespace,
        "uid": uid,
        "event": event,
        "reason": reason,
        "message": message,
        **get_context_dict(),
    }
    for key, value in kwargs.items():
        log_data[key] = sanitize_dict(value) if isinstance(value, dict) else value
    logger.log(level, json.dumps(sanitize_secrets(log_data), default=str))


def sanitize_secrets(log_data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``log_data`` with secret fields masked."""
    return {key: "***REDACTED***" if key in SECRET_FIELDS else value for key, value in log_data.items()}
