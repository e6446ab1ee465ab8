"""Periodic reapply driven by annotations.

A user opts a resource into periodic reconciliation by setting the reapply
period annotation. The operator records when it last reapplied in the reapply
timestamp annotation and requeues the resource for the end of the period.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Any

from ..constants import (
    ANNOTATION_REAPPLY_PERIOD,
    ANNOTATION_REAPPLY_TIMESTAMP,
    MIN_REAPPLY_PERIOD_SECONDS,
)
from ..resources import ResourceKind, get_annotations, get_metadata
from ..utils.errors import ReapplyPeriodError
from ..utils.jsonpatch import add_op, json_pointer
from ..utils.kube import JSON_PATCH_CONTENT_TYPE, call_k8s

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(value: str) -> float:
    """Parse a duration such as ``90s``, ``1.5h`` or ``2h45m`` into seconds.

    Raises:
        ValueError: If the value is not a valid duration
    """
    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    if pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return sign * total


def reapply_period(obj: dict[str, Any]) -> float | None:
    """Return the configured reapply period in seconds, or None if unset.

    Raises:
        ReapplyPeriodError: If the annotation is malformed or below the minimum
    """
    raw = get_annotations(obj).get(ANNOTATION_REAPPLY_PERIOD)
    if raw is None:
        return None
    try:
        period = parse_duration(raw)
    except ValueError as e:
        raise ReapplyPeriodError(f"{ANNOTATION_REAPPLY_PERIOD}: {e}") from e
    if period < MIN_REAPPLY_PERIOD_SECONDS:
        raise ReapplyPeriodError(
            f"{ANNOTATION_REAPPLY_PERIOD}: period {raw!r} must be at least "
            f"{int(MIN_REAPPLY_PERIOD_SECONDS)}s"
        )
    return period


def reapply_timestamp(obj: dict[str, Any]) -> datetime | None:
    """Return the last reapply time, or None if it was never recorded.

    Raises:
        ValueError: If the annotation is not a millisecond timestamp
    """
    raw = get_annotations(obj).get(ANNOTATION_REAPPLY_TIMESTAMP)
    if raw is None:
        return None
    try:
        millis = int(raw)
    except ValueError as e:
        raise ValueError(f"{ANNOTATION_REAPPLY_TIMESTAMP}: invalid timestamp {raw!r}") from e
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)


def should_reapply(obj: dict[str, Any]) -> bool:
    """Whether the reapply period has elapsed since the last reapply."""
    period = reapply_period(obj)
    if period is None:
        return False
    timestamp = reapply_timestamp(obj)
    if timestamp is None:
        return False
    return time.time() >= timestamp.timestamp() + period


def patch_reapply_timestamp(api: Any, resource: ResourceKind, obj: dict[str, Any]) -> float:
    """Record the current time as the last reapply and schedule the next one.

    Args:
        api: Kubernetes CustomObjectsApi instance
        resource: Kind descriptor of the object
        obj: Managed resource

    Returns:
        Seconds until the next reapply is due, 0 when reapply is not configured

    Raises:
        ReapplyPeriodError: If the period annotation is invalid
        client.exceptions.ApiException: If the patch fails
    """
    period = reapply_period(obj)
    if period is None:
        return 0.0

    now = time.time()
    try:
        timestamp = reapply_timestamp(obj)
    except ValueError:
        # A corrupt timestamp is overwritten below.
        timestamp = None
    if timestamp is not None:
        remaining = timestamp.timestamp() + period - now
        if remaining > 0:
            return remaining

    meta = get_metadata(obj)
    now_millis = str(int(now * 1000))
    op = add_op(json_pointer("metadata", "annotations", ANNOTATION_REAPPLY_TIMESTAMP), now_millis)

    call_k8s(
        "patch_reapply_timestamp",
        api.patch_namespaced_custom_object,
        group=resource.group,
        version=resource.version,
        namespace=meta.get("namespace"),
        plural=resource.plural,
        name=meta.get("name"),
        body=[op],
        _content_type=JSON_PATCH_CONTENT_TYPE,
    )
    meta["annotations"][ANNOTATION_REAPPLY_TIMESTAMP] = now_millis
    return period
