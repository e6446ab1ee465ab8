"""Status condition records.

Conditions are plain dicts in ``status.conditions``; the list holds at most one
record per ``type`` and records are replaced in place so their order is stable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any


def now_rfc3339() -> str:
    """Current UTC time in the format Kubernetes uses for condition timestamps."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def find_condition(conditions: list[dict[str, Any]] | None, condition_type: str) -> dict[str, Any] | None:
    """Return the condition of the given type, or None."""
    for cond in conditions or []:
        if cond.get("type") == condition_type:
            return cond
    return None


def set_condition(
    conditions: list[dict[str, Any]],
    condition: dict[str, Any],
    keep_transition_time: bool = True,
) -> list[dict[str, Any]]:
    """Upsert a condition record by its type.

    Args:
        conditions: Condition list, modified in place
        condition: Record with at least ``type``, ``status`` and ``reason``
        keep_transition_time: Keep the previous lastTransitionTime when the
            status did not change

    Returns:
        The same list, for chaining
    """
    record = {
        "type": condition["type"],
        "status": condition["status"],
        "reason": condition["reason"],
        "message": condition.get("message", ""),
        "lastTransitionTime": now_rfc3339(),
    }
    if condition.get("observedGeneration") is not None:
        record["observedGeneration"] = condition["observedGeneration"]

    for idx, existing in enumerate(conditions):
        if existing.get("type") != record["type"]:
            continue
        if keep_transition_time and existing.get("status") == record["status"]:
            record["lastTransitionTime"] = existing.get("lastTransitionTime", record["lastTransitionTime"])
        conditions[idx] = record
        return conditions

    conditions.append(record)
    return conditions


def update_condition(
    conditions: list[dict[str, Any]],
    condition_type: str,
    status: str,
    reason: str,
    message: str,
    observed_generation: int | None = None,
    keep_transition_time: bool = True,
) -> list[dict[str, Any]]:
    """Update or add a condition from its fields. See :func:`set_condition`."""
    return set_condition(
        conditions,
        {
            "type": condition_type,
            "status": status,
            "reason": reason,
            "message": message,
            "observedGeneration": observed_generation,
        },
        keep_transition_time=keep_transition_time,
    )
