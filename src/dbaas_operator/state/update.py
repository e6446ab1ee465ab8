"""Decide whether a settled resource needs to be pushed to the external service."""

from __future__ import annotations

from typing import Any

from ..constants import COND_READY, COND_STATE, READY_REASON_ERROR
from ..resources import get_conditions, get_generation
from ..utils.conditions import find_condition
from .reapply import should_reapply
from .tracker import compute_state_tracker, stored_state_tracker


def generation_changed(obj: dict[str, Any]) -> bool:
    state_cond = find_condition(get_conditions(obj), COND_STATE)
    observed = (state_cond or {}).get("observedGeneration", 0)
    return observed != get_generation(obj)


def ready_is_error(obj: dict[str, Any]) -> bool:
    ready_cond = find_condition(get_conditions(obj), COND_READY)
    return (ready_cond or {}).get("reason") == READY_REASON_ERROR


def should_update(obj: dict[str, Any], *dependencies: Any) -> bool:
    """Whether a handler should issue an update against the external service.

    True when the spec changed since the state was last recorded, when the
    previous pass ended in an error, when a periodic reapply is due, or when
    dependencies are given and their fingerprint differs from the stored one.

    Raises:
        ReapplyPeriodError: If the reapply period annotation is invalid
        ValueError: If the reapply timestamp annotation is invalid
    """
    reapply_due = should_reapply(obj)
    if generation_changed(obj) or ready_is_error(obj) or reapply_due:
        return True
    if dependencies:
        return stored_state_tracker(obj) != compute_state_tracker(obj, *dependencies)
    return False
