"""Lifecycle states and their encoding in the State condition."""

from __future__ import annotations

from typing import Any

from ..constants import COND_STATE
from ..utils.conditions import find_condition, update_condition

STATE_INITIAL = "Initial"
STATE_IMPORT_REQUESTED = "ImportRequested"
STATE_IMPORTED = "Imported"
STATE_CREATING = "Creating"
STATE_CREATED = "Created"
STATE_UPDATING = "Updating"
STATE_UPDATED = "Updated"
STATE_DELETION_REQUESTED = "DeletionRequested"
STATE_DELETING = "Deleting"
STATE_DELETED = "Deleted"

STATES = (
    STATE_INITIAL,
    STATE_IMPORT_REQUESTED,
    STATE_IMPORTED,
    STATE_CREATING,
    STATE_CREATED,
    STATE_UPDATING,
    STATE_UPDATED,
    STATE_DELETION_REQUESTED,
    STATE_DELETING,
    STATE_DELETED,
)

SETTLED_STATES = frozenset({STATE_IMPORTED, STATE_CREATED, STATE_UPDATED})

TRANSITIONAL_STATES = frozenset({
    STATE_CREATING,
    STATE_UPDATING,
    STATE_DELETING,
    STATE_DELETION_REQUESTED,
})


def get_state(conditions: list[dict[str, Any]] | None) -> str:
    """Derive the current lifecycle state from a condition list.

    The reason of the State condition is returned as stored, even when it is
    not a known state; callers decide what to do with unknown values.
    """
    cond = find_condition(conditions, COND_STATE)
    if cond is None:
        return STATE_INITIAL
    return cond.get("reason", "")


def ensure_state(
    conditions: list[dict[str, Any]],
    observed_generation: int,
    state: str,
    message: str,
    healthy: bool,
) -> list[dict[str, Any]]:
    """Upsert the State condition with a fresh transition time."""
    return update_condition(
        conditions,
        COND_STATE,
        "True" if healthy else "False",
        state,
        message,
        observed_generation,
        keep_transition_time=False,
    )


def is_settled(state: str) -> bool:
    return state in SETTLED_STATES


def is_transitional(state: str) -> bool:
    return state in TRANSITIONAL_STATES
