"""Lifecycle state machine shared by all managed resources."""

from .patcher import Patcher
from .reconciler import Reconciler
from .result import Result, advance, fail_in_place
from .states import (
    STATE_CREATED,
    STATE_CREATING,
    STATE_DELETED,
    STATE_DELETING,
    STATE_DELETION_REQUESTED,
    STATE_IMPORT_REQUESTED,
    STATE_IMPORTED,
    STATE_INITIAL,
    STATE_UPDATED,
    STATE_UPDATING,
)
from .update import should_update

__all__ = [
    "Patcher",
    "Reconciler",
    "Result",
    "advance",
    "fail_in_place",
    "should_update",
    "STATE_INITIAL",
    "STATE_IMPORT_REQUESTED",
    "STATE_IMPORTED",
    "STATE_CREATING",
    "STATE_CREATED",
    "STATE_UPDATING",
    "STATE_UPDATED",
    "STATE_DELETION_REQUESTED",
    "STATE_DELETING",
    "STATE_DELETED",
]
