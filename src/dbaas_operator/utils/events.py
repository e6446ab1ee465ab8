"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_FINALIZER_REMOVED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_SKIPPED,
    EVENT_REASON_STATE_CHANGED,
)


def emit_event(
    obj: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        obj: Resource body the event refers to
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        obj,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_failed(obj: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(obj, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_reconcile_skipped(obj: dict[str, Any], message: str) -> None:
    """Emit reconcile skipped event."""
    emit_event(obj, EVENT_REASON_RECONCILE_SKIPPED, message)


def emit_state_changed(obj: dict[str, Any], from_state: str, to_state: str) -> None:
    """Emit state transition event."""
    emit_event(obj, EVENT_REASON_STATE_CHANGED, f"State changed from {from_state} to {to_state}")


def emit_finalizer_removed(obj: dict[str, Any]) -> None:
    """Emit finalizer removed event."""
    emit_event(obj, EVENT_REASON_FINALIZER_REMOVED, "Finalizer removed, resource can be deleted")
