"""Dispatch to one of several per-version handlers by the populated spec field."""

from __future__ import annotations

from typing import Any, Iterable, Mapping

from ..resources import ResourceKind
from ..state.result import Result, fail_in_place
from ..state.states import (
    STATE_CREATED,
    STATE_CREATING,
    STATE_DELETING,
    STATE_DELETION_REQUESTED,
    STATE_IMPORT_REQUESTED,
    STATE_IMPORTED,
    STATE_INITIAL,
    STATE_UPDATED,
    STATE_UPDATING,
)
from ..utils.errors import VersionSelectionError
from .base import StateHandler


def select_version(spec: Mapping[str, Any] | None, versions: Iterable[str]) -> str:
    """Return the single version key populated in ``spec``.

    Args:
        spec: Resource spec, e.g. ``{"v20250312": {...}}``
        versions: Version keys the caller has handlers for

    Raises:
        VersionSelectionError: If no version or more than one version is populated
    """
    spec = spec or {}
    populated = [version for version in versions if spec.get(version)]
    if not populated:
        raise VersionSelectionError("no version specified in spec")
    if len(populated) > 1:
        raise VersionSelectionError(f"multiple versions specified in spec: {', '.join(sorted(populated))}")
    return populated[0]


class VersionedHandler(StateHandler):
    """Handler that forwards every state to the handler of the populated version.

    Example::

        VersionedHandler(resource, {"v20250312": GroupV20250312Handler(resource)})

    A spec with zero or several populated versions keeps the resource in its
    current state with the selection error reported on the Ready condition.
    """

    def __init__(self, resource: ResourceKind, handlers: Mapping[str, StateHandler], api: Any = None):
        super().__init__(resource, api=api)
        self.handlers = dict(handlers)

    def _dispatch(self, state: str, method: str, obj: dict[str, Any]) -> Result:
        try:
            version = select_version(obj.get("spec"), self.handlers)
        except VersionSelectionError as e:
            self.log_warning(obj, str(e), event="dispatch", reason="VersionSelectionFailed", state=state)
            return fail_in_place(state, e)
        return getattr(self.handlers[version], method)(obj)

    def handle_initial(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_INITIAL, "handle_initial", obj)

    def handle_import_requested(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_IMPORT_REQUESTED, "handle_import_requested", obj)

    def handle_imported(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_IMPORTED, "handle_imported", obj)

    def handle_creating(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_CREATING, "handle_creating", obj)

    def handle_created(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_CREATED, "handle_created", obj)

    def handle_updating(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_UPDATING, "handle_updating", obj)

    def handle_updated(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_UPDATED, "handle_updated", obj)

    def handle_deletion_requested(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_DELETION_REQUESTED, "handle_deletion_requested", obj)

    def handle_deleting(self, obj: dict[str, Any]) -> Result:
        return self._dispatch(STATE_DELETING, "handle_deleting", obj)
