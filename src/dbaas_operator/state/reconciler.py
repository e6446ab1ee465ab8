"""Generic state machine reconciler.

One reconcile pass loads the resource, derives its lifecycle state from the
State condition, makes sure the finalizer is set, dispatches to the handler
method for that state and records the outcome in the State and Ready
conditions.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import TYPE_CHECKING, Any, Callable

from .. import metrics
from ..constants import (
    COND_READY,
    COND_STATE,
    CONTROLLER_NAME,
    EVENT_REASON_RECONCILE_STARTED,
    FINALIZER,
    READY_REASON_ERROR,
    READY_REASON_PENDING,
    READY_REASON_SETTLED,
)
from ..logging import log_resource_event
from ..resources import ResourceKind, get_conditions, get_generation, get_metadata, is_being_deleted
from ..tracing import add_span_attribute, trace_span
from ..utils.conditions import find_condition, now_rfc3339, set_condition
from ..utils.context import with_correlation_id
from ..utils.customresource import is_import_requested, reconciliation_should_be_skipped
from ..utils.errors import ReconcileError, UnsupportedStateError, sanitize_exception
from ..utils.events import (
    emit_finalizer_removed,
    emit_reconcile_failed,
    emit_reconcile_skipped,
    emit_state_changed,
)
from ..utils.finalizer import ensure_finalizers, unset_finalizers
from ..utils.kube import call_k8s, get_k8s_client, is_not_found
from .patcher import Patcher
from .reapply import patch_reapply_timestamp
from .result import Result, fail_in_place
from .states import (
    SETTLED_STATES,
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
    ensure_state,
    get_state,
)

if TYPE_CHECKING:
    from ..handlers.base import StateHandler

logger = logging.getLogger(__name__)

# Transitions that keep the observedGeneration of the previous State condition
# instead of taking the live generation: polling an in-flight operation and
# finishing it.
KEEP_OBSERVED_GENERATION = frozenset({
    (STATE_CREATING, STATE_CREATING),
    (STATE_CREATING, STATE_CREATED),
    (STATE_UPDATING, STATE_UPDATING),
    (STATE_UPDATING, STATE_UPDATED),
    (STATE_DELETION_REQUESTED, STATE_DELETING),
    (STATE_DELETING, STATE_DELETING),
    (STATE_DELETING, STATE_DELETED),
})

# (status, reason, message) of the Ready condition per next state
_READY_BY_STATE = {
    STATE_INITIAL: ("False", READY_REASON_PENDING, "Resource is in initial state."),
    STATE_IMPORT_REQUESTED: ("False", READY_REASON_PENDING, "Resource is being imported."),
    STATE_CREATING: ("False", READY_REASON_PENDING, "Resource is pending."),
    STATE_UPDATING: ("False", READY_REASON_PENDING, "Resource is pending."),
    STATE_DELETING: ("False", READY_REASON_PENDING, "Resource is pending."),
    STATE_DELETION_REQUESTED: ("False", READY_REASON_PENDING, "Resource is pending."),
    STATE_IMPORTED: ("True", READY_REASON_SETTLED, "Resource is imported."),
    STATE_CREATED: ("True", READY_REASON_SETTLED, "Resource is settled."),
    STATE_UPDATED: ("True", READY_REASON_SETTLED, "Resource is settled."),
}


def new_ready_condition(result: Result) -> dict[str, Any]:
    """Build the Ready condition summarizing a handler result."""
    status, reason, message = _READY_BY_STATE.get(
        result.next_state,
        ("False", READY_REASON_ERROR, f"unknown state: {result.next_state}"),
    )
    return {
        "type": COND_READY,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": now_rfc3339(),
    }


def get_observed_generation(
    obj: dict[str, Any],
    prev_conditions: list[dict[str, Any]],
    next_state: str,
) -> int:
    """Return the observedGeneration to record for a transition."""
    prev_condition = find_condition(prev_conditions, COND_STATE)
    if prev_condition is None:
        return get_generation(obj)

    if (get_state(prev_conditions), next_state) in KEEP_OBSERVED_GENERATION:
        return int(prev_condition.get("observedGeneration", 0))
    return get_generation(obj)


class Reconciler:
    """Drives one kind of managed resource through its lifecycle states."""

    def __init__(
        self,
        handler: StateHandler,
        api: Any = None,
        support_reapply: bool = False,
    ):
        """Initialize the reconciler.

        Args:
            handler: Resource specific handler implementing the state methods
            api: Kubernetes CustomObjectsApi instance; created on first use if omitted
            support_reapply: Honor the reapply period annotation for this kind
        """
        self.handler = handler
        self.resource, self.predicates = handler.for_()
        self.support_reapply = support_reapply
        self._api = api

    @property
    def api(self) -> Any:
        if self._api is None:
            self._api = get_k8s_client()
        return self._api

    @property
    def kind(self) -> str:
        return self.resource.kind

    def for_(self) -> tuple[ResourceKind, list[Callable[..., bool]]]:
        return self.resource, self.predicates

    def setup_with_manager(self, registry: Any = None) -> None:
        """Register this reconciler with the operator framework."""
        self.handler.setup_with_manager(self, registry)

    def _log(self, obj: dict[str, Any], message: str, reason: str, level: int = logging.INFO, **kwargs: Any) -> None:
        meta = get_metadata(obj)
        log_resource_event(
            logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=meta.get("name", "unknown"),
            namespace=meta.get("namespace", "default"),
            uid=meta.get("uid", "unknown"),
            event="reconcile",
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def reconcile(self, namespace: str, name: str) -> Result:
        """Run one reconcile pass for the resource ``namespace/name``.

        Returns:
            The handler result; ``requeue_after`` tells when to run again

        Raises:
            UnsupportedStateError: If the stored state is unknown
            ReconcileError: If loading or patching the resource failed
            Exception: The handler-reported error, after it was recorded in
                the Ready condition
        """
        with with_correlation_id() as corr_id, trace_span(
            "reconcile",
            kind=self.kind,
            attributes={"resource.namespace": namespace, "resource.name": name, "correlation_id": corr_id},
        ):
            metrics.reconcile_total.labels(kind=self.kind, result="started").inc()
            start_time = time.time()
            try:
                result = self._reconcile(namespace, name)
            except Exception as e:
                metrics.error_total.labels(kind=self.kind, error_type=type(e).__name__).inc()
                metrics.reconcile_total.labels(kind=self.kind, result="error").inc()
                raise
            finally:
                metrics.reconcile_duration_seconds.labels(kind=self.kind).observe(time.time() - start_time)
            metrics.reconcile_total.labels(kind=self.kind, result="success").inc()
            return result

    def _reconcile(self, namespace: str, name: str) -> Result:
        try:
            obj = call_k8s(
                "get_object",
                self.api.get_namespaced_custom_object,
                group=self.resource.group,
                version=self.resource.version,
                namespace=namespace,
                plural=self.resource.plural,
                name=name,
            )
        except Exception as e:
            if is_not_found(e):
                logger.info(f"{self.kind} {namespace}/{name} is gone, nothing to do")
                return Result()
            raise ReconcileError(f"unable to get object: {e}") from e

        current_conditions = get_conditions(obj)
        current_state = get_state(current_conditions)

        if reconciliation_should_be_skipped(obj):
            self._log(obj, "Skipping reconciliation by annotation", reason="ReconcileSkipped")
            emit_reconcile_skipped(obj, "Reconciliation skipped by annotation")
            if current_state == STATE_DELETED:
                self._unset_finalizer(obj)
            return Result()

        self._log(obj, "Reconcile started", reason=EVENT_REASON_RECONCILE_STARTED, state=current_state)

        try:
            ensure_finalizers(self.api, self.resource, obj, FINALIZER)
        except Exception as e:
            raise ReconcileError(f"failed to manage finalizers: {e}") from e

        try:
            result = self.reconcile_state(obj)
        except UnsupportedStateError as e:
            self._report_unsupported_state(obj, e)
            raise
        reconcile_error = result.error

        new_conditions = copy.deepcopy(get_conditions(obj))
        observed_generation = get_observed_generation(obj, current_conditions, result.next_state)
        ensure_state(new_conditions, observed_generation, result.next_state, result.message, reconcile_error is None)
        add_span_attribute("reconcile.state", current_state)
        add_span_attribute("reconcile.next_state", result.next_state)

        if result.next_state != current_state:
            metrics.state_transitions_total.labels(
                kind=self.kind, from_state=current_state, to_state=result.next_state
            ).inc()
            emit_state_changed(obj, current_state, result.next_state)

        self._log(obj, "Reconcile finished", reason="ReconcileFinished", state=result.next_state)

        if result.next_state == STATE_DELETED:
            self._unset_finalizer(obj)
            if reconcile_error is not None:
                raise reconcile_error
            return result

        ready = new_ready_condition(result)
        ready["observedGeneration"] = observed_generation
        if reconcile_error is not None:
            ready["status"] = "False"
            ready["reason"] = READY_REASON_ERROR
            ready["message"] = str(reconcile_error)
        set_condition(new_conditions, ready)

        self._patch_conditions(obj, new_conditions)

        if reconcile_error is not None:
            sanitized = sanitize_exception(reconcile_error)
            self._log(obj, f"Reconciliation failed: {sanitized}", reason="ReconciliationFailed",
                      level=logging.ERROR, error_type=type(reconcile_error).__name__)
            emit_reconcile_failed(obj, f"Reconciliation failed: {sanitized}")
            raise reconcile_error

        return result

    def _patch_conditions(self, obj: dict[str, Any], conditions: list[dict[str, Any]]) -> None:
        try:
            # Conditions are owned by this field manager alone and passes are
            # serialized per object, so no resourceVersion precondition.
            Patcher(obj, self.resource, optimistic_lock=False).update_conditions(conditions).patch(self.api)
        except Exception as e:
            raise ReconcileError(f"failed to patch status: {e}") from e

    def _report_unsupported_state(self, obj: dict[str, Any], error: UnsupportedStateError) -> None:
        """Record an unknown stored state in the Ready condition.

        The State condition is left as found so the corrupted value stays
        visible; the pass is not retried after this.
        """
        conditions = copy.deepcopy(get_conditions(obj))
        set_condition(conditions, {
            "type": COND_READY,
            "status": "False",
            "reason": READY_REASON_ERROR,
            "message": str(error),
            "observedGeneration": get_generation(obj),
        })
        self._patch_conditions(obj, conditions)
        self._log(obj, str(error), reason="ReconciliationFailed", level=logging.ERROR,
                  error_type=type(error).__name__)
        emit_reconcile_failed(obj, str(error))

    def _unset_finalizer(self, obj: dict[str, Any]) -> None:
        try:
            unset_finalizers(self.api, self.resource, obj, FINALIZER)
        except Exception as e:
            raise ReconcileError(f"failed to unset finalizer: {e}") from e
        emit_finalizer_removed(obj)

    def _handler_for(self, state: str) -> Callable[[dict[str, Any]], Result] | None:
        return {
            STATE_INITIAL: self.handler.handle_initial,
            STATE_IMPORT_REQUESTED: self.handler.handle_import_requested,
            STATE_IMPORTED: self.handler.handle_imported,
            STATE_CREATING: self.handler.handle_creating,
            STATE_CREATED: self.handler.handle_created,
            STATE_UPDATING: self.handler.handle_updating,
            STATE_UPDATED: self.handler.handle_updated,
            STATE_DELETION_REQUESTED: self.handler.handle_deletion_requested,
            STATE_DELETING: self.handler.handle_deleting,
        }.get(state)

    def reconcile_state(self, obj: dict[str, Any]) -> Result:
        """Dispatch to the handler method for the current state of ``obj``.

        Exceptions raised by the handler are reported as a failure in the
        current state, the same as a returned ``fail_in_place`` result.

        Raises:
            UnsupportedStateError: If the stored state is unknown
            ReconcileError: If the reapply timestamp could not be recorded
        """
        current_state = get_state(get_conditions(obj))

        if current_state == STATE_INITIAL and is_import_requested(obj):
            current_state = STATE_IMPORT_REQUESTED

        if is_being_deleted(obj) and current_state != STATE_DELETING:
            current_state = STATE_DELETION_REQUESTED

        handle = self._handler_for(current_state)
        if handle is None:
            raise UnsupportedStateError(current_state)

        try:
            result = handle(obj)
        except Exception as e:
            result = fail_in_place(current_state, e)

        if not result.next_state:
            result.next_state = STATE_INITIAL

        if self.support_reapply:
            try:
                self._reconcile_reapply(obj, result)
            except Exception as e:
                raise ReconcileError(f"failed to reconcile reapply: {e}") from e

        return result

    def _reconcile_reapply(self, obj: dict[str, Any], result: Result) -> None:
        if result.next_state not in SETTLED_STATES or result.requeue_after or result.error is not None:
            return
        requeue_after = patch_reapply_timestamp(self.api, self.resource, obj)
        if requeue_after:
            metrics.reapply_total.labels(kind=self.kind).inc()
        result.requeue_after = requeue_after
