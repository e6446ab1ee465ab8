"""Wire reconcilers into kopf.

Every create, update, resume and delete event of a managed resource runs one
:meth:`Reconciler.reconcile` pass. Polling of in-flight states and failures are
expressed with kopf's own retry exceptions so kopf schedules the next pass.
Settled passes always complete so later edits are handled right away; the
periodic reapply of settled resources is driven by a kopf timer instead.

kopf processes the events of one object sequentially. The reapply timer only
fires once an object has been left unchanged for a full check interval, which
keeps it clear of event driven passes.
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Any, Callable, Iterable

import kopf

from .constants import ANNOTATION_DEPENDENCY_CHANGED
from .resources import get_metadata
from .state.reapply import should_reapply
from .state.states import SETTLED_STATES
from .state.tracker import dependency_key
from .utils.errors import UnsupportedStateError, sanitize_exception
from .utils.kube import MERGE_PATCH_CONTENT_TYPE, call_k8s, is_not_found

if TYPE_CHECKING:
    from .state.reconciler import Reconciler
    from .state.result import Result

logger = logging.getLogger(__name__)

# How often resources with reapply support are checked for a due reapply
REAPPLY_CHECK_INTERVAL_SECONDS = float(os.getenv("REAPPLY_CHECK_INTERVAL_SECONDS", "60"))


def run_reconcile(reconciler: Reconciler, namespace: str, name: str) -> Result:
    """Run one reconcile pass and translate its outcome for kopf.

    Raises:
        kopf.PermanentError: If the stored state is unknown; retrying cannot help
        kopf.TemporaryError: If the pass failed, or asked to be requeued while
            the resource is not settled
    """
    try:
        result = reconciler.reconcile(namespace, name)
    except UnsupportedStateError as e:
        raise kopf.PermanentError(str(e)) from e
    except Exception as e:
        raise kopf.TemporaryError(f"Reconciliation failed: {sanitize_exception(e)}") from e

    # A settled resource waits for the next event or the reapply timer; a
    # delayed handler would hold back later edits until the delay runs out
    if result.requeue and result.next_state not in SETTLED_STATES:
        raise kopf.TemporaryError(f"Requeue in {result.requeue_after:g}s", delay=result.requeue_after)
    return result


def _in_watch_namespace(meta: dict[str, Any], **_: Any) -> bool:
    return meta.get("namespace") == os.getenv("WATCH_NAMESPACE")


def _when(predicates: Iterable[Callable[..., bool]]) -> Callable[..., bool] | None:
    predicates = list(predicates)
    if os.getenv("WATCH_NAMESPACE"):
        predicates.insert(0, _in_watch_namespace)
    if not predicates:
        return None

    def when(**kwargs: Any) -> bool:
        return all(predicate(**kwargs) for predicate in predicates)

    return when


def _options(group: str, version: str, plural: str, handler_id: str, registry: Any) -> dict[str, Any]:
    options: dict[str, Any] = {"group": group, "version": version, "plural": plural, "id": handler_id}
    if registry is not None:
        options["registry"] = registry
    return options


def register_reconciler(reconciler: Reconciler, registry: Any = None) -> None:
    """Register kopf handlers driving ``reconciler``.

    Args:
        reconciler: Reconciler to run for every event of its resource
        registry: kopf registry; the default global registry if omitted
    """
    resource, predicates = reconciler.for_()
    options = _options(resource.group, resource.version, resource.plural, f"reconcile-{resource.kind.lower()}", registry)
    options["when"] = _when(predicates)

    @kopf.on.create(**options)
    @kopf.on.update(**options)
    @kopf.on.resume(**options)
    def reconcile_handler(meta: dict[str, Any], **_: Any) -> None:
        run_reconcile(reconciler, meta["namespace"], meta["name"])

    # The reconciler manages its own finalizer
    @kopf.on.delete(optional=True, **options)
    def delete_handler(meta: dict[str, Any], **_: Any) -> None:
        run_reconcile(reconciler, meta["namespace"], meta["name"])

    if reconciler.support_reapply:
        register_reapply_timer(reconciler, registry=registry)

    logger.info(f"Registered reconciler for {resource}")


def register_reapply_timer(reconciler: Reconciler, registry: Any = None) -> None:
    """Reconcile settled resources again once their reapply period is over.

    Malformed reapply annotations are raised to kopf, which logs them and
    retries the timer later.
    """
    resource, predicates = reconciler.for_()
    options = _options(resource.group, resource.version, resource.plural, f"reapply-{resource.kind.lower()}", registry)
    options["when"] = _when(predicates)

    @kopf.on.timer(interval=REAPPLY_CHECK_INTERVAL_SECONDS, idle=REAPPLY_CHECK_INTERVAL_SECONDS, **options)
    def reapply_handler(body: dict[str, Any], meta: dict[str, Any], **_: Any) -> None:
        if should_reapply(body):
            logger.info(f"Reapply due for {reconciler.kind} {meta['namespace']}/{meta['name']}")
            run_reconcile(reconciler, meta["namespace"], meta["name"])


def notify_owner(reconciler: Reconciler, namespace: str, name: str, dependency: dict[str, Any]) -> bool:
    """Annotate an owner with the changed dependency so kopf reconciles it.

    Returns:
        False if the owner no longer exists

    Raises:
        client.exceptions.ApiException: If the patch failed for another reason
    """
    meta = get_metadata(dependency)
    value = f"{dependency_key(dependency)}@{meta.get('resourceVersion', '')}"
    resource = reconciler.resource
    try:
        call_k8s(
            "notify_owner",
            reconciler.api.patch_namespaced_custom_object,
            group=resource.group,
            version=resource.version,
            namespace=namespace,
            plural=resource.plural,
            name=name,
            body={"metadata": {"annotations": {ANNOTATION_DEPENDENCY_CHANGED: value}}},
            _content_type=MERGE_PATCH_CONTENT_TYPE,
        )
    except Exception as e:
        if is_not_found(e):
            return False
        raise
    return True


def watch_dependents(
    reconciler: Reconciler,
    version: str,
    plural: str,
    map_func: Callable[[dict[str, Any]], Iterable[tuple[str, str]]],
    group: str = "",
    registry: Any = None,
) -> None:
    """Reconcile owners whenever an object they depend on changes.

    Args:
        reconciler: Reconciler of the owning resource kind
        version: API version of the watched kind, e.g. "v1"
        plural: Plural of the watched kind, e.g. "secrets"
        map_func: Maps a changed object to the ``(namespace, name)`` keys of
            the owners that reference it
        group: API group of the watched kind; empty for the core group
        registry: kopf registry; the default global registry if omitted
    """
    options = _options(group, version, plural, f"watch-{plural}-for-{reconciler.kind.lower()}", registry)

    @kopf.on.event(**options)
    def dependent_handler(body: dict[str, Any], **_: Any) -> None:
        for namespace, name in map_func(body):
            logger.debug(f"{dependency_key(body)} changed, notifying {reconciler.kind} {namespace}/{name}")
            notify_owner(reconciler, namespace, name, body)
