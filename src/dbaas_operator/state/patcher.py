"""Server-side apply patches for managed resource status and metadata."""

from __future__ import annotations

import copy
from typing import Any

from .. import metrics
from ..constants import ANNOTATION_STATE_TRACKER, FIELD_MANAGER
from ..resources import ResourceKind, get_metadata
from ..tracing import trace_span
from ..utils.kube import APPLY_PATCH_CONTENT_TYPE, call_k8s
from .tracker import compute_state_tracker


class Patcher:
    """Accumulates status and metadata changes and applies them in order.

    Changes are collected on a shadow object that only carries the identity of
    the resource, so the applied patches never claim ownership of fields the
    operator did not set. The status subresource is patched first; the main
    object is only patched once the status patch went through.

    Example::

        Patcher(obj, resource).update_state_tracker(secret).update_status().patch(api)
    """

    def __init__(self, obj: dict[str, Any], resource: ResourceKind, optimistic_lock: bool = True):
        """Initialize the patcher.

        Args:
            obj: Live resource the changes are taken from
            resource: Kind descriptor of the resource
            optimistic_lock: Send the resourceVersion as a precondition
        """
        meta = get_metadata(obj)
        self.obj = obj
        self.resource = resource
        self.shadow: dict[str, Any] = {
            "apiVersion": obj.get("apiVersion", resource.api_version),
            "kind": obj.get("kind", resource.kind),
            "metadata": {
                "name": meta.get("name"),
                "namespace": meta.get("namespace"),
            },
        }
        if meta.get("generation") is not None:
            self.shadow["metadata"]["generation"] = meta["generation"]
        if optimistic_lock and meta.get("resourceVersion"):
            self.shadow["metadata"]["resourceVersion"] = meta["resourceVersion"]
        self.status_changed = False
        self.object_changed = False

    def update_state_tracker(self, *dependencies: Any) -> Patcher:
        """Record the fingerprint of the resource and its dependencies."""
        annotations = self.shadow["metadata"].setdefault("annotations", {})
        annotations[ANNOTATION_STATE_TRACKER] = compute_state_tracker(self.obj, *dependencies)
        self.object_changed = True
        return self

    def update_status(self) -> Patcher:
        """Take over the status of the live object, except its conditions."""
        status = copy.deepcopy(self.obj.get("status") or {})
        status.pop("conditions", None)
        conditions = self.shadow.get("status", {}).get("conditions")
        if conditions is not None:
            status["conditions"] = conditions
        self.shadow["status"] = status
        self.status_changed = True
        return self

    def update_conditions(self, conditions: list[dict[str, Any]]) -> Patcher:
        """Replace the status conditions."""
        self.shadow.setdefault("status", {})["conditions"] = copy.deepcopy(conditions)
        self.status_changed = True
        return self

    def patch(self, api: Any) -> None:
        """Apply the accumulated changes.

        Args:
            api: Kubernetes CustomObjectsApi instance

        Raises:
            client.exceptions.ApiException: From the first patch that fails;
                no further patches are attempted
        """
        meta = self.shadow["metadata"]
        with trace_span("patch", kind=self.resource.kind, attributes={"resource.name": meta.get("name")}):
            if self.status_changed:
                self._apply(api, "status", self._status_body())
                if self.object_changed:
                    self._refresh_resource_version(api)

            if self.object_changed:
                self._apply(api, "object", self._object_body())

    def _status_body(self) -> dict[str, Any]:
        body = {k: v for k, v in self.shadow.items() if k != "status"}
        body["metadata"] = {k: v for k, v in self.shadow["metadata"].items() if k != "annotations"}
        body["status"] = self.shadow.get("status", {})
        return body

    def _object_body(self) -> dict[str, Any]:
        return {k: v for k, v in self.shadow.items() if k != "status"}

    def _apply(self, api: Any, target: str, body: dict[str, Any]) -> None:
        method = api.patch_namespaced_custom_object_status if target == "status" else api.patch_namespaced_custom_object
        try:
            call_k8s(
                f"apply_{target}",
                method,
                group=self.resource.group,
                version=self.resource.version,
                namespace=self.shadow["metadata"]["namespace"],
                plural=self.resource.plural,
                name=self.shadow["metadata"]["name"],
                body=body,
                field_manager=FIELD_MANAGER,
                force=True,
                _content_type=APPLY_PATCH_CONTENT_TYPE,
            )
        except Exception:
            metrics.patch_total.labels(kind=self.resource.kind, target=target, result="error").inc()
            raise
        metrics.patch_total.labels(kind=self.resource.kind, target=target, result="success").inc()

    def _refresh_resource_version(self, api: Any) -> None:
        # The status patch bumped the resourceVersion; the object patch would
        # otherwise be rejected as a conflict.
        if "resourceVersion" not in self.shadow["metadata"]:
            return
        live = call_k8s(
            "get_object",
            api.get_namespaced_custom_object,
            group=self.resource.group,
            version=self.resource.version,
            namespace=self.shadow["metadata"]["namespace"],
            plural=self.resource.plural,
            name=self.shadow["metadata"]["name"],
        )
        self.shadow["metadata"]["resourceVersion"] = get_metadata(live).get("resourceVersion")
