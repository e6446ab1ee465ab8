"""Finalizer management for managed resources.

Finalizer lists are always written with a JSON patch that replaces the whole
list. A merge patch would be ambiguous when other controllers edit their own
finalizers on the same object.
"""

from __future__ import annotations

from typing import Any

from ..resources import ResourceKind, get_finalizers, get_metadata
from .jsonpatch import add_op, json_pointer, replace_op
from .kube import JSON_PATCH_CONTENT_TYPE, call_k8s


def _patch_finalizers(api: Any, resource: ResourceKind, obj: dict[str, Any], finalizers: list[str]) -> None:
    meta = get_metadata(obj)
    path = json_pointer("metadata", "finalizers")
    op = replace_op(path, finalizers) if "finalizers" in meta else add_op(path, finalizers)

    call_k8s(
        "patch_finalizers",
        api.patch_namespaced_custom_object,
        group=resource.group,
        version=resource.version,
        namespace=meta.get("namespace"),
        plural=resource.plural,
        name=meta.get("name"),
        body=[op],
        _content_type=JSON_PATCH_CONTENT_TYPE,
    )
    obj.setdefault("metadata", {})["finalizers"] = finalizers


def ensure_finalizers(api: Any, resource: ResourceKind, obj: dict[str, Any], *finalizers: str) -> bool:
    """Make sure all given finalizers are set on the object.

    Args:
        api: Kubernetes CustomObjectsApi instance
        resource: Kind descriptor of the object
        obj: Managed resource; its metadata is updated on success
        *finalizers: Finalizer markers to ensure

    Returns:
        True if a patch was issued, False if all finalizers were already present

    Raises:
        client.exceptions.ApiException: If the patch fails
    """
    current = get_finalizers(obj)
    missing = [f for f in finalizers if f not in current]
    if not missing:
        return False

    _patch_finalizers(api, resource, obj, current + missing)
    return True


def unset_finalizers(api: Any, resource: ResourceKind, obj: dict[str, Any], *finalizers: str) -> None:
    """Remove the given finalizers from the object.

    The replacement list is patched even when none of the finalizers is set.

    Raises:
        client.exceptions.ApiException: If the patch fails
    """
    remaining = [f for f in get_finalizers(obj) if f not in finalizers]
    _patch_finalizers(api, resource, obj, remaining)
