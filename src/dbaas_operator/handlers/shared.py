"""Shared utilities for handlers."""

from __future__ import annotations

from typing import Any

from kubernetes import client

from ..utils.kube import call_k8s, load_k8s_config, to_dict

_READERS = {
    "Secret": ("get_secret", "read_namespaced_secret"),
    "ConfigMap": ("get_configmap", "read_namespaced_config_map"),
}


def get_core_client() -> client.CoreV1Api:
    """Get Kubernetes CoreV1Api client.

    Returns:
        CoreV1Api instance
    """
    load_k8s_config()
    return client.CoreV1Api()


def get_dependency(
    core_api: Any,
    kind: str,
    namespace: str,
    name: str,
) -> dict[str, Any]:
    """Read a Secret or ConfigMap a resource depends on.

    The result is a plain dict with ``kind`` set, ready to be passed to
    ``should_update`` and ``Patcher.update_state_tracker``.

    Args:
        core_api: Kubernetes CoreV1Api instance
        kind: "Secret" or "ConfigMap"
        namespace: Namespace of the dependency
        name: Name of the dependency

    Returns:
        Dependency object

    Raises:
        ValueError: If the kind cannot be read as a dependency
        client.exceptions.ApiException: If not found or API error
    """
    if kind not in _READERS:
        raise ValueError(f"unsupported dependency kind: {kind}")
    operation, method = _READERS[kind]
    obj = to_dict(call_k8s(operation, getattr(core_api, method), name=name, namespace=namespace))
    obj["kind"] = kind
    return obj
