"""Kubernetes API access helpers shared by the state machine and handlers."""

from __future__ import annotations

import time
from typing import Any, Callable

from kubernetes import client, config

from .. import metrics
from .rate_limit import rate_limit_k8s

APPLY_PATCH_CONTENT_TYPE = "application/apply-patch+yaml"
JSON_PATCH_CONTENT_TYPE = "application/json-patch+json"
MERGE_PATCH_CONTENT_TYPE = "application/merge-patch+json"


def load_k8s_config() -> None:
    """Load the in-cluster configuration, falling back to the local kubeconfig."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def get_k8s_client() -> client.CustomObjectsApi:
    """Get Kubernetes CustomObjectsApi client.

    Returns:
        CustomObjectsApi instance
    """
    load_k8s_config()
    return client.CustomObjectsApi()


def call_k8s(operation: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Call a Kubernetes API method with rate limiting and API metrics.

    Args:
        operation: Operation label for metrics (e.g. "get_object")
        func: Bound API client method
        *args: Positional arguments for the method
        **kwargs: Keyword arguments for the method

    Returns:
        Whatever the API method returns

    Raises:
        client.exceptions.ApiException: If the API call fails
    """
    start_time = time.time()
    try:
        result = rate_limit_k8s(func)(*args, **kwargs)
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
        return result
    except Exception:
        metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
        raise
    finally:
        duration = time.time() - start_time
        metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)


def is_not_found(error: BaseException) -> bool:
    """Whether an exception is a Kubernetes 404."""
    return isinstance(error, client.exceptions.ApiException) and error.status == 404


def to_dict(obj: Any) -> dict[str, Any]:
    """Convert a kubernetes client model into the API's JSON shape.

    Plain dictionaries are returned unchanged.
    """
    if isinstance(obj, dict):
        return obj
    return client.ApiClient().sanitize_for_serialization(obj)
