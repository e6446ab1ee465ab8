"""Utility functions for the DBaaS Operator."""

from .conditions import find_condition, set_condition, update_condition
from .context import (
    get_context_dict,
    get_correlation_id,
    new_correlation_id,
    with_correlation_id,
)
from .events import emit_event
from .finalizer import ensure_finalizers, unset_finalizers
from .rate_limit import rate_limit_k8s

__all__ = [
    "find_condition",
    "set_condition",
    "update_condition",
    "emit_event",
    "ensure_finalizers",
    "unset_finalizers",
    "rate_limit_k8s",
    "new_correlation_id",
    "get_correlation_id",
    "with_correlation_id",
    "get_context_dict",
]
