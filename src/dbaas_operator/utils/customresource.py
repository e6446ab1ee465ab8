"""Annotation-driven policies shared by all managed resources."""

from __future__ import annotations

import os
from typing import Any

from ..constants import (
    ANNOTATION_EXTERNAL_PREFIX,
    ANNOTATION_RECONCILIATION_POLICY,
    ANNOTATION_RESOURCE_POLICY,
    RECONCILIATION_POLICY_SKIP,
    RESOURCE_POLICY_DELETE,
    RESOURCE_POLICY_KEEP,
)
from ..resources import get_annotations


def reconciliation_should_be_skipped(obj: dict[str, Any]) -> bool:
    """Whether the user asked the operator to leave this resource alone."""
    return get_annotations(obj).get(ANNOTATION_RECONCILIATION_POLICY) == RECONCILIATION_POLICY_SKIP


def is_import_requested(obj: dict[str, Any]) -> bool:
    """Whether any external-* annotation asks for an existing object to be imported."""
    return any(key.startswith(ANNOTATION_EXTERNAL_PREFIX) for key in get_annotations(obj))


def external_annotation(obj: dict[str, Any], name: str) -> str | None:
    """Return the value of the external-<name> annotation, if present."""
    return get_annotations(obj).get(f"{ANNOTATION_EXTERNAL_PREFIX}{name}")


def is_resource_policy_keep_or_default(obj: dict[str, Any], deletion_protection: bool | None = None) -> bool:
    """Whether the external object must survive deletion of the resource.

    An explicit resource policy annotation wins; without one the operator-wide
    deletion protection setting decides, read from DELETION_PROTECTION when
    not passed.
    """
    policy = get_annotations(obj).get(ANNOTATION_RESOURCE_POLICY)
    if policy == RESOURCE_POLICY_KEEP:
        return True
    if policy == RESOURCE_POLICY_DELETE:
        return False
    if deletion_protection is None:
        return deletion_protection_enabled()
    return deletion_protection


def deletion_protection_enabled() -> bool:
    return os.getenv("DELETION_PROTECTION", "false").lower() in ("true", "1", "yes")
