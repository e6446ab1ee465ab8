"""State tracker fingerprints.

A fingerprint summarizes the generation of a resource together with the
identity and version of the Secrets and ConfigMaps it reads. Comparing the
stored fingerprint with a fresh one detects changes that a generation bump
alone does not reveal, such as a rotated credentials Secret.
"""

from __future__ import annotations

from typing import Any

from ..constants import ANNOTATION_STATE_TRACKER, TRACKED_DEPENDENCY_KINDS
from ..resources import get_annotations, get_generation
from ..utils.kube import to_dict

_FNV64_OFFSET_BASIS = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF

# Alphabet without vowels and look-alike characters, as used by Kubernetes
# for generated names.
_SAFE_ALPHANUMS = "bcdfghjklmnpqrstvwxz2456789"


def fnv1a_64(data: bytes, seed: int = _FNV64_OFFSET_BASIS) -> int:
    """64-bit FNV-1a hash of ``data``, continuing from ``seed``."""
    h = seed
    for byte in data:
        h ^= byte
        h = (h * _FNV64_PRIME) & _MASK64
    return h


def safe_encode_string(value: str) -> str:
    """Map each character onto the safe alphabet."""
    return "".join(_SAFE_ALPHANUMS[ord(ch) % len(_SAFE_ALPHANUMS)] for ch in value)


def dependency_key(dependency: dict[str, Any]) -> str:
    meta = dependency.get("metadata") or {}
    return f"{dependency.get('kind', '')}/{meta.get('namespace', '')}/{meta.get('name', '')}"


def compute_state_tracker(obj: dict[str, Any], *dependencies: Any) -> str:
    """Compute the fingerprint of a resource and its dependencies.

    Args:
        obj: Managed resource
        *dependencies: Objects the resource reads; only Secrets and ConfigMaps
            are taken into account

    Returns:
        Deterministic fingerprint string
    """
    values: dict[str, bytes] = {"generation": str(get_generation(obj)).encode()}

    for dep in dependencies:
        dep = to_dict(dep)
        if dep.get("kind") not in TRACKED_DEPENDENCY_KINDS:
            continue
        meta = dep.get("metadata") or {}
        values[dependency_key(dep)] = f"{meta.get('uid', '')}.{meta.get('resourceVersion', '')}".encode()

    h = _FNV64_OFFSET_BASIS
    for key in sorted(values):
        h = fnv1a_64(key.encode(), h)
        h = fnv1a_64(values[key], h)

    return safe_encode_string(str(h))


def stored_state_tracker(obj: dict[str, Any]) -> str | None:
    """Return the fingerprint recorded on the resource, if any."""
    return get_annotations(obj).get(ANNOTATION_STATE_TRACKER)
