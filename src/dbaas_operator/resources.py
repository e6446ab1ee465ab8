"""Resource descriptors and accessors for managed resource dictionaries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ResourceKind:
    """The custom resource a reconciler watches and patches."""

    group: str
    version: str
    kind: str
    plural: str

    @property
    def api_version(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"

    def __str__(self) -> str:
        return f"{self.plural}.{self.version}.{self.group}"


def get_metadata(obj: dict[str, Any]) -> dict[str, Any]:
    return obj.get("metadata") or {}


def get_annotations(obj: dict[str, Any]) -> dict[str, str]:
    return get_metadata(obj).get("annotations") or {}


def get_finalizers(obj: dict[str, Any]) -> list[str]:
    return list(get_metadata(obj).get("finalizers") or [])


def get_generation(obj: dict[str, Any]) -> int:
    return int(get_metadata(obj).get("generation") or 0)


def get_conditions(obj: dict[str, Any]) -> list[dict[str, Any]]:
    return list((obj.get("status") or {}).get("conditions") or [])


def is_being_deleted(obj: dict[str, Any]) -> bool:
    return bool(get_metadata(obj).get("deletionTimestamp"))
