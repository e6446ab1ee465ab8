"""JSON Patch (RFC 6902) helpers for metadata mutations."""

from __future__ import annotations

from typing import Any


def escape_json_pointer(segment: str) -> str:
    """Escape one JSON Pointer path segment (RFC 6901).

    ``~`` must be escaped before ``/`` so that the ``~1`` produced for a slash
    is not escaped again.
    """
    return segment.replace("~", "~0").replace("/", "~1")


def json_pointer(*segments: str) -> str:
    """Build a JSON Pointer from unescaped path segments."""
    return "".join("/" + escape_json_pointer(segment) for segment in segments)


def add_op(path: str, value: Any) -> dict[str, Any]:
    return {"op": "add", "path": path, "value": value}


def replace_op(path: str, value: Any) -> dict[str, Any]:
    return {"op": "replace", "path": path, "value": value}
