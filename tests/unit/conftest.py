"""Shared fixtures for unit tests."""

from __future__ import annotations

import copy
from typing import Any
from unittest.mock import patch

import pytest
from kubernetes.client.exceptions import ApiException

from dbaas_operator.handlers.base import StateHandler
from dbaas_operator.resources import ResourceKind
from dbaas_operator.state.result import Result

TEST_RESOURCE = ResourceKind(group="dbaas.cloud37.dev", version="v1", kind="Database", plural="databases")


def make_obj(
    name: str = "test-db",
    namespace: str = "default",
    generation: int = 1,
    conditions: list[dict[str, Any]] | None = None,
    annotations: dict[str, str] | None = None,
    finalizers: list[str] | None = None,
    deleting: bool = False,
    resource_version: str = "1",
) -> dict[str, Any]:
    """Build a managed resource body."""
    meta: dict[str, Any] = {
        "name": name,
        "namespace": namespace,
        "uid": f"uid-{name}",
        "generation": generation,
        "resourceVersion": resource_version,
    }
    if annotations is not None:
        meta["annotations"] = dict(annotations)
    if finalizers is not None:
        meta["finalizers"] = list(finalizers)
    if deleting:
        meta["deletionTimestamp"] = "2025-01-01T00:00:00Z"
    obj: dict[str, Any] = {
        "apiVersion": TEST_RESOURCE.api_version,
        "kind": TEST_RESOURCE.kind,
        "metadata": meta,
        "spec": {},
    }
    if conditions is not None:
        obj["status"] = {"conditions": copy.deepcopy(conditions)}
    return obj


def make_secret(name: str = "creds", uid: str = "secret-uid", resource_version: str = "100") -> dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": {"name": name, "namespace": "default", "uid": uid, "resourceVersion": resource_version},
    }


def state_condition(state: str, observed_generation: int = 1, status: str = "True") -> dict[str, Any]:
    return {
        "type": "State",
        "status": status,
        "reason": state,
        "message": "",
        "observedGeneration": observed_generation,
        "lastTransitionTime": "2025-01-01T00:00:00Z",
    }


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> None:
    for key, value in source.items():
        if value is None:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _deep_merge(target[key], value)
        else:
            target[key] = copy.deepcopy(value)


class FakeCustomObjectsApi:
    """In-memory stand-in for kubernetes.client.CustomObjectsApi.

    Objects are keyed by (plural, namespace, name). Every write bumps the
    resourceVersion; a write carrying a stale resourceVersion fails with 409.
    Failures are injected per operation through ``fail``.
    """

    def __init__(self) -> None:
        self.objects: dict[tuple[str, str, str], dict[str, Any]] = {}
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.fail: dict[str, Exception] = {}

    def add(self, plural: str, obj: dict[str, Any]) -> dict[str, Any]:
        meta = obj["metadata"]
        self.objects[(plural, meta["namespace"], meta["name"])] = copy.deepcopy(obj)
        return obj

    def stored(self, plural: str, namespace: str, name: str) -> dict[str, Any]:
        return self.objects[(plural, namespace, name)]

    def calls_to(self, method: str) -> list[dict[str, Any]]:
        return [kwargs for name, kwargs in self.calls if name == method]

    def _enter(self, method: str, kwargs: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((method, copy.deepcopy(kwargs)))
        if method in self.fail:
            raise self.fail[method]
        key = (kwargs["plural"], kwargs["namespace"], kwargs["name"])
        if key not in self.objects:
            raise ApiException(status=404, reason="Not Found")
        return self.objects[key]

    def _bump(self, obj: dict[str, Any]) -> None:
        meta = obj["metadata"]
        meta["resourceVersion"] = str(int(meta.get("resourceVersion", "0")) + 1)

    def _check_version(self, obj: dict[str, Any], body: Any) -> None:
        if not isinstance(body, dict):
            return
        wanted = (body.get("metadata") or {}).get("resourceVersion")
        if wanted is not None and wanted != obj["metadata"].get("resourceVersion"):
            raise ApiException(status=409, reason="Conflict")

    def get_namespaced_custom_object(self, group: str, version: str, namespace: str, plural: str, name: str) -> dict[str, Any]:
        obj = self._enter(
            "get_namespaced_custom_object",
            {"group": group, "version": version, "namespace": namespace, "plural": plural, "name": name},
        )
        return copy.deepcopy(obj)

    def patch_namespaced_custom_object(self, group: str, version: str, namespace: str, plural: str, name: str, body: Any, **kwargs: Any) -> dict[str, Any]:
        obj = self._enter(
            "patch_namespaced_custom_object",
            {"group": group, "version": version, "namespace": namespace, "plural": plural, "name": name, "body": body, **kwargs},
        )
        if isinstance(body, list):
            for op in body:
                *parents, leaf = [_unescape(s) for s in op["path"].split("/")[1:]]
                target = obj
                for segment in parents:
                    if segment not in target:
                        raise ApiException(status=422, reason="Unprocessable Entity")
                    target = target[segment]
                target[leaf] = copy.deepcopy(op["value"])
        else:
            self._check_version(obj, body)
            _deep_merge(obj.setdefault("metadata", {}), {k: v for k, v in body.get("metadata", {}).items() if k in ("annotations", "finalizers", "labels")})
        self._bump(obj)
        return copy.deepcopy(obj)

    def patch_namespaced_custom_object_status(self, group: str, version: str, namespace: str, plural: str, name: str, body: Any, **kwargs: Any) -> dict[str, Any]:
        obj = self._enter(
            "patch_namespaced_custom_object_status",
            {"group": group, "version": version, "namespace": namespace, "plural": plural, "name": name, "body": body, **kwargs},
        )
        self._check_version(obj, body)
        obj.setdefault("status", {}).update(copy.deepcopy(body.get("status", {})))
        self._bump(obj)
        return copy.deepcopy(obj)


class RecordingHandler(StateHandler):
    """State handler returning canned results and recording which states ran.

    ``outcomes`` maps a state to a Result or to an exception to raise; states
    without an outcome stay where they are.
    """

    def __init__(self, outcomes: dict[str, Any] | None = None):
        super().__init__(TEST_RESOURCE, api=object())
        self.outcomes = outcomes or {}
        self.calls: list[str] = []

    def _outcome(self, state: str, obj: dict[str, Any]) -> Result:
        self.calls.append(state)
        outcome = self.outcomes.get(state, Result(next_state=state))
        if isinstance(outcome, Exception):
            raise outcome
        return copy.copy(outcome)

    def handle_initial(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Initial", obj)

    def handle_import_requested(self, obj: dict[str, Any]) -> Result:
        return self._outcome("ImportRequested", obj)

    def handle_imported(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Imported", obj)

    def handle_creating(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Creating", obj)

    def handle_created(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Created", obj)

    def handle_updating(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Updating", obj)

    def handle_updated(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Updated", obj)

    def handle_deletion_requested(self, obj: dict[str, Any]) -> Result:
        return self._outcome("DeletionRequested", obj)

    def handle_deleting(self, obj: dict[str, Any]) -> Result:
        return self._outcome("Deleting", obj)


@pytest.fixture(autouse=True)
def no_rate_limit(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("dbaas_operator.utils.rate_limit._K8S_RATE_LIMIT_PER_SECOND", 1e9)


@pytest.fixture(autouse=True)
def mock_kopf_event():
    with patch("dbaas_operator.utils.events.kopf.event") as mock_event:
        yield mock_event


@pytest.fixture
def fake_api() -> FakeCustomObjectsApi:
    return FakeCustomObjectsApi()


@pytest.fixture
def resource() -> ResourceKind:
    return TEST_RESOURCE
