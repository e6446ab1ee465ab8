"""Tests for the server-side apply patcher."""

from __future__ import annotations

import pytest
from kubernetes.client.exceptions import ApiException

from dbaas_operator.constants import ANNOTATION_STATE_TRACKER, FIELD_MANAGER
from dbaas_operator.state.patcher import Patcher
from dbaas_operator.state.tracker import compute_state_tracker

from conftest import make_obj, make_secret


class TestPatcher:
    """Test cases for Patcher."""

    def test_nothing_to_patch(self, fake_api, resource):
        """Test that an untouched patcher issues no calls."""
        obj = fake_api.add(resource.plural, make_obj())
        Patcher(obj, resource).patch(fake_api)
        assert fake_api.calls == []

    def test_status_only(self, fake_api, resource):
        """Test a status patch."""
        obj = make_obj(conditions=[{"type": "Ready", "status": "True"}])
        obj["status"]["databaseId"] = "db-123"
        fake_api.add(resource.plural, obj)

        Patcher(obj, resource).update_status().patch(fake_api)

        assert [name for name, _ in fake_api.calls] == ["patch_namespaced_custom_object_status"]
        call = fake_api.calls[0][1]
        assert call["field_manager"] == FIELD_MANAGER
        assert call["force"] is True
        assert call["_content_type"] == "application/apply-patch+yaml"
        body = call["body"]
        assert body["status"] == {"databaseId": "db-123"}
        assert body["metadata"] == {
            "name": "test-db",
            "namespace": "default",
            "generation": 1,
            "resourceVersion": "1",
        }
        assert body["apiVersion"] == "dbaas.cloud37.dev/v1"
        assert body["kind"] == "Database"

    def test_conditions_kept_with_status(self, fake_api, resource):
        """Test that conditions set before update_status survive."""
        obj = fake_api.add(resource.plural, make_obj(conditions=[{"type": "Old"}]))
        patcher = Patcher(obj, resource).update_conditions([{"type": "New"}]).update_status()
        assert patcher.shadow["status"]["conditions"] == [{"type": "New"}]

    def test_object_only(self, fake_api, resource):
        """Test a state tracker patch."""
        obj = fake_api.add(resource.plural, make_obj())
        secret = make_secret()

        Patcher(obj, resource).update_state_tracker(secret).patch(fake_api)

        assert [name for name, _ in fake_api.calls] == ["patch_namespaced_custom_object"]
        body = fake_api.calls[0][1]["body"]
        assert "status" not in body
        assert body["metadata"]["annotations"] == {ANNOTATION_STATE_TRACKER: compute_state_tracker(obj, secret)}
        stored = fake_api.stored(resource.plural, "default", "test-db")
        assert stored["metadata"]["annotations"][ANNOTATION_STATE_TRACKER] == compute_state_tracker(obj, secret)

    def test_status_then_object_with_refreshed_version(self, fake_api, resource):
        """Test ordering and the resourceVersion hand-off between both patches."""
        obj = fake_api.add(resource.plural, make_obj(conditions=[]))

        Patcher(obj, resource).update_status().update_state_tracker().patch(fake_api)

        assert [name for name, _ in fake_api.calls] == [
            "patch_namespaced_custom_object_status",
            "get_namespaced_custom_object",
            "patch_namespaced_custom_object",
        ]
        status_body = fake_api.calls[0][1]["body"]
        object_body = fake_api.calls[2][1]["body"]
        assert "annotations" not in status_body["metadata"]
        assert status_body["metadata"]["resourceVersion"] == "1"
        assert object_body["metadata"]["resourceVersion"] == "2"
        assert fake_api.stored(resource.plural, "default", "test-db")["metadata"]["resourceVersion"] == "3"

    def test_status_failure_skips_object(self, fake_api, resource):
        """Test that a failed status patch aborts the object patch."""
        obj = fake_api.add(resource.plural, make_obj())
        fake_api.fail["patch_namespaced_custom_object_status"] = ApiException(status=500, reason="boom")

        with pytest.raises(ApiException):
            Patcher(obj, resource).update_status().update_state_tracker().patch(fake_api)

        assert [name for name, _ in fake_api.calls] == ["patch_namespaced_custom_object_status"]

    def test_stale_version_rejected(self, fake_api, resource):
        """Test that the optimistic lock is sent."""
        obj = fake_api.add(resource.plural, make_obj(resource_version="1"))
        fake_api.stored(resource.plural, "default", "test-db")["metadata"]["resourceVersion"] = "5"

        with pytest.raises(ApiException) as exc_info:
            Patcher(obj, resource).update_status().patch(fake_api)
        assert exc_info.value.status == 409

    def test_without_optimistic_lock(self, fake_api, resource):
        """Test that no resourceVersion is sent without optimistic lock."""
        obj = fake_api.add(resource.plural, make_obj(resource_version="1"))
        fake_api.stored(resource.plural, "default", "test-db")["metadata"]["resourceVersion"] = "5"

        Patcher(obj, resource, optimistic_lock=False).update_conditions([{"type": "Ready"}]).update_state_tracker().patch(fake_api)

        names = [name for name, _ in fake_api.calls]
        assert "get_namespaced_custom_object" not in names
        assert "resourceVersion" not in fake_api.calls[0][1]["body"]["metadata"]
