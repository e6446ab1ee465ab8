"""Tests for structured logging, correlation IDs and tracing helpers."""

import json
import logging

from dbaas_operator.logging import log_resource_event, sanitize_secrets
from dbaas_operator.tracing import trace_span
from dbaas_operator.utils.context import get_context_dict, get_correlation_id, with_correlation_id


class TestStructuredLogging:
    """Test cases for log_resource_event."""

    def test_log_resource_event(self, caplog):
        """Test that events are logged as JSON with resource context."""
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger,
                controller="dbaas-operator",
                resource_kind="Database",
                resource_name="test-db",
                namespace="default",
                uid="uid-test-db",
                event="reconcile",
                reason="ReconcileStarted",
                message="Reconciling",
                state="Creating",
            )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["resource"] == "Database"
        assert record["name"] == "test-db"
        assert record["reason"] == "ReconcileStarted"
        assert record["state"] == "Creating"
        assert "correlation_id" not in record

    def test_log_includes_correlation_id(self, caplog):
        """Test that the active correlation ID is attached."""
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"), with_correlation_id("abc123"):
            log_resource_event(logger, "dbaas-operator", "Database", "test-db", "default", "uid", "reconcile", "R", "m")

        assert json.loads(caplog.records[-1].getMessage())["correlation_id"] == "abc123"

    def test_log_redacts_secrets(self, caplog):
        """Test that secret fields never reach the log."""
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger, "dbaas-operator", "Database", "test-db", "default", "uid", "reconcile", "R", "m", password="hunter2"
            )

        message = caplog.records[-1].getMessage()
        assert "hunter2" not in message
        assert json.loads(message)["password"] == "***REDACTED***"

    def test_sanitize_secrets(self):
        """Test that sanitize_secrets leaves the input untouched."""
        data = {"token": "t", "name": "n"}
        sanitized = sanitize_secrets(data)
        assert sanitized == {"token": "***REDACTED***", "name": "n"}
        assert data["token"] == "t"


class TestCorrelationId:
    """Test cases for correlation ID propagation."""

    def test_generated_and_reset(self):
        """Test that a generated ID is visible only inside the block."""
        assert get_correlation_id() is None
        with with_correlation_id() as corr_id:
            assert len(corr_id) == 16
            assert get_correlation_id() == corr_id
            assert get_context_dict({"extra": 1}) == {"correlation_id": corr_id, "extra": 1}
        assert get_correlation_id() is None
        assert get_context_dict() == {}

    def test_nested(self):
        """Test that nested blocks restore the outer ID."""
        with with_correlation_id("outer"):
            with with_correlation_id("inner"):
                assert get_correlation_id() == "inner"
            assert get_correlation_id() == "outer"


class TestTracing:
    """Test cases for trace_span without a configured tracer."""

    def test_trace_span_without_tracer(self):
        """Test that spans are no-ops when tracing is disabled."""
        with trace_span("reconcile", kind="Database", attributes={"name": "test-db"}) as span:
            assert span is None


class TestNestedRedaction:
    """Test cases for nested extra fields."""

    def test_nested_extra_is_sanitized(self, caplog):
        """Test that secrets inside nested extras are redacted."""
        logger = logging.getLogger("test.structured")
        with caplog.at_level(logging.INFO, logger="test.structured"):
            log_resource_event(
                logger, "dbaas-operator", "Database", "test-db", "default", "uid", "reconcile", "R", "m",
                details={"connectionString": "mongodb://u:p@h", "tier": "M10"},
            )

        record = json.loads(caplog.records[-1].getMessage())
        assert record["details"] == {"connectionString": "[REDACTED]", "tier": "M10"}
