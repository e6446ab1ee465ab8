"""Tests for base handler functionality."""

from __future__ import annotations

import json
import logging
from unittest.mock import patch

import pytest

from dbaas_operator.handlers.base import StateHandler
from dbaas_operator.state.result import Result

from conftest import TEST_RESOURCE, RecordingHandler, make_obj


class TestStateHandler:
    """Test cases for StateHandler class."""

    def test_init(self):
        """Test handler initialization."""
        handler = RecordingHandler()
        assert handler.kind == "Database"
        assert handler.resource == TEST_RESOURCE
        assert handler.logger is not None

    def test_abstract(self):
        """Test that all state methods must be implemented."""

        class Partial(StateHandler):
            def handle_initial(self, obj):
                return Result()

        with pytest.raises(TypeError):
            Partial(TEST_RESOURCE)

    def test_lazy_api(self):
        """Test that the API client is created on first use."""

        class Handler(RecordingHandler):
            def __init__(self):
                StateHandler.__init__(self, TEST_RESOURCE)

        handler = Handler()
        with patch("dbaas_operator.handlers.base.get_k8s_client") as mock_client:
            assert handler.api is mock_client.return_value
            assert handler.api is mock_client.return_value
        mock_client.assert_called_once()

    def test_for(self):
        """Test the default watch registration."""
        resource, predicates = RecordingHandler().for_()
        assert resource == TEST_RESOURCE
        assert predicates == []

    @patch("dbaas_operator.registration.register_reconciler")
    def test_setup_with_manager(self, mock_register):
        """Test that setup registers the reconciler."""
        handler = RecordingHandler()
        reconciler = object()
        registry = object()

        handler.setup_with_manager(reconciler, registry)

        mock_register.assert_called_once_with(reconciler, registry=registry)


class TestStateHandlerLogging:
    """Test the structured logging helpers."""

    def test_log_info(self, caplog):
        """Test info logging with resource context."""
        handler = RecordingHandler()
        with caplog.at_level(logging.INFO):
            handler.log_info(make_obj(), "Database created", reason="Created", database_id="db-1")

        record = json.loads(caplog.records[-1].getMessage())
        assert caplog.records[-1].levelno == logging.INFO
        assert record["resource"] == "Database"
        assert record["name"] == "test-db"
        assert record["namespace"] == "default"
        assert record["uid"] == "uid-test-db"
        assert record["reason"] == "Created"
        assert record["database_id"] == "db-1"

    def test_log_warning(self, caplog):
        """Test warning logging."""
        handler = RecordingHandler()
        with caplog.at_level(logging.INFO):
            handler.log_warning(make_obj(), "Slow response")

        assert caplog.records[-1].levelno == logging.WARNING

    def test_log_error_sanitizes(self, caplog):
        """Test that logged errors are sanitized."""
        handler = RecordingHandler()
        with caplog.at_level(logging.INFO):
            handler.log_error(make_obj(), "Connect failed", error=RuntimeError("password: hunter2"))

        record = json.loads(caplog.records[-1].getMessage())
        assert caplog.records[-1].levelno == logging.ERROR
        assert "hunter2" not in record["error"]
        assert record["error_type"] == "RuntimeError"
