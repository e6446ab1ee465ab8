"""Main entry point for the DBaaS Operator.

Load together with the modules registering reconcilers::

    kopf run -m dbaas_operator.main -m my_operator.handlers
"""

from __future__ import annotations

import os
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .constants import API_GROUP
from .tracing import initialize_tracing


@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
    """Configure the operator."""
    # Set up structured JSON logging
    structured_logging.setup_structured_logging()
    initialize_tracing()

    # Use annotations so kopf state never competes with the status patches
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(prefix=API_GROUP)
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage(prefix=API_GROUP)

    settings.posting.level = 0
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = 4

    # Backoff for failed API requests: 1s, 2s, 4s, 8s, 16s, 32s, 60s
    settings.networking.error_backoffs = [1, 2, 4, 8, 16, 32, 60]

    # Start metrics HTTP server with health check endpoints on port 8080
    metrics_port = int(os.getenv("METRICS_PORT", "8080"))
    health.start_server(metrics_port)
    health.mark_ready()


@kopf.on.cleanup()
def shutdown(**_: Any) -> None:
    """Stop reporting readiness while the operator shuts down."""
    health.mark_not_ready()
