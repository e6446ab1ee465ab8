"""Base handler class with common functionality for all state handlers."""

from __future__ import annotations

import abc
import logging
from typing import TYPE_CHECKING, Any, Callable

from ..constants import CONTROLLER_NAME
from ..logging import log_resource_event
from ..resources import ResourceKind, get_metadata
from ..state.result import Result
from ..utils.errors import sanitize_exception
from ..utils.kube import get_k8s_client

if TYPE_CHECKING:
    from ..state.reconciler import Reconciler


class StateHandler(abc.ABC):
    """Base class for resource specific lifecycle logic.

    Subclasses implement one method per lifecycle state. Each method receives
    the live resource as a dict and returns a :class:`Result` naming the next
    state. A method may also raise; the reconciler then keeps the current
    state and reports the error in the Ready condition.
    """

    def __init__(self, resource: ResourceKind, api: Any = None):
        """Initialize base handler.

        Args:
            resource: The custom resource this handler manages
            api: Kubernetes CustomObjectsApi instance; created on first use if omitted
        """
        self.resource = resource
        self.kind = resource.kind
        self.logger = logging.getLogger(__name__)
        self._api = api

    @property
    def api(self) -> Any:
        if self._api is None:
            self._api = get_k8s_client()
        return self._api

    def _get_resource_context(self, obj: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from a resource body.

        Args:
            obj: Kubernetes resource

        Returns:
            Dictionary with resource context fields
        """
        meta = get_metadata(obj)
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def _log(self, level: int, obj: dict[str, Any], message: str, event: str, reason: str, **kwargs: Any) -> None:
        ctx = self._get_resource_context(obj)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )

    def log_info(
        self,
        obj: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message.

        Args:
            obj: Kubernetes resource
            message: Log message
            event: Event type (default: "info")
            reason: Reason for the event (default: "Info")
            **kwargs: Additional fields to include in the log
        """
        self._log(logging.INFO, obj, message, event, reason, **kwargs)

    def log_warning(
        self,
        obj: dict[str, Any],
        message: str,
        event: str = "warning",
        reason: str = "Warning",
        **kwargs: Any,
    ) -> None:
        """Log a warning-level structured log message."""
        self._log(logging.WARNING, obj, message, event, reason, **kwargs)

    def log_error(
        self,
        obj: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            obj: Kubernetes resource
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        log_data = kwargs.copy()

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__

        self._log(logging.ERROR, obj, message, event, reason, **log_data)

    def for_(self) -> tuple[ResourceKind, list[Callable[..., bool]]]:
        """Return the watched resource and the event filters applied to it.

        Filters are called with the kopf handler keyword arguments (``body``,
        ``meta``, ``spec``, ...) and must all return True for an event to be
        reconciled.
        """
        return self.resource, []

    def setup_with_manager(self, reconciler: Reconciler, registry: Any = None) -> None:
        """Wire ``reconciler`` into kopf.

        Override to add dependent watches, e.g. with
        :func:`dbaas_operator.registration.watch_dependents`.
        """
        from ..registration import register_reconciler

        register_reconciler(reconciler, registry=registry)

    @abc.abstractmethod
    def handle_initial(self, obj: dict[str, Any]) -> Result:
        """Start creating the external resource."""

    @abc.abstractmethod
    def handle_import_requested(self, obj: dict[str, Any]) -> Result:
        """Adopt an existing external resource named by ``external-*`` annotations."""

    @abc.abstractmethod
    def handle_imported(self, obj: dict[str, Any]) -> Result:
        """Keep an imported resource in sync."""

    @abc.abstractmethod
    def handle_creating(self, obj: dict[str, Any]) -> Result:
        """Poll an in-flight creation."""

    @abc.abstractmethod
    def handle_created(self, obj: dict[str, Any]) -> Result:
        """Keep a created resource in sync."""

    @abc.abstractmethod
    def handle_updating(self, obj: dict[str, Any]) -> Result:
        """Poll an in-flight update."""

    @abc.abstractmethod
    def handle_updated(self, obj: dict[str, Any]) -> Result:
        """Keep an updated resource in sync."""

    @abc.abstractmethod
    def handle_deletion_requested(self, obj: dict[str, Any]) -> Result:
        """Start deleting the external resource."""

    @abc.abstractmethod
    def handle_deleting(self, obj: dict[str, Any]) -> Result:
        """Poll an in-flight deletion; return Deleted once it is gone."""
