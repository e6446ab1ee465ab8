"""Handler contract for managed resources."""

from .base import StateHandler
from .versioned import VersionedHandler, select_version

__all__ = ["StateHandler", "VersionedHandler", "select_version"]
