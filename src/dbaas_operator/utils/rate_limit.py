"""Client-side throttling of Kubernetes API calls.

kopf runs sync handlers in a thread pool, so several reconcile passes may hit
the API server at once. Every call reserves the next free slot under a lock
and sleeps until that slot outside of it.
"""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

_F = TypeVar("_F", bound=Callable[..., Any])

_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))

_lock = threading.Lock()
_next_slot: float = 0.0


def _reserve_slot() -> float:
    """Reserve the next call slot and return the seconds to wait for it."""
    global _next_slot
    with _lock:
        now = time.time()
        slot = max(now, _next_slot)
        _next_slot = slot + 1.0 / _K8S_RATE_LIMIT_PER_SECOND
        return slot - now


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        delay = _reserve_slot()
        if delay > 0:
            time.sleep(delay)
        return func(*args, **kwargs)

    return wrapper  # type: ignore
