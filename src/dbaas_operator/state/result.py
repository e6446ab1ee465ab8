"""Result values returned by state handlers."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .states import is_transitional

# Requeue delay for states that poll an in-flight external operation
DEFAULT_REQUEUE_SECONDS = float(os.getenv("DEFAULT_REQUEUE_SECONDS", "10"))


@dataclass
class Result:
    """Outcome of one handler invocation.

    Attributes:
        next_state: State to record; empty means Initial
        message: Human readable message for the State condition
        requeue_after: Seconds until the next pass, 0 for no forced requeue
        error: Handler-reported error; the state is not advanced when set
    """

    next_state: str = ""
    message: str = ""
    requeue_after: float = 0.0
    error: Exception | None = None

    @property
    def requeue(self) -> bool:
        return self.requeue_after > 0


def _terminate(message: str) -> str:
    if message and not message.endswith("."):
        return message + "."
    return message


def advance(state: str, message: str) -> Result:
    """Advance the state machine to ``state``.

    Transitional states are requeued after the default delay so that the
    external operation is polled.
    """
    requeue_after = DEFAULT_REQUEUE_SECONDS if is_transitional(state) else 0.0
    return Result(next_state=state, message=_terminate(message), requeue_after=requeue_after)


def fail_in_place(state: str, err: Exception) -> Result:
    """Stay in ``state`` and report ``err``."""
    return Result(next_state=state, message=str(err), error=err)

