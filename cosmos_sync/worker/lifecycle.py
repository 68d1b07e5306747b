"""Single lifecycle state shared by workers and the scheduler."""

from __future__ import annotations

from enum import Enum
from threading import Lock
from typing import Iterable


class LifecycleState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class Lifecycle:
    """``idle -> running -> stopping -> stopped`` behind one mutex."""

    def __init__(self) -> None:
        self._state = LifecycleState.IDLE
        self._lock = Lock()

    @property
    def state(self) -> LifecycleState:
        with self._lock:
            return self._state

    def transition(self, allowed: Iterable[LifecycleState], target: LifecycleState) -> bool:
        """Move to ``target`` if the current state is in ``allowed``; report success."""

        with self._lock:
            if self._state not in tuple(allowed):
                return False
            self._state = target
            return True

    def force(self, target: LifecycleState) -> LifecycleState:
        """Set ``target`` unconditionally and return the previous state."""

        with self._lock:
            previous, self._state = self._state, target
            return previous


__all__ = ["Lifecycle", "LifecycleState"]
