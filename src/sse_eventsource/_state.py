from __future__ import annotations

import threading
from enum import Enum


class ConnectionState(str, Enum):
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSED = "closed"


class AtomicState:
    """
    Holds a ConnectionState behind a lock.

    CONNECTING <-> OPEN transitions use compare_and_set(). Moving to CLOSED is
    the only unconditional set(); CLOSED is terminal, so it never loses a race.
    """

    __slots__ = ("_lock", "_value")

    def __init__(self, initial: ConnectionState = ConnectionState.CONNECTING) -> None:
        self._lock = threading.Lock()
        self._value = initial

    def get(self) -> ConnectionState:
        with self._lock:
            return self._value

    def set(self, value: ConnectionState) -> None:
        with self._lock:
            self._value = value

    def compare_and_set(self, expected: ConnectionState, value: ConnectionState) -> bool:
        """Swap to ``value`` only if the current state is ``expected``."""
        with self._lock:
            if self._value is not expected:
                return False
            self._value = value
            return True
