"""Execution mode - where submitted tasks run.

Two states and one transition:

::

    BROKER ──degrade()──▶ FALLBACK      (terminal for the process)

``ModeState`` is owned by :class:`~bandmate_ingest.execution.monitor.BrokerMonitor`
and injected into the dispatcher. It is read before every submission and
written at most once. ``degrade()`` reports whether *this* call performed
the transition, so only the first connection error is logged; concurrent
callers race harmlessly to the same end state.

Recovery from FALLBACK back to BROKER requires a process restart.
"""

from __future__ import annotations

import threading
from enum import Enum


class ExecutionMode(str, Enum):
    BROKER = "broker"
    FALLBACK = "fallback"


class ModeState:
    """One-way Broker → Fallback state machine."""

    def __init__(self, initial: ExecutionMode = ExecutionMode.FALLBACK) -> None:
        self._mode = ExecutionMode(initial)
        self._reason: str | None = None
        self._lock = threading.Lock()

    @classmethod
    def for_broker(cls, broker_configured: bool) -> ModeState:
        """Initial state: BROKER when a broker is configured, else FALLBACK."""
        return cls(ExecutionMode.BROKER if broker_configured else ExecutionMode.FALLBACK)

    @property
    def mode(self) -> ExecutionMode:
        return self._mode

    @property
    def is_broker(self) -> bool:
        return self._mode is ExecutionMode.BROKER

    @property
    def is_fallback(self) -> bool:
        return self._mode is ExecutionMode.FALLBACK

    @property
    def reason(self) -> str | None:
        """Why the state degraded, if it did after start-up."""
        return self._reason

    def degrade(self, reason: str) -> bool:
        """Switch to FALLBACK.

        Returns:
            True if this call performed the transition, False if the state
            was already FALLBACK.
        """
        with self._lock:
            if self._mode is ExecutionMode.FALLBACK:
                return False
            self._mode = ExecutionMode.FALLBACK
            self._reason = reason
        return True

    def __repr__(self) -> str:
        return f"ModeState({self._mode.value})"
