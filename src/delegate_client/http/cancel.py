"""Caller-owned cancellation scope shared by every suspension point of a call."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

REASON_CANCELED = "context canceled"
REASON_DEADLINE = "context deadline exceeded"


class CancelScope:
    """Deadline plus explicit cancel flag, safe to trigger from another thread."""

    def __init__(
        self,
        *,
        timeout_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._clock = clock
        self._deadline = None if timeout_seconds is None else clock() + timeout_seconds
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []
        self._reason: str | None = None

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def canceled(self) -> bool:
        return self.reason is not None

    @property
    def reason(self) -> str | None:
        """Why the scope ended, or ``None`` while it is still live."""

        if self._event.is_set():
            return self._reason
        if self._deadline is not None and self._clock() >= self._deadline:
            return REASON_DEADLINE
        return None

    def cancel(self, reason: str = REASON_CANCELED) -> None:
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_callback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """Call ``callback`` on explicit cancel; returns a function that unregisters it.

        A scope that is already cancelled runs the callback immediately.
        Deadlines do not trigger callbacks; waiters bound themselves with
        ``remaining_seconds()`` instead.
        """

        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._discard(callback)
        callback()
        return lambda: None

    def remaining_seconds(self) -> float | None:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - self._clock())

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return True if the scope ended meanwhile."""

        remaining = self.remaining_seconds()
        timeout = seconds if remaining is None else min(seconds, remaining)
        self._event.wait(max(0.0, timeout))
        return self.canceled

    def _discard(self, callback: Callable[[], None]) -> None:
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)
