"""CancellationSignal — cooperative per-run deadline plus process shutdown."""

from __future__ import annotations

import asyncio
import time

_DEADLINE_EXCEEDED = "deadline exceeded"
_SHUTDOWN = "shutdown"


class CancellationSignal:
    """Tell a cleanup run when to stop taking on new work.

    Fires when the deadline passes, when the shared shutdown event is set, or
    when ``cancel()`` is called. Work already in flight is not interrupted;
    checkpoints consult ``cancelled`` or race against ``wait()``.
    """

    def __init__(
        self,
        timeout_seconds: float | None = None,
        shutdown: asyncio.Event | None = None,
    ) -> None:
        if timeout_seconds is not None and timeout_seconds < 0:
            raise ValueError(f"timeout_seconds must be non-negative, got {timeout_seconds}")
        self._deadline = time.monotonic() + timeout_seconds if timeout_seconds is not None else None
        self._shutdown = shutdown
        self._cancelled = asyncio.Event()
        self._reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        """Cancel explicitly. The first reason given wins."""
        if not self._cancelled.is_set():
            self._reason = reason
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        if self._shutdown is not None and self._shutdown.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def reason(self) -> str:
        """Why the signal fired, or an empty string if it has not."""
        if self._cancelled.is_set():
            return self._reason
        if self._shutdown is not None and self._shutdown.is_set():
            return _SHUTDOWN
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return _DEADLINE_EXCEEDED
        return ""

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None when there is no deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    async def wait(self) -> None:
        """Return once the signal has fired for any reason."""
        if self.cancelled:
            return

        waiters = [asyncio.ensure_future(self._cancelled.wait())]
        if self._shutdown is not None:
            waiters.append(asyncio.ensure_future(self._shutdown.wait()))
        try:
            await asyncio.wait(waiters, timeout=self.remaining(), return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()
