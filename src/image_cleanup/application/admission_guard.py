"""RunAdmissionGuard — single-slot guard so cleanup runs never overlap."""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)


class RunAdmissionGuard:
    """Allow at most one active cleanup run per owner.

    States are Idle and Active only. A rejected ``try_acquire`` is final for
    that trigger; callers skip rather than wait. The internal lock makes the
    check-and-set atomic even when triggers arrive from other threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._active = False

    @property
    def active(self) -> bool:
        """True while a run holds the slot."""
        with self._lock:
            return self._active

    def try_acquire(self) -> bool:
        """Mark a run as active. Returns False immediately if one already is."""
        with self._lock:
            if self._active:
                return False
            self._active = True
            return True

    def release(self) -> None:
        """Return to Idle. Safe to call when no run is active."""
        with self._lock:
            if not self._active:
                logger.debug("release() called on idle admission guard")
            self._active = False
