"""Pause, resume and standby signals from the environment."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable


logger = logging.getLogger(__name__)


class AmbientControl:
    """Thread-safe switches read by the slideshow engine on every tick.

    A standby request only takes effect after it has been held for
    ``standby_debounce`` seconds; ``resume`` or ``cancel_standby`` drop it.
    """

    def __init__(self, standby_debounce: float = 5.0, clock: Callable[[], float] = time.monotonic):
        self.standby_debounce = standby_debounce
        self._clock = clock
        self._lock = threading.Lock()
        self._paused = False
        self._standby_requested_at: float | None = None

    def pause(self) -> None:
        with self._lock:
            if not self._paused:
                logger.info("Slideshow paused")
            self._paused = True

    def resume(self) -> None:
        with self._lock:
            if self._paused or self._standby_requested_at is not None:
                logger.info("Slideshow resumed")
            self._paused = False
            self._standby_requested_at = None

    def toggle_pause(self) -> None:
        if self.is_paused:
            self.resume()
        else:
            self.pause()

    def request_standby(self) -> None:
        with self._lock:
            if self._standby_requested_at is None:
                self._standby_requested_at = self._clock()
                logger.debug(f"Standby requested, effective in {self.standby_debounce:g}s")

    def cancel_standby(self) -> None:
        with self._lock:
            self._standby_requested_at = None

    @property
    def is_paused(self) -> bool:
        with self._lock:
            return self._paused

    def standby_active(self, now: float | None = None) -> bool:
        with self._lock:
            if self._standby_requested_at is None:
                return False
            now = self._clock() if now is None else now
            return now - self._standby_requested_at >= self.standby_debounce

    def is_holding(self, now: float | None = None) -> bool:
        """True while the interval countdown should stay frozen."""
        return self.is_paused or self.standby_active(now)
