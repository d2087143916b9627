"""The slideshow loop: interval timing, prefetch scheduling and transitions."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from photo_frame.display.base import Display, ShutdownRequested
from photo_frame.models import Frame
from photo_frame.render.compositor import Compositor
from photo_frame.render.transition import TransitionEngine
from photo_frame.slideshow.controller import AmbientControl
from photo_frame.slideshow.ordering import OrderingEngine
from photo_frame.slideshow.prefetch import PrefetchTask, Slot, SlotState
from photo_frame.slideshow.resilience import FailureHistory, RetryPolicy
from photo_frame.sources.base import PhotoSource


logger = logging.getLogger(__name__)


class SlideshowEngine:
    """Drives one display from the engine thread.

    Two slots rotate between *current* (on screen) and *next* (being
    prefetched). A transition starts only when the interval has run out
    and *next* is READY. The engine thread itself never touches the network.
    """

    def __init__(
        self,
        source: PhotoSource,
        ordering: OrderingEngine,
        compositor: Compositor,
        transition: TransitionEngine,
        display: Display,
        policy: RetryPolicy,
        control: AmbientControl | None = None,
        interval: float = 30.0,
        tick_interval: float = 0.033,
        shutdown_grace: float = 2.0,
        splash: Frame | None = None,
        history: FailureHistory | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], object] | None = None,
    ):
        self.source = source
        self.ordering = ordering
        self.compositor = compositor
        self.transition = transition
        self.display = display
        self.policy = policy
        self.control = control or AmbientControl(clock=clock)
        self.interval = interval
        self.tick_interval = tick_interval
        self.shutdown_grace = shutdown_grace
        self.splash = splash
        self.history = history or FailureHistory()
        self._clock = clock
        self._sleep = sleep or self.stop_event.wait

        self.current = Slot("a")
        self.next = Slot("b")
        self.task: PrefetchTask | None = None
        self._elapsed = 0.0
        self._last_tick: float | None = None
        self._standby = False
        self._started = False
        self.photos_shown = 0

    @property
    def stop_event(self) -> threading.Event:
        return self.policy.stop_event

    def start(self) -> None:
        """Take over the splash frame and begin loading the first photo.

        A ``splash`` passed in is assumed to be on screen already.
        """
        splash = self.splash
        if splash is None:
            splash = self.compositor.splash_frame()
            self.display.present(splash)
        self.current.fill(splash)
        self.transition.show(splash)
        # The first photo replaces the splash as soon as it is ready
        self._elapsed = self.interval
        self._last_tick = self._clock()
        self._schedule_next()
        self._started = True

    def step(self) -> bool:
        """Advance one tick. Returns False once shutdown was requested.

        Fatal errors from the prefetch task are raised here.
        """
        if not self._started:
            self.start()
        if self.stop_event.is_set():
            return False
        if isinstance(self.display.poll_events(), ShutdownRequested):
            logger.info("Shutdown requested by the display")
            self.stop_event.set()
            return False

        now = self._clock()
        dt = now - self._last_tick
        self._last_tick = now
        self._update_standby(now)

        if self.transition.is_active:
            self._render_transition()
            return True

        holding = self.control.is_holding(now)
        if not holding:
            self._elapsed += dt
        self._collect_task()

        if not holding and self._elapsed >= self.interval and self.next.is_ready:
            self._begin_transition()
        return True

    def run(self) -> None:
        """Tick until shutdown; fatal errors propagate after cleanup."""
        try:
            while self.step():
                self._sleep(self.tick_interval)
        finally:
            self.shutdown()

    def stop(self) -> None:
        self.stop_event.set()

    def shutdown(self) -> None:
        """Stop background work and wait for it up to the grace period."""
        self.stop_event.set()
        if self.transition.is_active:
            # Land on the incoming photo instead of a half-blended frame
            self.transition.abort()
            self.display.present(self.transition.frame)
            self._promote_next()
        task = self.task
        if task is not None and task.is_alive():
            task.join(self.shutdown_grace)
            if task.is_alive():
                logger.warning(f"Prefetch of {task.photo.filename} did not stop within {self.shutdown_grace:g}s")
        self.source.close()
        logger.info(f"Slideshow stopped after {self.photos_shown} photos, {len(self.history)} skipped")

    def _schedule_next(self) -> None:
        photo = self.ordering.advance()
        self.task = PrefetchTask(self.next, photo, self.source, self.compositor, self.policy)
        self.task.start()

    def _collect_task(self) -> None:
        task = self.task
        if task is None or not task.done.is_set():
            return
        if task.error is not None:
            raise task.error
        if task.failure is not None:
            self.task = None
            self.history.record(task.failure)
            # Raises EmptyAlbumError when nothing is left to show
            self.ordering.remove(task.photo)
            self._schedule_next()

    def _begin_transition(self) -> None:
        self.task = None
        frame = self.next.frame
        self.transition.start(frame)
        logger.info(f"Showing {frame.photo.filename}")
        self._render_transition()

    def _render_transition(self) -> None:
        image = self.transition.render()
        target = self.transition.frame
        self.display.present(Frame(image, target.photo) if image is not target.image else target)
        if not self.transition.is_active:
            self._complete_transition()

    def _complete_transition(self) -> None:
        self._promote_next()
        self._schedule_next()

    def _promote_next(self) -> None:
        # Frame objects handed to the display are released by the slot that owns them
        self.transition.pop_completed()
        self.current.clear()
        self.current, self.next = self.next, self.current
        self.current.state = SlotState.DISPLAYED
        self._elapsed = 0.0
        self.photos_shown += 1

    def _update_standby(self, now: float) -> None:
        standby = self.control.standby_active(now)
        if standby != self._standby:
            self._standby = standby
            logger.info("Entering standby" if standby else "Leaving standby")
            self.display.set_standby(standby)
