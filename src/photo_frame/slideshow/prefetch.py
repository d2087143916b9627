"""Background fetch and decode of upcoming photos."""

from __future__ import annotations

import logging
import threading
from enum import Enum

from photo_frame.models import Frame, PhotoRef, RawPhoto
from photo_frame.render.compositor import Compositor
from photo_frame.slideshow.resilience import PermanentFailure, RetryPolicy, ShutdownInterrupt
from photo_frame.sources.base import PhotoSource


logger = logging.getLogger(__name__)


class SlotState(str, Enum):
    EMPTY = "empty"
    FETCHING = "fetching"
    DECODING = "decoding"
    READY = "ready"
    DISPLAYED = "displayed"


class Slot:
    """A prefetch buffer holding at most one frame."""

    def __init__(self, name: str):
        self.name = name
        self.state = SlotState.EMPTY
        self.photo: PhotoRef | None = None
        self.frame: Frame | None = None

    @property
    def is_ready(self) -> bool:
        return self.state == SlotState.READY

    def fill(self, frame: Frame) -> None:
        self.frame = frame
        self.photo = frame.photo
        self.state = SlotState.DISPLAYED

    def clear(self) -> None:
        """Release the frame and return to EMPTY."""
        if self.frame is not None:
            self.frame.release()
        self.frame = None
        self.photo = None
        self.state = SlotState.EMPTY

    def __repr__(self) -> str:
        return f"Slot({self.name}, {self.state.value})"


class PrefetchTask(threading.Thread):
    """Fetches, decodes and composites one photo into a slot.

    Only this thread writes the slot while it runs; READY is set last, after
    the frame is in place. Outcome is one of: slot READY, ``failure`` set
    (skip the photo), ``error`` set (fatal), or neither when stopped.
    """

    def __init__(
        self,
        slot: Slot,
        photo: PhotoRef,
        source: PhotoSource,
        compositor: Compositor,
        policy: RetryPolicy,
    ):
        super().__init__(name=f"prefetch-{slot.name}", daemon=True)
        self.slot = slot
        self.photo = photo
        self._source = source
        self._compositor = compositor
        self._policy = policy
        self.done = threading.Event()
        self.failure: PermanentFailure | None = None
        self.error: BaseException | None = None
        # The slot belongs to this task from creation on
        slot.photo = photo
        slot.state = SlotState.FETCHING

    @property
    def _stopped(self) -> bool:
        return self._policy.stop_event.is_set()

    def run(self) -> None:
        slot = self.slot
        try:
            data = self._policy.call(lambda: self._source.fetch_bytes(self.photo), self.photo)
            if self._stopped:
                return
            slot.state = SlotState.DECODING
            frame = self._policy.call(lambda: self._compositor.compose_raw(RawPhoto(self.photo, data)), self.photo)
            if self._stopped:
                frame.release()
                return
            slot.frame = frame
            slot.state = SlotState.READY
            logger.debug(f"Prefetched {self.photo.filename} into {slot.name}")
        except PermanentFailure as failure:
            self.failure = failure
        except ShutdownInterrupt:
            logger.debug(f"Prefetch of {self.photo.filename} cancelled")
        except Exception as e:
            logger.error(f"Fatal error while loading {self.photo.filename}: {type(e).__name__}: {e}")
            self.error = e
        finally:
            if slot.state != SlotState.READY:
                slot.state = SlotState.EMPTY
            self.done.set()
