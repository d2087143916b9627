"""Animated handoff between two frames."""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable

from PIL import Image

from photo_frame.config.config import SlideDirection, TransitionKind
from photo_frame.models import Frame


logger = logging.getLogger(__name__)


class TransitionState(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"


class TransitionEngine:
    """Time-based state machine: Idle(frame) -> Active -> Idle(new frame).

    Progress depends only on elapsed wall-clock time, never on how often
    ``render`` is called.
    """

    def __init__(
        self,
        kind: TransitionKind = TransitionKind.FADE,
        duration: float = 1.0,
        direction: SlideDirection = SlideDirection.LEFT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.kind = kind
        self.duration = duration
        self.direction = direction
        self._clock = clock
        self.state = TransitionState.IDLE
        self.frame: Frame | None = None
        self._old: Frame | None = None
        self._started_at = 0.0
        self._completed: Frame | None = None
        self._black: Image.Image | None = None

    @property
    def is_active(self) -> bool:
        return self.state == TransitionState.ACTIVE

    def show(self, frame: Frame) -> None:
        """Display ``frame`` without animation (initial state)."""
        self.frame = frame
        self.state = TransitionState.IDLE

    def start(self, new: Frame) -> None:
        """Begin animating from the current frame to ``new``."""
        if self.is_active:
            self.abort()
        self._old = self.frame
        self.frame = new
        self._started_at = self._clock()
        if self._old is None or self.kind == TransitionKind.NONE or self.duration <= 0:
            self._finish()
            return
        self.state = TransitionState.ACTIVE
        logger.debug(f"Transition {self.kind.value} to {new.photo.filename if new.photo else 'splash'}")

    def progress(self) -> float:
        if not self.is_active:
            return 1.0
        elapsed = self._clock() - self._started_at
        return min(max(elapsed / self.duration, 0.0), 1.0)

    def render(self) -> Image.Image:
        """Image to present now. Completes the transition at progress 1."""
        if not self.is_active:
            return self.frame.image
        p = self.progress()
        if p >= 1.0:
            self._finish()
            return self.frame.image
        return self.blend(self._old.image, self.frame.image, p)

    def abort(self) -> None:
        """Jump straight to Idle(new frame)."""
        if self.is_active:
            self._finish()

    def pop_completed(self) -> Frame | None:
        """The frame left behind by the last finished transition, once."""
        frame, self._completed = self._completed, None
        return frame

    def blend(self, old: Image.Image, new: Image.Image, p: float) -> Image.Image:
        if p <= 0.0:
            return old
        if p >= 1.0:
            return new
        if self.kind == TransitionKind.FADE:
            return Image.blend(old, new, p)
        if self.kind == TransitionKind.SLIDE:
            return self._slide(old, new, p)
        if self.kind == TransitionKind.FADE_TO_BLACK:
            black = self._black_like(old)
            if p < 0.5:
                return Image.blend(old, black, p * 2)
            return Image.blend(black, new, (p - 0.5) * 2)
        return new

    def _slide(self, old: Image.Image, new: Image.Image, p: float) -> Image.Image:
        w, h = old.size
        canvas = Image.new("RGB", (w, h))
        if self.direction in (SlideDirection.LEFT, SlideDirection.RIGHT):
            offset = round(w * p)
            if self.direction == SlideDirection.LEFT:
                canvas.paste(old, (-offset, 0))
                canvas.paste(new, (w - offset, 0))
            else:
                canvas.paste(old, (offset, 0))
                canvas.paste(new, (offset - w, 0))
        else:
            offset = round(h * p)
            if self.direction == SlideDirection.UP:
                canvas.paste(old, (0, -offset))
                canvas.paste(new, (0, h - offset))
            else:
                canvas.paste(old, (0, offset))
                canvas.paste(new, (0, offset - h))
        return canvas

    def _black_like(self, image: Image.Image) -> Image.Image:
        if self._black is None or self._black.size != image.size:
            self._black = Image.new("RGB", image.size)
        return self._black

    def _finish(self) -> None:
        if self._old is not None and self._old is not self.frame:
            self._completed = self._old
        self._old = None
        self.state = TransitionState.IDLE
