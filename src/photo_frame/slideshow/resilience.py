"""Error classification, retry with backoff, and failure history."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, TypeVar

from photo_frame.config.config import BackoffSettings
from photo_frame.errors import (
    AlbumNotFoundError,
    AuthError,
    DecodeError,
    ParseError,
    PhotoFrameError,
    PhotoNotFoundError,
    ServerError,
    SourceConnectionError,
    TooManyItemsError,
)
from photo_frame.models import PhotoRef
from photo_frame.sources.base import PhotoSource


logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_HISTORY_SIZE = 100


class Severity(str, Enum):
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    FATAL = "fatal"


class ShutdownInterrupt(Exception):
    """A retry loop was cancelled by the shutdown event."""


def classify(error: BaseException) -> Severity:
    """Map an error to how the slideshow should react to it."""
    if isinstance(error, (SourceConnectionError, ServerError)):
        return Severity.TRANSIENT
    if isinstance(error, (PhotoNotFoundError, DecodeError)):
        return Severity.PERMANENT
    if isinstance(error, (AuthError, AlbumNotFoundError, TooManyItemsError, ParseError)):
        return Severity.FATAL
    if isinstance(error, PhotoFrameError):
        return Severity.FATAL
    # Anything unexpected while handling one photo (e.g. a Pillow bug) skips it
    return Severity.PERMANENT


class PermanentFailure(PhotoFrameError):
    """A photo could not be loaded and should be skipped."""

    def __init__(self, photo: PhotoRef | None, cause: BaseException, attempts: int):
        name = photo.filename if photo else "listing"
        super().__init__(f"{name}: {type(cause).__name__}: {cause} (after {attempts} attempts)")
        self.photo = photo
        self.cause = cause
        self.attempts = attempts


@dataclass(frozen=True)
class FailureRecord:
    photo_id: str
    filename: str
    error: str
    message: str
    attempts: int
    at: datetime = field(default_factory=datetime.now)


class FailureHistory:
    """Bounded, thread-safe log of absorbed photo failures."""

    def __init__(self, maxlen: int = DEFAULT_HISTORY_SIZE):
        self._records: deque[FailureRecord] = deque(maxlen=maxlen)
        self._lock = threading.Lock()

    def record(self, failure: PermanentFailure) -> FailureRecord:
        photo = failure.photo
        entry = FailureRecord(
            photo_id=photo.id if photo else "",
            filename=photo.filename if photo else "",
            error=type(failure.cause).__name__,
            message=str(failure.cause),
            attempts=failure.attempts,
        )
        with self._lock:
            self._records.append(entry)
        logger.warning(f"Skipping {entry.filename or entry.photo_id}: {entry.error}: {entry.message} "
                       f"({entry.attempts} attempts)")
        return entry

    def records(self) -> list[FailureRecord]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


class RetryPolicy:
    """Runs a call, retrying transient errors with exponential backoff.

    Waits go through ``stop_event.wait`` so a shutdown cancels them.
    """

    def __init__(
        self,
        settings: BackoffSettings | None = None,
        stop_event: threading.Event | None = None,
        wait: Callable[[float], bool] | None = None,
    ):
        self.settings = settings or BackoffSettings()
        self.stop_event = stop_event or threading.Event()
        self._wait = wait or self.stop_event.wait

    def delay(self, attempt: int) -> float:
        """Delay after the ``attempt``-th failed attempt (1-based)."""
        s = self.settings
        return min(s.initial_delay * s.multiplier ** (attempt - 1), s.max_delay)

    def call(self, func: Callable[[], T], photo: PhotoRef | None = None) -> T:
        """Return ``func()``.

        Raises PermanentFailure for per-photo failures (including exhausted
        retries), re-raises fatal errors, and ShutdownInterrupt when stopped.
        """
        attempts = 0
        while True:
            if self.stop_event.is_set():
                raise ShutdownInterrupt()
            attempts += 1
            try:
                return func()
            except Exception as e:
                severity = classify(e)
                if severity == Severity.FATAL:
                    raise
                if severity == Severity.PERMANENT:
                    raise PermanentFailure(photo, e, attempts) from e
                if attempts >= self.settings.max_attempts:
                    raise PermanentFailure(photo, e, attempts) from e
                delay = self.delay(attempts)
                target = photo.filename if photo else "listing"
                logger.info(f"{target}: {type(e).__name__}: {e}; retry {attempts}/{self.settings.max_attempts - 1} "
                            f"in {delay:.1f}s")
                if self._wait(delay):
                    raise ShutdownInterrupt() from e


def list_with_retry(source: PhotoSource, policy: RetryPolicy) -> list[PhotoRef]:
    """List the album; exhausted transient errors are fatal here."""
    try:
        return policy.call(source.list_photos)
    except PermanentFailure as failure:
        logger.error(f"Listing the album failed: {failure}")
        raise failure.cause from None
