"""Traversal order of the album's photos."""

from __future__ import annotations

import logging
import random
from datetime import datetime

from photo_frame.config.config import OrderMode
from photo_frame.errors import EmptyAlbumError
from photo_frame.models import PhotoRef


logger = logging.getLogger(__name__)


def _date_key(indexed: tuple[int, PhotoRef]) -> tuple[bool, datetime, int]:
    index, photo = indexed
    # Undated photos go last; sorted() is stable, index keeps ties in listing order
    return (photo.taken_at is None, photo.taken_at or datetime.min, index)


def build_sequence(photos: list[PhotoRef], mode: OrderMode, rng: random.Random) -> list[PhotoRef]:
    """Return the photos in traversal order for ``mode``."""
    if mode == OrderMode.BY_NAME:
        return sorted(photos, key=lambda photo: photo.filename)
    if mode == OrderMode.RANDOM:
        shuffled = list(photos)
        rng.shuffle(shuffled)
        return shuffled
    # BY_DATE and RANDOM_START
    return [photo for _, photo in sorted(enumerate(photos), key=_date_key)]


class OrderingEngine:
    """Cyclic cursor over a fixed photo sequence.

    The sequence is built once. Only ``remove`` changes it afterwards, so it
    always holds exactly the photos still believed reachable.
    """

    def __init__(
        self,
        photos: list[PhotoRef],
        mode: OrderMode = OrderMode.BY_DATE,
        rng: random.Random | None = None,
    ):
        if not photos:
            raise EmptyAlbumError("No photos to show")
        self._rng = rng or random.Random()
        self.mode = mode
        self._sequence = build_sequence(photos, mode, self._rng)
        self._position = 0
        if mode == OrderMode.RANDOM_START:
            self._position = self._rng.randrange(len(self._sequence))
        logger.debug(f"Ordering {len(self._sequence)} photos {mode.value}, starting at {self._position}")

    @property
    def sequence(self) -> list[PhotoRef]:
        return list(self._sequence)

    @property
    def position(self) -> int:
        """Index of the photo ``advance`` returns next."""
        return self._position

    def __len__(self) -> int:
        return len(self._sequence)

    def __contains__(self, photo: PhotoRef) -> bool:
        return photo in self._sequence

    def peek(self) -> PhotoRef:
        return self._sequence[self._position]

    def advance(self) -> PhotoRef:
        """Return the next photo and move the cursor, wrapping at the end."""
        photo = self._sequence[self._position]
        self._position = (self._position + 1) % len(self._sequence)
        return photo

    def remove(self, photo: PhotoRef) -> None:
        """Drop an unreachable photo; the cursor keeps pointing at its successor."""
        try:
            index = self._sequence.index(photo)
        except ValueError:
            return
        if len(self._sequence) == 1:
            raise EmptyAlbumError("Every photo in the album failed to load")
        del self._sequence[index]
        if index < self._position:
            self._position -= 1
        self._position %= len(self._sequence)
        logger.info(f"Removed {photo.filename} from the slideshow, {len(self._sequence)} photos left")
