"""Core records passed between sources, the scheduler and the renderer."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from PIL import Image


@dataclass(frozen=True)
class Location:
    """Where a photo was taken. Any part may be unknown."""

    latitude: float | None = None
    longitude: float | None = None
    city: str | None = None
    country: str | None = None

    @property
    def label(self) -> str:
        """Human readable place name, e.g. 'Kraków, Poland'."""
        return ", ".join(part for part in (self.city, self.country) if part)


@dataclass(frozen=True)
class PhotoRef:
    """Immutable reference to one photo of an album. Identity is ``id``."""

    id: str
    filename: str = field(compare=False)
    taken_at: datetime | None = field(default=None, compare=False)
    location: Location | None = field(default=None, compare=False)
    # Backend-private token needed to fetch the bytes (e.g. a thumbnail cache key)
    fetch_key: str | None = field(default=None, compare=False, repr=False)


@dataclass
class RawPhoto:
    """Encoded photo bytes, owned by the task that fetched them."""

    photo: PhotoRef
    data: bytes


@dataclass
class Frame:
    """A display-ready RGB pixel buffer."""

    image: Image.Image
    photo: PhotoRef | None = None

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def size(self) -> tuple[int, int]:
        return self.image.size

    def release(self) -> None:
        """Free the pixel buffer."""
        self.image.close()
