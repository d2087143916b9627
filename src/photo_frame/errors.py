"""Error taxonomy for photo sources, decoding and configuration."""

from __future__ import annotations


class PhotoFrameError(Exception):
    """Base class for all photo frame errors."""

    exit_code = 1


class SourceConnectionError(PhotoFrameError, ConnectionError):
    """The remote endpoint could not be reached or the transfer broke off."""

    exit_code = 7


class ServerError(PhotoFrameError):
    """The remote endpoint answered with a server-side failure."""

    exit_code = 7

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class AuthError(PhotoFrameError):
    """Authentication with the photo source failed."""

    exit_code = 3


class NotFoundError(PhotoFrameError):
    """Base class for album- and photo-scoped lookups that found nothing."""

    exit_code = 4


class AlbumNotFoundError(NotFoundError):
    """The album reference does not point to an existing album."""


class EmptyAlbumError(AlbumNotFoundError):
    """The album holds no displayable photos (or none are left)."""


class PhotoNotFoundError(NotFoundError):
    """A listed photo is no longer available on the source."""


class DecodeError(PhotoFrameError):
    """Photo bytes are corrupt or in an unsupported format."""


class TooManyItemsError(PhotoFrameError):
    """The album holds more photos than a single slideshow supports."""

    exit_code = 5


class ParseError(PhotoFrameError):
    """A source response could not be parsed."""

    exit_code = 6


class ConfigError(PhotoFrameError):
    """Configuration is missing or invalid."""

    exit_code = 2
