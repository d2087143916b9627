"""Common contract for all photo sources."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from photo_frame.errors import AuthError, EmptyAlbumError, TooManyItemsError
from photo_frame.models import PhotoRef


logger = logging.getLogger(__name__)

MAX_PHOTOS = 5000


class PhotoSource(ABC):
    """Lists an album and fetches photo bytes.

    Subclasses implement ``_login``, ``_list_photos`` and ``_fetch_bytes``.
    Session state (cookies, tokens, connections) belongs to the instance and
    only changes through ``authenticate``.
    """

    name = "source"

    def __init__(self) -> None:
        self._authenticated = False

    @property
    def is_authenticated(self) -> bool:
        return self._authenticated

    def authenticate(self) -> None:
        """(Re-)establish the session with the source."""
        self._authenticated = False
        self._login()
        self._authenticated = True
        logger.debug(f"{self.name}: authenticated")

    def list_photos(self) -> list[PhotoRef]:
        """Return metadata of every photo in the album, in listing order."""
        if not self._authenticated:
            self.authenticate()
        photos = self._list_photos()
        if len(photos) > MAX_PHOTOS:
            raise TooManyItemsError(
                f"Album holds {len(photos)} photos, at most {MAX_PHOTOS} are supported"
            )
        if not photos:
            raise EmptyAlbumError("Album is empty")
        logger.info(f"{self.name}: listed {len(photos)} photos")
        return photos

    def fetch_bytes(self, photo: PhotoRef) -> bytes:
        """Return the encoded bytes of ``photo``.

        An AuthError triggers one re-authentication and a single retry.
        """
        if not self._authenticated:
            self.authenticate()
        try:
            return self._fetch_bytes(photo)
        except AuthError:
            logger.info(f"{self.name}: session rejected while fetching {photo.filename}, re-authenticating")
            self.authenticate()
            return self._fetch_bytes(photo)

    def close(self) -> None:
        """Release network resources."""

    @abstractmethod
    def _login(self) -> None: ...

    @abstractmethod
    def _list_photos(self) -> list[PhotoRef]: ...

    @abstractmethod
    def _fetch_bytes(self, photo: PhotoRef) -> bytes: ...
