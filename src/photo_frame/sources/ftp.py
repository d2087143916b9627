"""FTP directory source."""

from __future__ import annotations

import ftplib
import io
import logging
import threading
from pathlib import PurePosixPath
from typing import Callable
from urllib.parse import unquote, urlparse

from photo_frame.errors import (
    AlbumNotFoundError,
    AuthError,
    ConfigError,
    PhotoNotFoundError,
    ServerError,
    SourceConnectionError,
)
from photo_frame.metadata.datetime_parser import parse_datetime, parse_mlsd_timestamp
from photo_frame.models import PhotoRef
from photo_frame.sources.base import PhotoSource


logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".bmp", ".gif", ".tif", ".tiff"}

_NOT_FOUND_CODES = ("550", "553")


class FtpSource(PhotoSource):
    """Shows the images of one folder on an FTP server.

    The control connection is the session: it is opened by ``authenticate``
    and shared by listing and fetching under a lock.
    """

    name = "ftp"

    def __init__(
        self,
        url: str,
        password: str | None = None,
        timeout: float = 30,
        ftp_factory: Callable[[], ftplib.FTP] = ftplib.FTP,
    ):
        super().__init__()
        parsed = urlparse(url)
        if parsed.scheme != "ftp" or not parsed.hostname:
            raise ConfigError(f"Invalid FTP URL: {url}")
        self.host = parsed.hostname
        self.port = parsed.port or 21
        self.user = unquote(parsed.username) if parsed.username else "anonymous"
        self._password = password if password is not None else unquote(parsed.password or "")
        self.folder = unquote(parsed.path) or "/"
        self._timeout = timeout
        self._ftp_factory = ftp_factory
        self._ftp: ftplib.FTP | None = None
        self._lock = threading.Lock()

    def _login(self) -> None:
        with self._lock:
            self._disconnect()
            ftp = self._ftp_factory()
            try:
                ftp.connect(self.host, self.port, timeout=self._timeout)
                ftp.login(self.user, self._password)
            except ftplib.error_perm as e:
                ftp.close()
                if str(e).startswith("530"):
                    raise AuthError(f"FTP login rejected for {self.user}@{self.host}: {e}") from e
                raise ServerError(f"FTP login failed: {e}") from e
            except (OSError, EOFError, ftplib.Error) as e:
                ftp.close()
                raise SourceConnectionError(f"Cannot connect to ftp://{self.host}:{self.port}: {e}") from e
            self._ftp = ftp

    def _list_photos(self) -> list[PhotoRef]:
        with self._lock:
            entries = self._call(self._list_entries, scope="album")
        photos = []
        for name, modify in sorted(entries):
            if PurePosixPath(name).suffix.lower() not in SUPPORTED_EXTENSIONS:
                continue
            path = str(PurePosixPath(self.folder) / name)
            photos.append(
                PhotoRef(
                    id=path,
                    filename=name,
                    taken_at=parse_datetime(path, fallback=parse_mlsd_timestamp(modify)),
                )
            )
        return photos

    def _fetch_bytes(self, photo: PhotoRef) -> bytes:
        buffer = io.BytesIO()
        with self._lock:
            self._call(self._ftp_or_raise().retrbinary, f"RETR {photo.id}", buffer.write, scope="photo")
        return buffer.getvalue()

    def close(self) -> None:
        with self._lock:
            self._disconnect()

    def _list_entries(self) -> list[tuple[str, str | None]]:
        ftp = self._ftp_or_raise()
        try:
            return [
                (name, facts.get("modify"))
                for name, facts in ftp.mlsd(self.folder, facts=["type", "modify"])
                if facts.get("type") == "file"
            ]
        except ftplib.error_perm as e:
            if not str(e).startswith(("500", "502")):
                raise
        logger.debug(f"{self.host} does not support MLSD, falling back to NLST")
        return [(PurePosixPath(name).name, None) for name in ftp.nlst(self.folder)]

    def _ftp_or_raise(self) -> ftplib.FTP:
        if self._ftp is None:
            self._authenticated = False
            raise SourceConnectionError("FTP connection is closed")
        return self._ftp

    def _call(self, func, *args, scope: str):
        """Run an FTP command, translating ftplib errors."""
        try:
            return func(*args)
        except ftplib.error_perm as e:
            reply = str(e)
            if reply.startswith("530"):
                raise AuthError(f"FTP session rejected: {reply}") from e
            if reply.startswith(_NOT_FOUND_CODES):
                if scope == "album":
                    raise AlbumNotFoundError(f"FTP folder {self.folder} not found: {reply}") from e
                raise PhotoNotFoundError(f"FTP file not found: {reply}") from e
            raise ServerError(f"FTP command failed: {reply}") from e
        except ftplib.error_temp as e:
            reply = str(e)
            if reply.startswith("421"):
                self._drop_connection()
                raise SourceConnectionError(f"FTP server closed the connection: {reply}") from e
            raise ServerError(f"FTP server busy: {reply}") from e
        except (ftplib.error_reply, ftplib.error_proto) as e:
            raise ServerError(f"Unexpected FTP reply: {e}") from e
        except (OSError, EOFError) as e:
            self._drop_connection()
            raise SourceConnectionError(f"FTP connection lost: {e}") from e

    def _drop_connection(self) -> None:
        # Next call reconnects through authenticate()
        if self._ftp is not None:
            self._ftp.close()
        self._ftp = None
        self._authenticated = False

    def _disconnect(self) -> None:
        if self._ftp is None:
            return
        try:
            self._ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            self._ftp.close()
        self._ftp = None
