"""Synology Photos shared album client."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any

import requests

from photo_frame.config.config import OrderMode, SourceSize
from photo_frame.errors import (
    AlbumNotFoundError,
    AuthError,
    ConfigError,
    ParseError,
    PhotoNotFoundError,
    ServerError,
    TooManyItemsError,
)
from photo_frame.models import Location, PhotoRef
from photo_frame.sources import http
from photo_frame.sources.base import MAX_PHOTOS, PhotoSource


logger = logging.getLogger(__name__)

PAGE_SIZE = 500

_SHARE_LINK_RE = re.compile(r"^(https?://.+)/([^/]+)/?$")

# Synology API error codes that mean the sharing session is gone
_SESSION_ERROR_CODES = {105, 106, 107, 119}

_THUMBNAIL_SIZES = {
    SourceSize.S: "sm",
    SourceSize.M: "m",
    SourceSize.L: "xl",
}


def parse_share_link(share_link: str) -> tuple[str, str]:
    """Return the Web API URL and sharing id of an album share link."""
    match = _SHARE_LINK_RE.match(share_link)
    if not match:
        raise ConfigError(f"Invalid share link: {share_link}")
    return f"{match.group(1)}/webapi/entry.cgi", match.group(2)


class SynologySource(PhotoSource):
    """Reads a publicly shared Synology Photos album.

    The sharing session cookie lives in this instance's ``requests.Session``
    and is replaced by every ``authenticate`` call.
    """

    name = "synology"

    def __init__(
        self,
        share_link: str,
        password: str | None = None,
        source_size: SourceSize = SourceSize.L,
        order: OrderMode = OrderMode.BY_DATE,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        super().__init__()
        self.api_url, self.sharing_id = parse_share_link(share_link)
        self._password = password
        self._size = _THUMBNAIL_SIZES[source_size]
        self._sort_by = "filename" if order == OrderMode.BY_NAME else "takentime"
        self._timeout = timeout
        self._session = session if session is not None else http.new_session()

    def _login(self) -> None:
        self._session.cookies.clear()
        form = {
            "api": "SYNO.Core.Sharing.Login",
            "method": "login",
            "version": "1",
            "sharing_id": self.sharing_id,
            "password": self._password or "",
        }
        response = http.send(self._session, "POST", self.api_url, timeout=self._timeout, data=form)
        http.check_status(response, http.ALBUM)
        dto = http.parse_json(response)
        if not isinstance(dto, dict) or not dto.get("success"):
            raise AuthError(f"Invalid Synology API 'login' response code: {_error_code(dto)}")

    def _list_photos(self) -> list[PhotoRef]:
        albums = self._post("SYNO.Foto.Browse.Album", "get", {})
        if not albums:
            raise AlbumNotFoundError("Album not found")
        try:
            item_count = int(albums[0]["item_count"])
        except (KeyError, TypeError, ValueError) as e:
            raise ParseError(f"Album record without item count: {albums[0]!r}") from e
        if item_count > MAX_PHOTOS:
            raise TooManyItemsError(f"Album holds {item_count} photos, at most {MAX_PHOTOS} are supported")

        photos: list[PhotoRef] = []
        for offset in range(0, item_count, PAGE_SIZE):
            page = self._post(
                "SYNO.Foto.Browse.Item",
                "list",
                {
                    "additional": '["thumbnail","address","gps"]',
                    "offset": str(offset),
                    "limit": str(PAGE_SIZE),
                    "sort_by": self._sort_by,
                    "sort_direction": "asc",
                },
            )
            if not page:
                logger.warning(f"Album shrank while listing: expected {item_count} photos, got {len(photos)}")
                break
            photos.extend(_parse_item(item) for item in page)
        return photos

    def _fetch_bytes(self, photo: PhotoRef) -> bytes:
        params = {
            "api": "SYNO.Foto.Thumbnail",
            "method": "get",
            "version": "2",
            "_sharing_id": self.sharing_id,
            "id": photo.id,
            "cache_key": photo.fetch_key or "",
            "type": "unit",
            "size": self._size,
        }
        response = http.send(self._session, "GET", self.api_url, timeout=self._timeout, params=params)
        http.check_status(response, http.PHOTO)
        if response.headers.get("Content-Type", "").startswith("application/json"):
            # Successful status, but the body is an API error instead of an image
            try:
                dto = http.parse_json(response)
            except ParseError as e:
                raise ServerError(f"Unreadable thumbnail response for {photo.filename}: {e}") from e
            _raise_api_error(dto, "thumbnail", http.PHOTO)
            raise PhotoNotFoundError(f"No image data for {photo.filename}")
        return response.content

    def _post(self, api: str, method: str, extra: dict[str, str]) -> list[dict[str, Any]]:
        form = {"api": api, "method": method, "version": "1", **extra}
        response = http.send(
            self._session,
            "POST",
            self.api_url,
            timeout=self._timeout,
            data=form,
            headers={"X-SYNO-SHARING": self.sharing_id},
        )
        http.check_status(response, http.ALBUM)
        dto = http.parse_json(response)
        _raise_api_error(dto, method, http.ALBUM)
        try:
            return list(dto["data"]["list"])
        except (KeyError, TypeError) as e:
            raise ParseError(f"Synology API '{method}' response without data list") from e


def _error_code(dto: Any) -> Any:
    error = dto.get("error") if isinstance(dto, dict) else None
    return error.get("code") if isinstance(error, dict) else None


def _raise_api_error(dto: Any, request: str, scope: str) -> None:
    if not isinstance(dto, dict):
        message = f"Synology API '{request}' response is not an object"
        if scope == http.ALBUM:
            raise ParseError(message)
        raise ServerError(message)
    if dto.get("success"):
        return
    code = _error_code(dto)
    message = f"Invalid Synology API '{request}' response code: {code}"
    if code in _SESSION_ERROR_CODES:
        raise AuthError(message)
    if scope == http.ALBUM:
        raise AlbumNotFoundError(message)
    raise PhotoNotFoundError(message)


def _parse_item(item: dict[str, Any]) -> PhotoRef:
    try:
        additional = item.get("additional") or {}
        cache_key = additional["thumbnail"]["cache_key"]
        taken_at = None
        if item.get("time") is not None:
            # Synology stores local wall-clock time as a Unix timestamp
            taken_at = datetime.fromtimestamp(int(item["time"]), tz=timezone.utc).replace(tzinfo=None)
        address = additional.get("address") or {}
        gps = additional.get("gps") or {}
        location = None
        if address or gps:
            location = Location(
                latitude=gps.get("latitude"),
                longitude=gps.get("longitude"),
                city=address.get("city") or address.get("town") or None,
                country=address.get("country") or None,
            )
        return PhotoRef(
            id=str(item["id"]),
            filename=str(item.get("filename", "")),
            taken_at=taken_at,
            location=location,
            fetch_key=str(cache_key),
        )
    except (KeyError, TypeError, ValueError, OverflowError, AttributeError) as e:
        raise ParseError(f"Malformed Synology photo record: {item!r}") from e
