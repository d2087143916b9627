"""Immich shared link client."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any

import requests

from photo_frame.errors import AlbumNotFoundError, ConfigError, ParseError
from photo_frame.models import Location, PhotoRef
from photo_frame.sources import http
from photo_frame.sources.base import PhotoSource

_SHARE_LINK_RE = re.compile(r"^(https?://.+)/share/([^/]+)/?$")


def parse_share_link(share_link: str) -> tuple[str, str]:
    """Return the API URL and shared link key of an Immich share link."""
    match = _SHARE_LINK_RE.match(share_link)
    if not match:
        raise ConfigError(f"Invalid share link: {share_link}")
    return f"{match.group(1)}/api", match.group(2)


class ImmichSource(PhotoSource):
    """Reads the album behind an Immich shared link.

    Immich needs no login for public links; ``authenticate`` resolves the
    link to its album (and picks up the token cookie of password-protected
    links into the session).
    """

    name = "immich"

    def __init__(
        self,
        share_link: str,
        password: str | None = None,
        timeout: float = 30,
        session: requests.Session | None = None,
    ):
        super().__init__()
        self.api_url, self.key = parse_share_link(share_link)
        self._password = password
        self._timeout = timeout
        self._session = session if session is not None else http.new_session()
        self._album_id: str | None = None

    def _login(self) -> None:
        self._session.cookies.clear()
        params = {"key": self.key}
        if self._password:
            params["password"] = self._password
        dto = self._get_json("shared-links/me", params)
        album = dto.get("album") if isinstance(dto, dict) else None
        if not album or "id" not in album:
            raise AlbumNotFoundError("Shared link does not point to an album")
        self._album_id = str(album["id"])

    def _list_photos(self) -> list[PhotoRef]:
        dto = self._get_json(f"albums/{self._album_id}", {"key": self.key})
        try:
            assets = dto["assets"]
        except (KeyError, TypeError) as e:
            raise ParseError("Immich album response without assets") from e
        if not isinstance(assets, list):
            raise ParseError("Immich album assets are not a list")
        return [_parse_asset(asset) for asset in assets if _is_image(asset)]

    def _fetch_bytes(self, photo: PhotoRef) -> bytes:
        response = http.send(
            self._session,
            "GET",
            f"{self.api_url}/assets/{photo.id}/thumbnail",
            timeout=self._timeout,
            params={"key": self.key, "size": "preview"},
        )
        http.check_status(response, http.PHOTO)
        return response.content

    def _get_json(self, path: str, params: dict[str, str]) -> Any:
        response = http.send(self._session, "GET", f"{self.api_url}/{path}", timeout=self._timeout, params=params)
        http.check_status(response, http.ALBUM)
        return http.parse_json(response)


def _is_image(asset: Any) -> bool:
    if not isinstance(asset, dict):
        raise ParseError(f"Malformed Immich asset record: {asset!r}")
    return asset.get("type", "IMAGE") == "IMAGE"


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


def _parse_asset(asset: dict[str, Any]) -> PhotoRef:
    try:
        exif = asset.get("exifInfo") or {}
        # localDateTime is the wall-clock time where the photo was taken
        taken_at = _parse_timestamp(asset.get("localDateTime")) or _parse_timestamp(exif.get("dateTimeOriginal"))
        location = None
        if any(exif.get(key) is not None for key in ("city", "country", "latitude", "longitude")):
            location = Location(
                latitude=exif.get("latitude"),
                longitude=exif.get("longitude"),
                city=exif.get("city"),
                country=exif.get("country"),
            )
        return PhotoRef(
            id=str(asset["id"]),
            filename=str(asset.get("originalFileName", "")),
            taken_at=taken_at,
            location=location,
        )
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ParseError(f"Malformed Immich asset record: {asset!r}") from e
