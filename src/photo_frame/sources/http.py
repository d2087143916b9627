"""HTTP request helpers shared by the web photo services."""

from __future__ import annotations

from typing import Any

import requests

from photo_frame import __version__
from photo_frame.errors import (
    AlbumNotFoundError,
    AuthError,
    ParseError,
    PhotoNotFoundError,
    ServerError,
    SourceConnectionError,
)

ALBUM = "album"
PHOTO = "photo"


def new_session() -> requests.Session:
    session = requests.Session()
    session.headers["User-Agent"] = f"photo-frame/{__version__}"
    return session


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float,
    **kwargs: Any,
) -> requests.Response:
    """Send a request, mapping transport failures to SourceConnectionError."""
    try:
        return session.request(method, url, timeout=timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        raise SourceConnectionError(f"{method} {url} failed: {e}") from e


def check_status(response: requests.Response, scope: str) -> None:
    """Raise the error matching an unsuccessful HTTP status."""
    status = response.status_code
    if 200 <= status < 300:
        return
    if status in (401, 403):
        raise AuthError(f"Access denied (HTTP {status})")
    if status in (404, 410):
        if scope == ALBUM:
            raise AlbumNotFoundError(f"Album not found (HTTP {status})")
        raise PhotoNotFoundError(f"Photo not found (HTTP {status})")
    raise ServerError(f"Unexpected HTTP response code: {status}", status=status)


def parse_json(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError as e:
        raise ParseError(f"Response from {response.url} is not valid JSON: {e}") from e
