"""Pick and build the photo source for an endpoint."""

from __future__ import annotations

import logging
import re

import requests

from photo_frame.config.config import Backend, FrameSettings
from photo_frame.errors import ConfigError
from photo_frame.sources.base import PhotoSource
from photo_frame.sources.ftp import FtpSource
from photo_frame.sources.immich import ImmichSource
from photo_frame.sources.synology import SynologySource


logger = logging.getLogger(__name__)

_SYNOLOGY_RE = re.compile(r"^https?://.+/\w{2}/sharing/[^/]+/?$")
_IMMICH_RE = re.compile(r"^https?://.+/share/[^/]+/?$")


def detect_backend(url: str) -> Backend:
    """Infer the backend from the shape of an endpoint URL."""
    if url.lower().startswith("ftp://"):
        return Backend.FTP
    if _SYNOLOGY_RE.match(url):
        return Backend.SYNOLOGY
    if _IMMICH_RE.match(url):
        return Backend.IMMICH
    raise ConfigError(f"Unrecognized album link: {url}")


def create_source(settings: FrameSettings, session: requests.Session | None = None) -> PhotoSource:
    backend = settings.backend
    if backend == Backend.AUTO:
        backend = detect_backend(settings.endpoint)
    logger.info(f"Using {backend.value} source for {settings.endpoint}")

    if backend == Backend.SYNOLOGY:
        return SynologySource(
            settings.endpoint,
            password=settings.password,
            source_size=settings.source_size,
            order=settings.order,
            timeout=settings.timeout_seconds,
            session=session,
        )
    if backend == Backend.IMMICH:
        return ImmichSource(
            settings.endpoint,
            password=settings.password,
            timeout=settings.timeout_seconds,
            session=session,
        )
    return FtpSource(settings.endpoint, password=settings.password, timeout=settings.timeout_seconds)
