"""Shooting date extraction from remote file names and paths."""

from __future__ import annotations

import re
from datetime import datetime
from pathlib import PurePosixPath


def parse_datetime(remote_path: str, fallback: datetime | None = None) -> datetime | None:
    """Extract a shooting date with priority: filename > folder path > fallback.

    ``fallback`` is typically the server-side modification time.
    """
    path = PurePosixPath(remote_path)

    dt = _parse_from_filename(path.name)
    if dt:
        return dt

    dt = _parse_from_path(path)
    if dt:
        return dt

    return fallback


# Patterns ordered from most specific to least specific
_FILENAME_PATTERNS: list[str] = [
    # 2019-07-04_15-30-24 or 2019-07-04_15:30:24
    r"(\d{4})-(\d{2})-(\d{2})[_\s](\d{2})[-:](\d{2})[-:](\d{2})",
    # 20190704_153024 (common camera format, also IMG_20190704_153024)
    r"(\d{4})(\d{2})(\d{2})[_\s-](\d{2})(\d{2})(\d{2})",
    # 2019-07-04
    r"(\d{4})-(\d{2})-(\d{2})",
    # 20190704
    r"(\d{4})(\d{2})(\d{2})",
]


def _parse_from_filename(filename: str) -> datetime | None:
    """Try to extract a datetime from the filename."""
    stem = PurePosixPath(filename).stem

    for pattern in _FILENAME_PATTERNS:
        match = re.search(pattern, stem)
        if match:
            try:
                return datetime(*(int(group) for group in match.groups()))
            except ValueError:
                continue
    return None


def _parse_from_path(path: PurePosixPath) -> datetime | None:
    """Look for a 4-digit year (1900-2099) among the parent folders."""
    for part in reversed(path.parent.parts):
        match = re.match(r"^((?:19|20)\d{2})$", part)
        if match:
            return datetime(int(match.group(1)), 1, 1)
    return None


def parse_mlsd_timestamp(value: str | None) -> datetime | None:
    """Parse an FTP MLSD ``modify`` fact (YYYYMMDDHHMMSS[.sss])."""
    if not value:
        return None
    try:
        return datetime.strptime(value.split(".")[0], "%Y%m%d%H%M%S")
    except ValueError:
        return None
