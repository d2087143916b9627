"""EXIF data extraction from decoded photos."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from PIL import Image
from PIL.ExifTags import TAGS

_ORIENTATION_TAG = 0x0112
_EXIF_IFD = 0x8769


@dataclass
class ExifData:
    """EXIF metadata relevant to captions."""

    datetime_original: datetime | None = None
    datetime_digitized: datetime | None = None

    @property
    def taken_at(self) -> datetime | None:
        return self.datetime_original or self.datetime_digitized


def extract_exif(img: Image.Image) -> ExifData:
    """Read EXIF fields from an opened image.

    Images without EXIF (PNG, GIF, ...) yield a default ExifData.
    """
    result = ExifData()
    exif_raw = img.getexif()
    if not exif_raw:
        return result

    decoded: dict[str, Any] = {TAGS.get(tag_id, str(tag_id)): value for tag_id, value in exif_raw.items()}

    # DateTimeOriginal lives in the Exif sub-IFD on most cameras
    exif_ifd = exif_raw.get_ifd(_EXIF_IFD)
    for tag_id, value in exif_ifd.items():
        decoded.setdefault(TAGS.get(tag_id, str(tag_id)), value)
    result.datetime_original = _parse_exif_datetime(decoded.get("DateTimeOriginal"))
    result.datetime_digitized = _parse_exif_datetime(decoded.get("DateTimeDigitized"))
    return result


def orient_image(img: Image.Image) -> Image.Image:
    """Apply EXIF orientation correction, returning a new or the same image."""
    exif_raw = img.getexif()
    if exif_raw:
        orientation = exif_raw.get(_ORIENTATION_TAG)
        if orientation:
            img = _apply_orientation(img, orientation)
    return img


def _apply_orientation(img: Image.Image, orientation: int) -> Image.Image:
    """Apply EXIF orientation transform to an image."""
    transforms = {
        2: (Image.Transpose.FLIP_LEFT_RIGHT,),
        3: (Image.Transpose.ROTATE_180,),
        4: (Image.Transpose.FLIP_TOP_BOTTOM,),
        5: (Image.Transpose.FLIP_LEFT_RIGHT, Image.Transpose.ROTATE_90),
        6: (Image.Transpose.ROTATE_270,),
        7: (Image.Transpose.FLIP_LEFT_RIGHT, Image.Transpose.ROTATE_270),
        8: (Image.Transpose.ROTATE_90,),
    }
    ops = transforms.get(orientation, ())
    for op in ops:
        img = img.transpose(op)
    return img


def _parse_exif_datetime(value: Any) -> datetime | None:
    """Parse EXIF datetime string (format: 'YYYY:MM:DD HH:MM:SS')."""
    if not value or not isinstance(value, str):
        return None
    formats = [
        "%Y:%m:%d %H:%M:%S",
        "%Y-%m-%d %H:%M:%S",
        "%Y:%m:%d",
        "%Y-%m-%d",
    ]
    for fmt in formats:
        try:
            return datetime.strptime(value.strip().rstrip("\x00"), fmt)
        except ValueError:
            continue
    return None

