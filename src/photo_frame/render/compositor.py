"""Decode photo bytes and compose display-sized frames."""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from PIL import Image, ImageDraw, ImageEnhance, ImageFilter, ImageFont, ImageOps, UnidentifiedImageError

from photo_frame.config.config import BackgroundFill
from photo_frame.errors import DecodeError
from photo_frame.metadata.exif import ExifData, extract_exif, orient_image
from photo_frame.models import Frame, PhotoRef, RawPhoto


logger = logging.getLogger(__name__)

FONT_NAME = "DejaVuSans.ttf"
MIN_FONT_SIZE = 20
FONT_SIZE_DIVISOR = 30
PADDING_DIVISOR = 72
STROKE_DIVISOR = 480

# The background is blurred at reduced resolution, then scaled back up
_BLUR_DOWNSCALE = 4

_ROTATE = {
    90: Image.Transpose.ROTATE_270,
    180: Image.Transpose.ROTATE_180,
    270: Image.Transpose.ROTATE_90,
}


@dataclass
class DecodedPhoto:
    image: Image.Image
    exif: ExifData


def decode_photo(raw: RawPhoto) -> DecodedPhoto:
    """Decode bytes to an upright RGB image plus its EXIF data."""
    try:
        with Image.open(io.BytesIO(raw.data)) as img:
            img.load()
            exif = extract_exif(img)
            upright = orient_image(img)
            rgb = upright.convert("RGB")
    except (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Cannot decode {raw.photo.filename}: {e}") from e
    return DecodedPhoto(rgb, exif)


def decode(raw: RawPhoto) -> Image.Image:
    return decode_photo(raw).image


def fit_size(image_size: tuple[int, int], target: tuple[int, int]) -> tuple[int, int]:
    """Largest size with the image's aspect ratio that fits ``target``.

    The binding dimension equals the target exactly.
    """
    iw, ih = image_size
    tw, th = target
    if tw * ih <= th * iw:
        return tw, max(1, min(th, round(ih * tw / iw)))
    return max(1, min(tw, round(iw * th / ih))), th


def caption_text(photo: PhotoRef | None, exif: ExifData | None = None) -> str:
    """Date (in the LC_TIME locale) and place of a photo, or ''."""
    taken_at: datetime | None = photo.taken_at if photo else None
    if taken_at is None and exif is not None:
        taken_at = exif.taken_at
    parts = []
    if taken_at is not None:
        parts.append(taken_at.strftime("%x"))
    if photo and photo.location and photo.location.label:
        parts.append(photo.location.label)
    return " ".join(parts)


def load_font(size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
    try:
        return ImageFont.truetype(FONT_NAME, size)
    except OSError:
        logger.debug(f"{FONT_NAME} not available, using Pillow's default font")
        return ImageFont.load_default(size=size)


class Compositor:
    """Turns decoded images into frames for one display geometry."""

    def __init__(
        self,
        display_size: tuple[int, int],
        background: BackgroundFill = BackgroundFill.BLUR,
        blur_radius: float = 40,
        darken: float = 0.7,
        show_captions: bool = False,
        rotation: int = 0,
    ):
        self.display_size = display_size
        self.rotation = rotation
        w, h = display_size
        # Compose upright, rotate to the physical panel at the end
        self.logical_size = (h, w) if rotation in (90, 270) else (w, h)
        self.background = background
        self.blur_radius = blur_radius
        self.darken = darken
        self.show_captions = show_captions
        short_side = min(self.logical_size)
        self.font_size = max(MIN_FONT_SIZE, short_side // FONT_SIZE_DIVISOR)
        self.padding = short_side // PADDING_DIVISOR
        self.stroke_width = max(1, short_side // STROKE_DIVISOR)
        self._font = None

    def composite(self, image: Image.Image, photo: PhotoRef | None = None, exif: ExifData | None = None) -> Frame:
        """Fit ``image`` on the screen, filling any leftover area."""
        target = self.logical_size
        fg_size = fit_size(image.size, target)
        foreground = image.resize(fg_size, Image.Resampling.LANCZOS)

        if fg_size == target:
            canvas = foreground
        else:
            canvas = self._background(image, target)
            offset = ((target[0] - fg_size[0]) // 2, (target[1] - fg_size[1]) // 2)
            canvas.paste(foreground, offset)
            foreground.close()

        if self.show_captions:
            text = caption_text(photo, exif)
            if text:
                self._draw_caption(canvas, text)

        return Frame(self._rotate(canvas), photo)

    def compose_raw(self, raw: RawPhoto) -> Frame:
        """Decode and composite in one go."""
        decoded = decode_photo(raw)
        try:
            return self.composite(decoded.image, raw.photo, decoded.exif)
        finally:
            decoded.image.close()

    def splash_frame(self, path: Path | None = None) -> Frame:
        """The configured splash image, or a generated loading screen."""
        if path is not None:
            try:
                with Image.open(path) as img:
                    img.load()
                    upright = orient_image(img).convert("RGB")
                return self.composite(upright)
            except (OSError, ValueError, SyntaxError) as e:
                logger.warning(f"Cannot load splash image {path}: {e}")
        return self.loading_frame()

    def loading_frame(self) -> Frame:
        canvas = Image.new("RGB", self.logical_size, "black")
        draw = ImageDraw.Draw(canvas)
        center = (self.logical_size[0] // 2, self.logical_size[1] // 2)
        draw.text(center, "Loading", font=self._get_font(), fill=(160, 160, 160), anchor="mm")
        return Frame(self._rotate(canvas))

    def _background(self, image: Image.Image, target: tuple[int, int]) -> Image.Image:
        if self.background == BackgroundFill.NONE:
            return Image.new("RGB", target, "black")
        small = (max(1, target[0] // _BLUR_DOWNSCALE), max(1, target[1] // _BLUR_DOWNSCALE))
        cover = ImageOps.fit(image, small, method=Image.Resampling.BILINEAR)
        blurred = cover.filter(ImageFilter.GaussianBlur(self.blur_radius / _BLUR_DOWNSCALE))
        darkened = ImageEnhance.Brightness(blurred).enhance(self.darken)
        return darkened.resize(target, Image.Resampling.BILINEAR)

    def _draw_caption(self, canvas: Image.Image, text: str) -> None:
        draw = ImageDraw.Draw(canvas)
        draw.text(
            (self.padding, canvas.height - self.padding),
            text,
            font=self._get_font(),
            fill="white",
            anchor="ld",
            stroke_width=self.stroke_width,
            stroke_fill="black",
        )

    def _get_font(self):
        if self._font is None:
            self._font = load_font(self.font_size)
        return self._font

    def _rotate(self, canvas: Image.Image) -> Image.Image:
        if self.rotation not in _ROTATE:
            return canvas
        rotated = canvas.transpose(_ROTATE[self.rotation])
        canvas.close()
        return rotated
