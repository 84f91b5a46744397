"""Image normalization: arbitrary upload bytes to a canonical RGB raster.

Handles format sniffing, decoding, EXIF orientation, color space conversion
and size validation. Only the first frame of multi-frame containers is used.
"""

from __future__ import annotations

import io
import logging
from typing import Protocol

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from passscan.decoding.types import Raster, UnreadableImageError

logger = logging.getLogger(__name__)

_ALPHA_MODES = frozenset({"RGBA", "LA", "PA"})
BACKGROUND = (255, 255, 255, 255)


class ImageNormalizer(Protocol):
    """Protocol for image normalization."""

    def normalize(self, image_bytes: bytes) -> Raster:
        """Decode raw image bytes into an RGB raster.

        Args:
            image_bytes: Raw file bytes (any supported format).

        Returns:
            Read-only HxWx3 RGB uint8 raster.

        Raises:
            UnreadableImageError: If the bytes are not a decodable image or
                exceed the configured pixel limit.
        """
        ...


class PillowImageNormalizer:
    """Decodes uploads with Pillow; content is sniffed, never trusted from a filename."""

    def __init__(self, max_image_pixels: int) -> None:
        self._max_image_pixels = max_image_pixels

    def normalize(self, image_bytes: bytes) -> Raster:
        if not image_bytes:
            raise UnreadableImageError("Empty upload")

        try:
            with Image.open(io.BytesIO(image_bytes)) as img:
                pixel_count = img.width * img.height
                if pixel_count > self._max_image_pixels:
                    raise UnreadableImageError(
                        f"Image has {pixel_count} pixels, limit is {self._max_image_pixels}"
                    )
                img.load()
                logger.debug("Decoded %s image %dx%d mode=%s", img.format, img.width, img.height, img.mode)
                has_alpha = img.mode in _ALPHA_MODES or "transparency" in img.info
                rgb = _flatten(ImageOps.exif_transpose(img), has_alpha)
        except UnidentifiedImageError as exc:
            raise UnreadableImageError("Unrecognized image container") from exc
        except Image.DecompressionBombError as exc:
            raise UnreadableImageError(str(exc)) from exc
        except (OSError, SyntaxError, ValueError) as exc:
            # Truncated or corrupt data surfaces from the codec as one of these.
            raise UnreadableImageError(f"Corrupt image data: {exc}") from exc

        pixels = np.ascontiguousarray(np.asarray(rgb, dtype=np.uint8))
        pixels.flags.writeable = False
        return Raster(pixels=pixels)


def _flatten(image: Image.Image, has_alpha: bool) -> Image.Image:
    """Convert to RGB, compositing any transparency onto a white page."""
    if not has_alpha:
        return image.convert(Raster.PIXEL_FORMAT)
    rgba = image.convert("RGBA")
    page = Image.new("RGBA", rgba.size, BACKGROUND)
    return Image.alpha_composite(page, rgba).convert(Raster.PIXEL_FORMAT)
