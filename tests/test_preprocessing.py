"""Tests for image normalization."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import numpy as np
import pytest
from PIL import Image

from passscan.decoding.preprocessing import PillowImageNormalizer
from passscan.decoding.types import Raster, UnreadableImageError

if TYPE_CHECKING:
    from collections.abc import Callable


def _save(image: Image.Image, image_format: str) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=image_format)
    return buf.getvalue()


@pytest.fixture()
def normalizer() -> PillowImageNormalizer:
    return PillowImageNormalizer(max_image_pixels=16_777_216)


class TestSupportedFormats:
    @pytest.mark.parametrize("image_format", ["PNG", "JPEG", "BMP"])
    def test_decodes_common_containers_to_rgb(self, normalizer: PillowImageNormalizer, image_format: str) -> None:
        data = _save(Image.new("RGB", (32, 16), (200, 10, 10)), image_format)

        raster = normalizer.normalize(data)

        assert (raster.width, raster.height) == (32, 16)
        assert raster.pixels.shape == (16, 32, 3)
        assert raster.pixels.dtype == np.uint8
        assert Raster.PIXEL_FORMAT == "RGB"

    @pytest.mark.parametrize("mode", ["L", "RGBA", "P", "CMYK"])
    def test_any_source_mode_becomes_three_channels(self, normalizer: PillowImageNormalizer, mode: str) -> None:
        image_format = "JPEG" if mode == "CMYK" else "PNG"
        data = _save(Image.new(mode, (8, 8)), image_format)

        raster = normalizer.normalize(data)

        assert raster.pixels.shape == (8, 8, 3)

    def test_pixel_values_survive_lossless_roundtrip(
        self, normalizer: PillowImageNormalizer, encode_image: Callable[..., bytes]
    ) -> None:
        pixels = np.zeros((4, 4, 3), dtype=np.uint8)
        pixels[1, 2] = (10, 20, 30)

        raster = normalizer.normalize(encode_image(pixels))

        assert tuple(raster.pixels[1, 2]) == (10, 20, 30)

    def test_content_is_sniffed_not_trusted(self, normalizer: PillowImageNormalizer) -> None:
        # BMP bytes decode fine regardless of any name the caller attached.
        data = _save(Image.new("RGB", (5, 5)), "BMP")
        assert normalizer.normalize(data).width == 5

    def test_exif_orientation_is_applied(self, normalizer: PillowImageNormalizer) -> None:
        image = Image.new("RGB", (40, 20))
        exif = Image.Exif()
        exif[0x0112] = 6  # rotate 90 CW on display
        buf = io.BytesIO()
        image.save(buf, format="JPEG", exif=exif.tobytes())

        raster = normalizer.normalize(buf.getvalue())

        assert (raster.width, raster.height) == (20, 40)

    def test_raster_is_read_only(self, normalizer: PillowImageNormalizer) -> None:
        raster = normalizer.normalize(_save(Image.new("RGB", (3, 3)), "PNG"))
        assert raster.pixels.flags.writeable is False
        assert raster.pixels.flags.c_contiguous is True


class TestTransparency:
    def test_transparent_background_becomes_white(self, normalizer: PillowImageNormalizer) -> None:
        image = Image.new("RGBA", (4, 4), (0, 0, 0, 0))
        image.putpixel((1, 1), (0, 0, 0, 255))

        raster = normalizer.normalize(_save(image, "PNG"))

        assert tuple(raster.pixels[0, 0]) == (255, 255, 255)
        assert tuple(raster.pixels[1, 1]) == (0, 0, 0)

    def test_half_transparent_pixels_blend_with_white(self, normalizer: PillowImageNormalizer) -> None:
        image = Image.new("LA", (2, 2), (0, 128))

        raster = normalizer.normalize(_save(image, "PNG"))

        assert 120 <= int(raster.pixels[0, 0, 0]) <= 135

    def test_palette_transparency_becomes_white(self, normalizer: PillowImageNormalizer) -> None:
        image = Image.new("P", (3, 3), 0)
        image.putpalette([0, 0, 0] * 256)
        image.info["transparency"] = 0

        raster = normalizer.normalize(_save(image, "PNG"))

        assert tuple(raster.pixels[2, 2]) == (255, 255, 255)

    def test_transparent_qr_page_keeps_its_symbol(
        self, normalizer: PillowImageNormalizer, transparent_qr_png: bytes
    ) -> None:
        raster = normalizer.normalize(transparent_qr_png)

        assert raster.pixels.shape == (480, 640, 3)
        assert int(raster.pixels[0, 0].min()) == 255
        assert int(raster.pixels.min()) == 0


class TestUnreadableInput:
    def test_empty_bytes(self, normalizer: PillowImageNormalizer) -> None:
        with pytest.raises(UnreadableImageError):
            normalizer.normalize(b"")

    def test_not_an_image(self, normalizer: PillowImageNormalizer) -> None:
        with pytest.raises(UnreadableImageError):
            normalizer.normalize(b"%PDF-1.7 definitely not a picture")

    def test_truncated_png(self, normalizer: PillowImageNormalizer) -> None:
        data = _save(Image.new("RGB", (64, 64), (1, 2, 3)), "PNG")
        with pytest.raises(UnreadableImageError):
            normalizer.normalize(data[: len(data) // 2])

    def test_pixel_limit(self) -> None:
        normalizer = PillowImageNormalizer(max_image_pixels=100)
        data = _save(Image.new("RGB", (20, 20)), "PNG")
        with pytest.raises(UnreadableImageError, match="limit"):
            normalizer.normalize(data)
