"""Fixed region-of-interest extraction."""

from __future__ import annotations

import numpy as np

from passscan.decoding.types import Raster, RegionOutOfBoundsError, RegionRect


def extract_region(image: Raster, rect: RegionRect) -> Raster:
    """Return a copy of exactly ``rect``'s pixels from ``image``.

    Raises:
        RegionOutOfBoundsError: If ``rect`` extends past the image.
    """
    if not rect.fits(image):
        raise RegionOutOfBoundsError(rect, (image.width, image.height))

    crop = np.array(
        image.pixels[rect.y : rect.y + rect.height, rect.x : rect.x + rect.width],
        dtype=np.uint8,
        order="C",
        copy=True,
    )
    crop.flags.writeable = False
    return Raster(pixels=crop)
