"""Data model and error taxonomy for boarding-pass decoding."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class Raster:
    """A decoded image: HxWx3 RGB uint8, C-contiguous, read-only."""

    PIXEL_FORMAT: ClassVar[str] = "RGB"

    pixels: NDArray[np.uint8]

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(frozen=True)
class RegionRect:
    """Fixed rectangle in pixel coordinates of a normalized raster."""

    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if min(self.x, self.y, self.width, self.height) < 0:
            raise ValueError(f"Region coordinates must be non-negative: {self}")
        if self.width == 0 or self.height == 0:
            raise ValueError(f"Region must have a positive size: {self}")

    def fits(self, image: Raster) -> bool:
        return self.x + self.width <= image.width and self.y + self.height <= image.height


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------


class DecodeSource(StrEnum):
    OCR = "ocr"
    SYMBOL = "symbol"


class DecodeErrorKind(StrEnum):
    UNREADABLE_IMAGE = "unreadable_image"
    REGION_OUT_OF_BOUNDS = "region_out_of_bounds"
    NO_TEXT_FOUND = "no_text_found"
    NO_SYMBOL_FOUND = "no_symbol_found"
    NO_CODE_FOUND = "no_code_found"


@dataclass(frozen=True)
class DecodedCode:
    """A candidate flight-identifying token and the strategy that produced it."""

    value: str
    source: DecodeSource

    def __post_init__(self) -> None:
        if not self.value:
            raise ValueError("Decoded code must be non-empty")


@dataclass(frozen=True)
class DecodeSuccess:
    code: DecodedCode

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class DecodeFailure:
    kind: DecodeErrorKind

    @property
    def ok(self) -> bool:
        return False


DecodeOutcome = DecodeSuccess | DecodeFailure


# ---------------------------------------------------------------------------
# Errors raised by pipeline components
# ---------------------------------------------------------------------------


class DecodeError(Exception):
    """Base class for expected decoding failures."""

    kind: ClassVar[DecodeErrorKind]


class UnreadableImageError(DecodeError):
    kind = DecodeErrorKind.UNREADABLE_IMAGE


class RegionOutOfBoundsError(DecodeError):
    kind = DecodeErrorKind.REGION_OUT_OF_BOUNDS

    def __init__(self, rect: RegionRect, image_size: tuple[int, int]) -> None:
        self.rect = rect
        self.image_size = image_size
        width, height = image_size
        super().__init__(f"Region {rect} exceeds image bounds {width}x{height}")


class NoTextFoundError(DecodeError):
    kind = DecodeErrorKind.NO_TEXT_FOUND


class NoSymbolFoundError(DecodeError):
    kind = DecodeErrorKind.NO_SYMBOL_FOUND
