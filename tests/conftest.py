"""Shared image fixtures: synthetic boarding passes built with Pillow and OpenCV."""

from __future__ import annotations

import io
from typing import TYPE_CHECKING

import cv2
import numpy as np
import pytest
from PIL import Image

if TYPE_CHECKING:
    from collections.abc import Callable

    from numpy.typing import NDArray

PASS_WIDTH = 640
PASS_HEIGHT = 480
QR_MODULE_PX = 5
# Gap to the page's bottom-right corner; keeps the symbol clear of the default OCR region (top 160 rows).
QR_MARGIN = 10


def _encode(pixels: NDArray[np.uint8], image_format: str = "PNG") -> bytes:
    buf = io.BytesIO()
    Image.fromarray(pixels).save(buf, format=image_format)
    return buf.getvalue()


def _white(width: int, height: int) -> NDArray[np.uint8]:
    return np.full((height, width, 3), 255, dtype=np.uint8)


def _qr_symbol(payload: str) -> NDArray[np.uint8]:
    encoder = cv2.QRCodeEncoder.create()
    modules = encoder.encode(payload)
    if modules.ndim == 3:
        modules = cv2.cvtColor(modules, cv2.COLOR_BGR2GRAY)
    # Explicit quiet zone so the detector does not depend on the encoder's border.
    modules = cv2.copyMakeBorder(modules, 4, 4, 4, 4, cv2.BORDER_CONSTANT, value=255)
    scaled = cv2.resize(
        modules,
        (modules.shape[1] * QR_MODULE_PX, modules.shape[0] * QR_MODULE_PX),
        interpolation=cv2.INTER_NEAREST,
    )
    return cv2.cvtColor(scaled, cv2.COLOR_GRAY2RGB)


def _pass_with_qr(payload: str, width: int = PASS_WIDTH, height: int = PASS_HEIGHT) -> NDArray[np.uint8]:
    """White page with the symbol anchored to the bottom-right corner."""
    canvas = _white(width, height)
    symbol = _qr_symbol(payload)
    h, w = symbol.shape[:2]
    if h > height or w > width:
        raise ValueError(f"QR symbol {w}x{h} does not fit a {width}x{height} page")
    x, y = width - w - min(QR_MARGIN, width - w), height - h - min(QR_MARGIN, height - h)
    canvas[y : y + h, x : x + w] = symbol
    return canvas


@pytest.fixture()
def encode_image() -> Callable[..., bytes]:
    """Encode an RGB array into container bytes (PNG by default)."""
    return _encode


@pytest.fixture()
def white_pixels() -> Callable[[int, int], NDArray[np.uint8]]:
    return _white


@pytest.fixture()
def qr_pixels() -> Callable[..., NDArray[np.uint8]]:
    """Build a white page with a QR symbol placed outside the OCR region."""
    return _pass_with_qr


@pytest.fixture()
def blank_png() -> bytes:
    """A structurally valid but content-empty 640x480 PNG."""
    return _encode(_white(PASS_WIDTH, PASS_HEIGHT))


@pytest.fixture()
def qr_pass_png() -> bytes:
    """A 640x480 PNG with a QR code encoding 'AF1234' outside the OCR region."""
    return _encode(_pass_with_qr("AF1234"))


@pytest.fixture()
def transparent_qr_png() -> bytes:
    """The 'AF1234' page as black-on-transparent RGBA: opaque dark modules, clear background."""
    page = _pass_with_qr("AF1234")
    rgba = np.zeros((*page.shape[:2], 4), dtype=np.uint8)
    rgba[..., 3] = np.where(page[..., 0] < 128, 255, 0).astype(np.uint8)
    return _encode(rgba)
