"""Barcode / QR symbol decoding over a full raster."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import cv2

from passscan.decoding.types import NoSymbolFoundError

if TYPE_CHECKING:
    import numpy as np
    from numpy.typing import NDArray

    from passscan.decoding.types import Raster

logger = logging.getLogger(__name__)


class SymbolDecoder(Protocol):
    """Protocol for 1D/2D symbol decoders."""

    def decode(self, image: Raster) -> str:
        """Find a symbol anywhere in the image and return its payload verbatim.

        Raises:
            NoSymbolFoundError: If no symbol is detected or it cannot be decoded.
        """
        ...


class OpenCvSymbolDecoder:
    """Tries OpenCV's QR detector, then its 1D barcode detector.

    Detector objects hold scratch state, so a fresh pair is built per call.
    """

    def decode(self, image: Raster) -> str:
        bgr = cv2.cvtColor(image.pixels, cv2.COLOR_RGB2BGR)

        for name, detector in (
            ("qr", cv2.QRCodeDetector()),
            ("barcode", cv2.barcode.BarcodeDetector()),
        ):
            payload = self._try_detector(name, detector, bgr)
            if payload:
                logger.debug("Decoded %s symbol (%d chars)", name, len(payload))
                return payload

        raise NoSymbolFoundError("No decodable symbol in image")

    @staticmethod
    def _try_detector(name: str, detector: cv2.GraphicalCodeDetector, bgr: NDArray[np.uint8]) -> str:
        try:
            payload, _points, _straight = detector.detectAndDecode(bgr)
        except cv2.error as exc:
            logger.warning("OpenCV %s detector failed: %s", name, exc)
            return ""
        return payload or ""
