"""Optical character recognition over a raster region."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import cv2
import pytesseract
from PIL import Image

from passscan.decoding.types import NoTextFoundError

if TYPE_CHECKING:
    from passscan.decoding.ocr_engine import OcrEngineConfig
    from passscan.decoding.types import Raster

logger = logging.getLogger(__name__)


class TextRecognizer(Protocol):
    """Protocol for OCR engines."""

    def recognize(self, region: Raster) -> str:
        """Extract text from a raster.

        Returns:
            Recognized text with surrounding whitespace removed; never empty.

        Raises:
            NoTextFoundError: If the engine produced nothing usable.
        """
        ...


class TesseractTextRecognizer:
    """Runs Tesseract through pytesseract, one subprocess per call (re-entrant)."""

    def __init__(self, config: OcrEngineConfig) -> None:
        self._config = config
        self._args = config.tesseract_args()

    def recognize(self, region: Raster) -> str:
        image = self._prepare(region)
        try:
            text = pytesseract.image_to_string(
                image,
                lang=self._config.language,
                config=self._args,
                timeout=self._config.timeout_s,
            )
        except pytesseract.TesseractError as exc:
            logger.warning("Tesseract rejected region %dx%d: %s", region.width, region.height, exc.message)
            raise NoTextFoundError("Tesseract failed on region") from exc
        except RuntimeError as exc:
            # pytesseract kills the subprocess and raises a bare RuntimeError on timeout.
            if "timeout" not in str(exc).lower():
                raise
            logger.warning("Tesseract timed out after %ss", self._config.timeout_s)
            raise NoTextFoundError("OCR timed out") from exc

        text = text.strip()
        if not text:
            raise NoTextFoundError("No text recognized in region")
        return text

    def _prepare(self, region: Raster) -> Image.Image:
        threshold = self._config.binarize_threshold
        if threshold is None:
            return Image.fromarray(region.pixels)
        gray = cv2.cvtColor(region.pixels, cv2.COLOR_RGB2GRAY)
        _, binary = cv2.threshold(gray, threshold, 255, cv2.THRESH_BINARY)
        return Image.fromarray(binary)
