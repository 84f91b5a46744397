"""Boarding-pass decoding pipeline.

Normalizes an upload once, then tries both recovery strategies on it:

    bytes -> ImageNormalizer -> Raster -+-> SymbolDecoder (full image)
                                        +-> RegionExtractor -> TextRecognizer

A symbol payload wins over OCR text because it is structured and low-noise;
OCR text is used only when no symbol was found. The pipeline keeps no state
between calls.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from PIL import Image

from passscan.decoding.region import extract_region
from passscan.decoding.types import (
    DecodedCode,
    DecodeError,
    DecodeErrorKind,
    DecodeFailure,
    DecodeOutcome,
    DecodeSource,
    DecodeSuccess,
    NoTextFoundError,
    UnreadableImageError,
)

if TYPE_CHECKING:
    from passscan.decoding.preprocessing import ImageNormalizer
    from passscan.decoding.symbol_decoder import SymbolDecoder
    from passscan.decoding.text_recognizer import TextRecognizer
    from passscan.decoding.types import Raster, RegionRect
    from passscan.store.sink import ContentSink

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_EXTENSION = ".png"


@dataclass(frozen=True)
class ArchiveRequest:
    """Ask the pipeline to persist the normalized raster for a flight."""

    flight_number: str
    original_filename: str | None = None


@dataclass(frozen=True)
class ArchivedDecode:
    outcome: DecodeOutcome
    uri: str | None


def archive_filename(flight_number: str, original_filename: str | None) -> str:
    """Build ``<flight_number><ext>``, where ext comes from the upload name or defaults to .png.

    Only the last path component of the upload name counts; clients may send
    either separator.
    """
    basename = PurePosixPath((original_filename or "").replace("\\", "/")).name
    dot = basename.rfind(".")
    if 0 <= dot < len(basename) - 1:
        return flight_number + basename[dot:]
    return flight_number + DEFAULT_ARCHIVE_EXTENSION


class BoardingPassPipeline:
    """Recovers a flight-identifying code from an uploaded boarding-pass image."""

    def __init__(
        self,
        normalizer: ImageNormalizer,
        recognizer: TextRecognizer,
        symbol_decoder: SymbolDecoder,
        roi: RegionRect,
        *,
        sink: ContentSink | None = None,
        code_pattern: str | None = None,
    ) -> None:
        self._normalizer = normalizer
        self._recognizer = recognizer
        self._symbol_decoder = symbol_decoder
        self._roi = roi
        self._sink = sink
        self._code_pattern = re.compile(code_pattern) if code_pattern else None

    # -- Public API ---------------------------------------------------------

    def decode(self, data: bytes) -> DecodeOutcome:
        """Decode raw upload bytes into a code or a typed failure."""
        outcome, _raster = self._run(data)
        return outcome

    def decode_and_archive(self, data: bytes, request: ArchiveRequest) -> ArchivedDecode:
        """Decode, then store the normalized raster; storage never alters the outcome."""
        outcome, raster = self._run(data)
        if raster is None:
            return ArchivedDecode(outcome=outcome, uri=None)
        return ArchivedDecode(outcome=outcome, uri=self._archive(raster, request))

    # -- Internal -----------------------------------------------------------

    def _run(self, data: bytes) -> tuple[DecodeOutcome, Raster | None]:
        try:
            raster = self._normalizer.normalize(data)
        except UnreadableImageError as exc:
            logger.info("Rejected upload (%d bytes): %s", len(data), exc)
            return DecodeFailure(DecodeErrorKind.UNREADABLE_IMAGE), None

        symbol = self._try_symbol(raster)
        text = self._try_text(raster)

        if symbol is not None:
            return DecodeSuccess(DecodedCode(symbol, DecodeSource.SYMBOL)), raster
        if text is not None:
            return DecodeSuccess(DecodedCode(text, DecodeSource.OCR)), raster
        return DecodeFailure(DecodeErrorKind.NO_CODE_FOUND), raster

    def _try_symbol(self, raster: Raster) -> str | None:
        try:
            return self._symbol_decoder.decode(raster)
        except DecodeError as exc:
            logger.debug("Symbol branch: %s (%s)", exc.kind, exc)
            return None

    def _try_text(self, raster: Raster) -> str | None:
        try:
            region = extract_region(raster, self._roi)
            return self._match_code(self._recognizer.recognize(region))
        except DecodeError as exc:
            logger.debug("OCR branch: %s (%s)", exc.kind, exc)
            return None

    def _match_code(self, text: str) -> str:
        if self._code_pattern is None:
            return text
        match = self._code_pattern.search(text)
        if match is None or not match.group(0):
            raise NoTextFoundError(f"OCR text does not look like a flight code: {text!r}")
        return match.group(0)

    def _archive(self, raster: Raster, request: ArchiveRequest) -> str | None:
        name = archive_filename(request.flight_number, request.original_filename)
        if self._sink is None:
            logger.warning("No content sink configured; not archiving %s", name)
            return None
        try:
            return self._sink.store(name, _encode(raster, name))
        except (OSError, ValueError):
            logger.exception("Failed to archive boarding pass %s", name)
            return None


def _encode(raster: Raster, name: str) -> bytes:
    extension = name[name.rfind(".") :].lower()
    image_format = Image.registered_extensions().get(extension, "PNG")
    buf = io.BytesIO()
    image = Image.fromarray(raster.pixels)
    try:
        image.save(buf, format=image_format)
    except (OSError, KeyError, ValueError):
        # The extension names a format Pillow can read but not write.
        buf = io.BytesIO()
        image.save(buf, format="PNG")
    return buf.getvalue()
