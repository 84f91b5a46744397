"""Process-wide Tesseract engine configuration.

Built once at startup from settings and injected into recognizers. Validates
that the trained-data files for every configured language are present, and
points pytesseract at a non-default binary when one is configured.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import pytesseract

if TYPE_CHECKING:
    from passscan.config import Settings

logger = logging.getLogger(__name__)

TRAINEDDATA_SUFFIX = ".traineddata"


@dataclass(frozen=True)
class OcrEngineConfig:
    """Read-only OCR engine settings shared by all recognition calls."""

    language: str = "eng"
    psm: int = 6
    timeout_s: float = 10.0
    tessdata_dir: Path | None = None
    binarize_threshold: int | None = 150

    @property
    def languages(self) -> list[str]:
        return [lang for lang in self.language.split("+") if lang]

    def tesseract_args(self) -> str:
        """Render the extra CLI config passed to every Tesseract call."""
        args = [f"--psm {self.psm}"]
        if self.tessdata_dir is not None:
            args.append(f'--tessdata-dir "{self.tessdata_dir}"')
        return " ".join(args)


def load_ocr_engine_config(settings: Settings) -> OcrEngineConfig:
    """Validate OCR settings and build the shared engine configuration.

    Raises:
        FileNotFoundError: If ``tessdata_dir`` is set but missing, or lacks a
            trained-data file for one of the configured languages.
    """
    if settings.tesseract_cmd:
        pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd
        logger.info("Using tesseract binary at %s", settings.tesseract_cmd)

    config = OcrEngineConfig(
        language=settings.ocr_language,
        psm=settings.ocr_psm,
        timeout_s=settings.ocr_timeout,
        tessdata_dir=settings.tessdata_dir,
        binarize_threshold=settings.ocr_binarize_threshold,
    )
    if not config.languages:
        raise ValueError("PASSSCAN_OCR_LANGUAGE must name at least one language")

    if config.tessdata_dir is not None:
        _check_tessdata(config.tessdata_dir, config.languages)

    logger.info(
        "OCR engine configured (language=%s, psm=%s, timeout=%ss, tessdata=%s)",
        config.language,
        config.psm,
        config.timeout_s,
        config.tessdata_dir or "<default>",
    )
    return config


def _check_tessdata(tessdata_dir: Path, languages: list[str]) -> None:
    if not tessdata_dir.is_dir():
        raise FileNotFoundError(f"Tessdata directory not found: {tessdata_dir}")

    missing = [lang for lang in languages if not (tessdata_dir / f"{lang}{TRAINEDDATA_SUFFIX}").is_file()]
    if missing:
        raise FileNotFoundError(
            f"Missing trained data in {tessdata_dir}: {', '.join(m + TRAINEDDATA_SUFFIX for m in missing)}"
        )
