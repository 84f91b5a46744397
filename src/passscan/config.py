"""Environment-based configuration for PassScan."""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from passscan.decoding.types import RegionRect


def _default_workers() -> int:
    return os.cpu_count() or 1


class Settings(BaseSettings):
    """Application settings loaded from PASSSCAN_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="PASSSCAN_",
        case_sensitive=False,
    )

    # Server
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8083
    public_base_url: str = "http://localhost:8083"

    # Authentication (None = disabled)
    api_key: str | None = None

    # OCR engine (loaded once at startup)
    tesseract_cmd: str | None = None
    tessdata_dir: Path | None = None
    ocr_language: str = "eng"
    ocr_psm: int = Field(default=6, ge=0, le=13)
    ocr_timeout: float = Field(default=10.0, gt=0)
    ocr_binarize_threshold: int | None = Field(default=150, ge=0, le=255)

    # Fixed OCR region of interest, in pixels of the normalized image
    roi_x: int = Field(default=0, ge=0)
    roi_y: int = Field(default=0, ge=0)
    roi_width: int = Field(default=640, ge=1)
    roi_height: int = Field(default=160, ge=1)

    # Regex an OCR candidate must match (None = accept any text)
    ocr_code_pattern: str | None = None

    # Concurrency
    max_concurrent: int = Field(default_factory=_default_workers, ge=1)
    queue_timeout: float = Field(default=5.0, gt=0)

    # Input limits
    max_image_pixels: int = Field(default=16_777_216, ge=1)
    max_file_size: int = Field(default=20_971_520, ge=1)

    # Boarding-pass archive
    pass_directory: Path = Path("boarding-passes")

    @property
    def roi_rect(self) -> RegionRect:
        return RegionRect(x=self.roi_x, y=self.roi_y, width=self.roi_width, height=self.roi_height)


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()
