"""Content sink for archived boarding-pass images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

IMAGE_ROUTE = "/api/v1/flights/image"


class ContentSink(Protocol):
    """Protocol for storing named blobs and returning a URI to them."""

    def store(self, name: str, data: bytes) -> str:
        """Persist ``data`` under ``name`` and return its URI.

        Raises:
            OSError: On storage failure.
            ValueError: If ``name`` is not a plain file name.
        """
        ...


class FileSystemContentSink:
    """Writes files into one directory, replacing existing files of the same name."""

    def __init__(self, directory: Path, public_base_url: str) -> None:
        self._directory = directory.expanduser().resolve()
        self._base_url = public_base_url.rstrip("/")

    @property
    def directory(self) -> Path:
        return self._directory

    def store(self, name: str, data: bytes) -> str:
        path = self._resolve(name)
        self._directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
        logger.info("Stored %s (%d bytes)", path, len(data))
        return f"{self._base_url}{IMAGE_ROUTE}/{name}"

    def open(self, name: str) -> Path:
        """Return the path of a stored file.

        Raises:
            FileNotFoundError: If nothing is stored under ``name``.
        """
        path = self._resolve(name)
        if not path.is_file():
            raise FileNotFoundError(name)
        return path

    def _resolve(self, name: str) -> Path:
        if not name or name in {".", ".."} or Path(name).name != name or "\\" in name:
            raise ValueError(f"Invalid file name: {name!r}")
        return self._directory / name
