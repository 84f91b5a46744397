"""Bounded off-loop execution for boarding-pass decodes.

Each decode request or boarding-pass upload needs one slot. A slot is a
semaphore permit paired with a worker thread, so at most ``max_workers``
passes are normalized, scanned and OCR'd at once. Callers that cannot get a
slot within ``queue_timeout`` seconds get ``TimeoutError`` (the API answers 503).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_QUEUE_TIMEOUT_SECONDS: float = 5.0


class DecodePool:
    """Runs blocking decode calls on worker threads, a fixed number at a time."""

    def __init__(self, max_workers: int, queue_timeout: float = DEFAULT_QUEUE_TIMEOUT_SECONDS) -> None:
        self._slots = asyncio.Semaphore(max_workers)
        self._workers = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="pass-decode")
        self._queue_timeout = queue_timeout
        self._lock = threading.Lock()
        self._waiting = 0
        self._running = 0

    @contextmanager
    def _tally(self, counter: str) -> Iterator[None]:
        with self._lock:
            setattr(self, counter, getattr(self, counter) + 1)
        try:
            yield
        finally:
            with self._lock:
                setattr(self, counter, getattr(self, counter) - 1)

    async def run(self, func: Callable[..., T], *args: object) -> T:
        """Wait for a free slot, then call ``func(*args)`` on a decode thread.

        Raises:
            TimeoutError: No slot became free within the queue timeout.
        """
        with self._tally("_waiting"):
            try:
                await asyncio.wait_for(self._slots.acquire(), timeout=self._queue_timeout)
            except TimeoutError:
                logger.warning("No decode slot free after %ss; rejecting request", self._queue_timeout)
                raise

        try:
            with self._tally("_running"):
                return await asyncio.get_running_loop().run_in_executor(self._workers, func, *args)
        finally:
            self._slots.release()

    @property
    def active_count(self) -> int:
        """Decodes currently executing on a worker thread."""
        with self._lock:
            return self._running

    @property
    def queue_depth(self) -> int:
        """Requests still waiting for a slot."""
        with self._lock:
            return self._waiting

    def shutdown(self) -> None:
        self._workers.shutdown(wait=True)
