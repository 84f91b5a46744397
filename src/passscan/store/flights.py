"""Flight record store.

The decoding pipeline only needs ``find_by_code``; the remaining operations
back the flight CRUD endpoints.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass, replace
from typing import Protocol

logger = logging.getLogger(__name__)


class FlightNotFoundError(KeyError):
    def __init__(self, flight_number: str) -> None:
        self.flight_number = flight_number
        super().__init__(f"Flight not found: {flight_number}")


@dataclass(frozen=True)
class FlightRecord:
    """A persisted flight, keyed by flight number."""

    flight_number: str
    flight_id: int = 0
    departure_time: str | None = None
    arrival_time: str | None = None
    departure_airport: str | None = None
    arrival_airport: str | None = None
    flight_type: str | None = None
    airline: str | None = None
    arrived: bool | None = None
    boarding_pass: str | None = None


@dataclass(frozen=True)
class FlightPage:
    items: list[FlightRecord]
    page: int
    size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.size) if self.size else 0


class FlightStore(Protocol):
    """Protocol for flight persistence."""

    def find_by_code(self, code: str) -> FlightRecord | None:
        """Resolve a decoded boarding-pass code to a flight, if one matches."""
        ...

    def get(self, flight_number: str) -> FlightRecord:
        ...

    def save(self, record: FlightRecord) -> FlightRecord:
        ...

    def delete(self, flight_number: str) -> None:
        ...

    def attach_boarding_pass(self, flight_number: str, uri: str | None) -> FlightRecord:
        ...

    def list_page(self, page: int, size: int) -> FlightPage:
        """Return one page of flights sorted by flight number."""
        ...


class InMemoryFlightStore:
    """Thread-safe dict-backed flight store."""

    def __init__(self, records: list[FlightRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._flights: dict[str, FlightRecord] = {r.flight_number: r for r in records or []}

    def find_by_code(self, code: str) -> FlightRecord | None:
        key = code.strip().upper()
        with self._lock:
            for number, record in self._flights.items():
                if number.upper() == key:
                    return record
        return None

    def get(self, flight_number: str) -> FlightRecord:
        with self._lock:
            try:
                return self._flights[flight_number]
            except KeyError:
                raise FlightNotFoundError(flight_number) from None

    def save(self, record: FlightRecord) -> FlightRecord:
        logger.info("Saving flight %s", record.flight_number)
        with self._lock:
            self._flights[record.flight_number] = record
        return record

    def delete(self, flight_number: str) -> None:
        logger.info("Deleting flight %s", flight_number)
        with self._lock:
            if self._flights.pop(flight_number, None) is None:
                raise FlightNotFoundError(flight_number)

    def attach_boarding_pass(self, flight_number: str, uri: str | None) -> FlightRecord:
        with self._lock:
            try:
                current = self._flights[flight_number]
            except KeyError:
                raise FlightNotFoundError(flight_number) from None
            updated = replace(current, boarding_pass=uri)
            self._flights[flight_number] = updated
            return updated

    def list_page(self, page: int, size: int) -> FlightPage:
        if page < 0 or size < 1:
            raise ValueError(f"Invalid page request: page={page}, size={size}")
        with self._lock:
            ordered = sorted(self._flights.values(), key=lambda r: r.flight_number)
        start = page * size
        return FlightPage(items=ordered[start : start + size], page=page, size=size, total=len(ordered))
