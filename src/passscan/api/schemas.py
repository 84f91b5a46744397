"""Pydantic request/response schemas for the PassScan API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from passscan.decoding.types import DecodeErrorKind, DecodeSource


class Flight(BaseModel):
    """A flight record."""

    model_config = ConfigDict(from_attributes=True)

    flight_number: str = Field(min_length=1, description="Flight number (record id)")
    flight_id: int = 0
    departure_time: str | None = None
    arrival_time: str | None = None
    departure_airport: str | None = None
    arrival_airport: str | None = None
    flight_type: str | None = None
    airline: str | None = None
    arrived: bool | None = None
    boarding_pass: str | None = Field(default=None, description="URI of the archived boarding pass")


class FlightPageResponse(BaseModel):
    """One page of flights, sorted by flight number."""

    items: list[Flight]
    page: int
    size: int
    total: int
    total_pages: int


class DecodeResponse(BaseModel):
    """Successful boarding-pass decode."""

    code: str
    source: DecodeSource = Field(description="'symbol' (barcode/QR) or 'ocr'")
    flight: Flight | None = Field(default=None, description="Matching flight record, if any")


class BoardingPassUploadResponse(BaseModel):
    """Result of attaching a boarding pass to a flight."""

    flight_number: str
    boarding_pass: str | None = Field(description="URI of the archived image, null if archiving failed")
    code: str | None = None
    source: DecodeSource | None = None
    error: DecodeErrorKind | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    tesseract_language: str
    concurrent_requests: int
    queue_depth: int


class ErrorResponse(BaseModel):
    """Standard error response."""

    detail: str
    code: str | None = None
