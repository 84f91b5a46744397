"""API route definitions."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, Response, UploadFile, status
from fastapi.responses import FileResponse, JSONResponse

from passscan.api.dependencies import (
    flights_of,
    pipeline_of,
    pool_of,
    settings_of,
    sink_of,
    verify_api_key,
)
from passscan.api.schemas import (
    BoardingPassUploadResponse,
    DecodeResponse,
    ErrorResponse,
    Flight,
    FlightPageResponse,
    HealthResponse,
)
from passscan.decoding.pipeline import ArchiveRequest
from passscan.decoding.types import DecodeErrorKind, DecodeSuccess
from passscan.store.flights import FlightNotFoundError, FlightRecord

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(verify_api_key)])

# Starlette renamed the 413/422 constants across releases; plain codes work on all of them.
HTTP_CONTENT_TOO_LARGE = 413
HTTP_UNPROCESSABLE_CONTENT = 422

_FAILURE_STATUS: dict[DecodeErrorKind, int] = {
    DecodeErrorKind.UNREADABLE_IMAGE: status.HTTP_400_BAD_REQUEST,
    DecodeErrorKind.NO_CODE_FOUND: HTTP_UNPROCESSABLE_CONTENT,
}

_FAILURE_DETAIL: dict[DecodeErrorKind, str] = {
    DecodeErrorKind.UNREADABLE_IMAGE: "Upload is not a readable image",
    DecodeErrorKind.NO_CODE_FOUND: "No flight code found in boarding pass",
}


class _UploadRejected(Exception):
    def __init__(self, response: JSONResponse) -> None:
        self.response = response


def _error(status_code: int, detail: str, code: str | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(detail=detail, code=code).model_dump())


def _flight_not_found(flight_number: str) -> JSONResponse:
    logger.info("Flight %s not found", flight_number)
    return _error(status.HTTP_404_NOT_FOUND, "Flight not found", "not_found")


async def _read_upload(request: Request, file: UploadFile) -> bytes:
    limit = settings_of(request).max_file_size
    data = await file.read(limit + 1)
    if len(data) > limit:
        raise _UploadRejected(
            _error(HTTP_CONTENT_TOO_LARGE, f"File exceeds {limit} bytes", "file_too_large")
        )
    return data


_SATURATED = {
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


# ---------------------------------------------------------------------------
# Boarding passes
# ---------------------------------------------------------------------------


@router.post(
    "/boarding-passes/decode",
    response_model=DecodeResponse,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        HTTP_CONTENT_TOO_LARGE: {"model": ErrorResponse},
        HTTP_UNPROCESSABLE_CONTENT: {"model": ErrorResponse},
        **_SATURATED,
    },
    summary="Decode a flight code from a boarding-pass image",
)
async def decode_boarding_pass(request: Request, file: UploadFile) -> DecodeResponse | JSONResponse:
    """Decode an uploaded boarding pass and look up the matching flight."""
    try:
        data = await _read_upload(request, file)
        outcome = await pool_of(request).run(pipeline_of(request).decode, data)
    except _UploadRejected as exc:
        return exc.response
    except TimeoutError:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Decoder busy, retry later", "busy")

    if not isinstance(outcome, DecodeSuccess):
        return _error(_FAILURE_STATUS[outcome.kind], _FAILURE_DETAIL[outcome.kind], outcome.kind.value)

    code = outcome.code
    record = flights_of(request).find_by_code(code.value)
    logger.info("Decoded %s code %r (flight match: %s)", code.source, code.value, record is not None)
    return DecodeResponse(
        code=code.value,
        source=code.source,
        flight=Flight.model_validate(record) if record is not None else None,
    )


@router.put(
    "/flights/{flight_number}/boarding-pass",
    response_model=BoardingPassUploadResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        HTTP_CONTENT_TOO_LARGE: {"model": ErrorResponse},
        **_SATURATED,
    },
    summary="Upload a boarding pass for a flight",
)
async def upload_boarding_pass(
    request: Request, flight_number: str, file: UploadFile
) -> BoardingPassUploadResponse | JSONResponse:
    """Archive the boarding pass under the flight and report what it decodes to."""
    logger.info("Uploading boarding pass for flight %s", flight_number)
    store = flights_of(request)
    try:
        store.get(flight_number)
    except FlightNotFoundError:
        return _flight_not_found(flight_number)

    try:
        data = await _read_upload(request, file)
        result = await pool_of(request).run(
            pipeline_of(request).decode_and_archive,
            data,
            ArchiveRequest(flight_number=flight_number, original_filename=file.filename),
        )
    except _UploadRejected as exc:
        return exc.response
    except TimeoutError:
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, "Decoder busy, retry later", "busy")

    try:
        if result.uri is not None:
            boarding_pass = store.attach_boarding_pass(flight_number, result.uri).boarding_pass
        else:
            boarding_pass = store.get(flight_number).boarding_pass
    except FlightNotFoundError:
        # Deleted while the upload was being decoded.
        return _flight_not_found(flight_number)

    outcome = result.outcome
    if isinstance(outcome, DecodeSuccess):
        return BoardingPassUploadResponse(
            flight_number=flight_number,
            boarding_pass=boarding_pass,
            code=outcome.code.value,
            source=outcome.code.source,
        )
    return BoardingPassUploadResponse(flight_number=flight_number, boarding_pass=boarding_pass, error=outcome.kind)


@router.get(
    "/flights/image/{filename}",
    response_class=FileResponse,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Fetch an archived boarding-pass image",
)
async def get_boarding_pass_image(request: Request, filename: str) -> Response:
    try:
        path = sink_of(request).open(filename)
    except (FileNotFoundError, ValueError):
        return _error(status.HTTP_404_NOT_FOUND, "Image not found", "not_found")
    return FileResponse(path)


# ---------------------------------------------------------------------------
# Flights
# ---------------------------------------------------------------------------


@router.get("/flights", response_model=FlightPageResponse, summary="List flights")
async def list_flights(
    request: Request,
    page: Annotated[int, Query(ge=0)] = 0,
    size: Annotated[int, Query(ge=1, le=100)] = 10,
) -> FlightPageResponse:
    """Return one page of flights sorted by flight number."""
    result = flights_of(request).list_page(page, size)
    return FlightPageResponse(
        items=[Flight.model_validate(r) for r in result.items],
        page=result.page,
        size=result.size,
        total=result.total,
        total_pages=result.total_pages,
    )


@router.get(
    "/flights/{flight_number}",
    response_model=Flight,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Get a flight",
)
async def get_flight(request: Request, flight_number: str) -> Flight | JSONResponse:
    try:
        return Flight.model_validate(flights_of(request).get(flight_number))
    except FlightNotFoundError:
        return _flight_not_found(flight_number)


@router.post("/flights", response_model=Flight, status_code=status.HTTP_201_CREATED, summary="Save a flight")
async def save_flight(request: Request, flight: Flight) -> Flight:
    record = flights_of(request).save(FlightRecord(**flight.model_dump()))
    return Flight.model_validate(record)


@router.delete(
    "/flights/{flight_number}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
    summary="Delete a flight",
)
async def delete_flight(request: Request, flight_number: str) -> Response:
    try:
        flights_of(request).delete(flight_number)
    except FlightNotFoundError:
        return _flight_not_found(flight_number)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health(request: Request) -> HealthResponse:
    """Return service health status."""
    pool = pool_of(request)
    return HealthResponse(
        status="ok",
        tesseract_language=settings_of(request).ocr_language,
        concurrent_requests=pool.active_count,
        queue_depth=pool.queue_depth,
    )
