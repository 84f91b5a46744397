"""Request dependencies: API key authentication and app-state accessors."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

if TYPE_CHECKING:
    from passscan.config import Settings
    from passscan.decoding.pipeline import BoardingPassPipeline
    from passscan.decoding.worker_pool import DecodePool
    from passscan.store.flights import FlightStore
    from passscan.store.sink import FileSystemContentSink

_bearer_scheme = HTTPBearer(auto_error=False)


def settings_of(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def pipeline_of(request: Request) -> BoardingPassPipeline:
    pipeline: BoardingPassPipeline = request.app.state.pipeline
    return pipeline


def pool_of(request: Request) -> DecodePool:
    pool: DecodePool = request.app.state.decode_pool
    return pool


def flights_of(request: Request) -> FlightStore:
    store: FlightStore = request.app.state.flight_store
    return store


def sink_of(request: Request) -> FileSystemContentSink:
    sink: FileSystemContentSink = request.app.state.content_sink
    return sink


async def verify_api_key(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer_scheme)],
) -> None:
    """Check the Bearer token against the configured API key.

    If no API key is configured (PASSSCAN_API_KEY not set), all requests pass.
    """
    api_key = settings_of(request).api_key
    if api_key is None:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials.encode(), api_key.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
