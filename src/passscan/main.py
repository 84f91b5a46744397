"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from passscan.config import Settings
    from passscan.store.sink import ContentSink

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from passscan.api.routes import router
from passscan.config import get_settings
from passscan.decoding.ocr_engine import load_ocr_engine_config
from passscan.decoding.pipeline import BoardingPassPipeline
from passscan.decoding.preprocessing import PillowImageNormalizer
from passscan.decoding.symbol_decoder import OpenCvSymbolDecoder
from passscan.decoding.text_recognizer import TesseractTextRecognizer
from passscan.decoding.worker_pool import DecodePool
from passscan.store.flights import InMemoryFlightStore
from passscan.store.sink import FileSystemContentSink

logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings, sink: ContentSink | None = None) -> BoardingPassPipeline:
    """Wire the production decoders; OCR engine config is loaded once here."""
    return BoardingPassPipeline(
        normalizer=PillowImageNormalizer(max_image_pixels=settings.max_image_pixels),
        recognizer=TesseractTextRecognizer(load_ocr_engine_config(settings)),
        symbol_decoder=OpenCvSymbolDecoder(),
        roi=settings.roi_rect,
        sink=sink,
        code_pattern=settings.ocr_code_pattern,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    logger.info(
        "Starting PassScan (max_concurrent=%s, roi=%s, pass_directory=%s)",
        settings.max_concurrent,
        settings.roi_rect,
        settings.pass_directory,
    )

    sink = FileSystemContentSink(settings.pass_directory, settings.public_base_url)
    app.state.content_sink = sink
    app.state.flight_store = InMemoryFlightStore()
    app.state.pipeline = build_pipeline(settings, sink)
    decode_pool = DecodePool(settings.max_concurrent, settings.queue_timeout)
    app.state.decode_pool = decode_pool

    logger.info("PassScan ready")
    yield

    logger.info("Shutting down PassScan")
    decode_pool.shutdown()
    logger.info("PassScan shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="PassScan",
        description="Flight records with boarding-pass decoding (barcode/QR and OCR)",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()
