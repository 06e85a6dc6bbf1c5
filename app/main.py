from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api import health_router, router
from app.web import router as web_router
from datastore.reading_store import build_default_store
from logging_config import build_logging_config, configure_logging
from settings import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    store = build_default_store()
    logger.info("Sensor store ready", extra={"record_count": len(store)})
    try:
        yield
    finally:
        logger.info("Shutting down; flushing readings", extra={"record_count": len(store)})
        store.flush()
        build_default_store.cache_clear()


def create_app() -> FastAPI:
    configure_logging()
    settings = get_settings()
    app = FastAPI(
        title="Sensor Telemetry Hub",
        description="Collects temperature and humidity readings from remote sensor nodes.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_allow_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    static_dir = Path(__file__).resolve().parent.parent / "static"
    app.mount("/static", StaticFiles(directory=static_dir), name="static")
    app.include_router(router)
    app.include_router(health_router)
    app.include_router(web_router)
    return app


def run() -> None:
    """Serve the application with uvicorn on the configured host and port."""
    settings = get_settings()
    configure_logging()
    base_url = f"http://localhost:{settings.port}"
    logger.info("Dashboard: %s/", base_url)
    logger.info("Ingest endpoint: %s/api/sensor-data", base_url)
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_config=build_logging_config(settings.log_level),
    )


app = create_app()


if __name__ == "__main__":
    run()
