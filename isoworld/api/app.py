"""FastAPI application factory with lifespan management."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from isoworld.api.dependencies import set_session
from isoworld.api.routes import api_router
from isoworld.api.session import WorldSession
from isoworld.config import WorldConfig
from isoworld.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def create_app(config: WorldConfig | None = None, session: WorldSession | None = None) -> FastAPI:
    """Build and return the fully-configured FastAPI application.

    A prebuilt *session* (tests inject one with a custom store or generator)
    takes precedence over *config*.
    """
    if session is None:
        session = WorldSession(config or WorldConfig())
    _session = session

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        setup_logging(_session.config.log_level)
        set_session(_session)
        _session.start()
        logger.info("API server started — world %r streaming.", _session.config.world_id)
        yield
        _session.stop()
        set_session(None)
        logger.info("API server shutting down.")

    app = FastAPI(
        title="Isoworld Chunk Service",
        description=(
            "Chunked isometric world — streaming, tile access and persistence.\n\n"
            "## API Groups\n\n"
            "- **World** — Actor movement (drives chunk residency), save/load/clear/generate\n"
            "- **Tiles** — Tile reads and edits, whole-chunk reads\n"
            "- **Coordinates** — Grid / render-space / chunk conversions\n"
            "- **Events** — Chunk lifecycle events (load, generate, evict, save, failures)\n"
            "- **Config** — Read-only world configuration\n"
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    return app
