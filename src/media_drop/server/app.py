# src/media_drop/server/app.py

"""FastAPI application for the media-drop server."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..core.errors import ChannelUnavailable, DuplicateTask, NotFoundError, ValidationError
from .routes import events, health, schedule

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ..core.state import AppState

logger = logging.getLogger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DuplicateTask)
    async def duplicate_handler(request: Request, exc: DuplicateTask) -> JSONResponse:
        return _error(409, exc.message)

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, exc.message)

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, "Not found")

    @app.exception_handler(ChannelUnavailable)
    async def unavailable_handler(request: Request, exc: ChannelUnavailable) -> JSONResponse:
        return _error(503, str(exc) or "Not ready")


def create_app(state: AppState) -> FastAPI:
    """Create the FastAPI application around an already wired AppState."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s (uploads in %s)", getattr(state.settings, "app_name", "media-drop"), state.blob_store.root)
        if state.connector is not None:
            state.connector.start()

        yield

        logger.info("Shutting down")
        if state.connector is not None:
            await state.connector.stop()
        await state.registry.aclose()

    app = FastAPI(
        title="media-drop",
        description="Schedule media posts into chat rooms",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.media = state

    origins = list(getattr(state.settings, "cors_origins", ["*"]) or ["*"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    app.include_router(health.router, tags=["health"])
    # Served both at the root and under /api, where the web client calls it.
    for prefix in ("", "/api"):
        app.include_router(schedule.router, prefix=prefix, tags=["schedule"], include_in_schema=not prefix)
        app.include_router(events.router, prefix=prefix, tags=["events"], include_in_schema=not prefix)

    return app
