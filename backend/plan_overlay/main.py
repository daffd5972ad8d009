"""FastAPI app factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from plan_overlay.config import settings
from plan_overlay.engine import SessionStore
from plan_overlay.errors import (
    BoundsInvariantViolation,
    CollaboratorUnavailable,
    DocumentReadError,
    ExtractionError,
    GeocodeNotFound,
    InvalidAdjustment,
    PlanOverlayError,
    RateLimited,
    RefinementInProgress,
    RoadGeometryUnavailable,
    SessionNotPositioned,
    TransientNetworkError,
)
from plan_overlay.services.http import create_http_client

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.planoverlay_log_level.upper(), logging.DEBUG),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)

# Most specific first
_ERROR_STATUS: list[tuple[type[PlanOverlayError], int]] = [
    (GeocodeNotFound, 404),
    (RoadGeometryUnavailable, 404),
    (BoundsInvariantViolation, 422),
    (InvalidAdjustment, 422),
    (DocumentReadError, 400),
    (SessionNotPositioned, 409),
    (RefinementInProgress, 409),
    (RateLimited, 429),
    (ExtractionError, 502),
    (TransientNetworkError, 502),
    (CollaboratorUnavailable, 503),
]


def status_for(error: PlanOverlayError) -> int:
    for error_type, status in _ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


async def _plan_overlay_error(request: Request, exc: PlanOverlayError) -> JSONResponse:
    status = status_for(exc)
    logger.warning("%s %s -> %d: %s", request.method, request.url.path, status, exc)
    return JSONResponse(status_code=status, content={"detail": str(exc) or type(exc).__name__})


async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    app.state.http_client = create_http_client(settings)
    try:
        yield
    finally:
        await app.state.http_client.aclose()


def create_app() -> FastAPI:
    app = FastAPI(
        title="Plan Overlay",
        description="Geo-references scanned construction plans onto satellite maps",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.session_store = SessionStore()
    app.add_exception_handler(PlanOverlayError, _plan_overlay_error)
    app.add_exception_handler(ValueError, _value_error)

    from plan_overlay.api.router import api_router

    app.include_router(api_router)

    return app


app = create_app()
