"""Master API router: mounts all endpoint routers."""

from __future__ import annotations

from fastapi import APIRouter

from plan_overlay.api import bounds, extract, geocode, health, parcel, pipeline, roads, sessions

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(geocode.router)
api_router.include_router(roads.router)
api_router.include_router(bounds.router)
api_router.include_router(parcel.router)
api_router.include_router(extract.router)
api_router.include_router(pipeline.router)
api_router.include_router(sessions.router)
