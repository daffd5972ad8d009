"""Health check + meta endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from plan_overlay.config import Settings
from plan_overlay.dependencies import get_settings
from plan_overlay.models.responses import ConfigResponse, HealthResponse

router = APIRouter()

VERSION = "0.1.0"


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(status="ok", version=VERSION)


@router.get("/config", response_model=ConfigResponse)
async def config(settings: Settings = Depends(get_settings)) -> ConfigResponse:
    """What the browser needs to draw the map, and which models are in use."""
    return ConfigResponse(
        maps_api_key=settings.google_maps_api_key,
        maps_configured=bool(settings.google_maps_api_key),
        llm_configured=bool(settings.anthropic_api_key),
        frontier_model=settings.model_frontier,
        mid_model=settings.model_mid,
        cheap_model=settings.model_cheap,
    )


@router.get("/prompts")
async def prompts() -> dict[str, str]:
    from plan_overlay.llm.prompts import get_all_templates

    return get_all_templates()
