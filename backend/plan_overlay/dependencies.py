"""FastAPI dependency injection."""

from __future__ import annotations

import httpx
from fastapi import Depends, HTTPException, Request

from plan_overlay.config import Settings, settings
from plan_overlay.engine import (
    Collaborators,
    PipelineConfig,
    PipelineSession,
    PositioningPipeline,
    SessionStore,
    create_pipeline,
)
from plan_overlay.engine.collaborators import build_default_collaborators
from plan_overlay.services.parcels import MaricopaParcels


def get_settings() -> Settings:
    return settings


def get_http_client(request: Request) -> httpx.AsyncClient:
    return request.app.state.http_client


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_collaborators(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> Collaborators:
    return build_default_collaborators(settings, client)


def get_pipeline_config(settings: Settings = Depends(get_settings)) -> PipelineConfig:
    return PipelineConfig(collaborator_timeout_seconds=settings.collaborator_timeout_seconds)


def get_pipeline(
    collaborators: Collaborators = Depends(get_collaborators),
    config: PipelineConfig = Depends(get_pipeline_config),
) -> PositioningPipeline:
    return create_pipeline(collaborators, config)


def get_parcels(
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
) -> MaricopaParcels:
    return MaricopaParcels(client, settings)


def get_session(session_id: str, store: SessionStore = Depends(get_session_store)) -> PipelineSession:
    session = store.get(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session {session_id} not found")
    return session
