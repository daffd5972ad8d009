"""Shared httpx client and response handling for the web-service collaborators."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from plan_overlay.config import Settings
from plan_overlay.errors import CollaboratorUnavailable, RateLimited, TransientNetworkError

logger = logging.getLogger(__name__)

USER_AGENT = "plan-overlay/0.1.0"


def create_http_client(settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        timeout=settings.http_timeout_seconds,
        headers={"User-Agent": USER_AGENT},
        transport=transport,
    )


async def _send(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None,
    headers: dict[str, str] | None,
    label: str,
) -> httpx.Response:
    try:
        resp = await client.get(url, params=params, headers=headers)
    except httpx.TimeoutException as e:
        raise TransientNetworkError(f"{label} timed out") from e
    except httpx.TransportError as e:
        raise TransientNetworkError(f"{label} unreachable: {e}") from e

    if resp.status_code == 429:
        raise RateLimited(f"{label} rate limited")
    if resp.status_code >= 500:
        raise TransientNetworkError(f"{label} returned {resp.status_code}")
    if resp.status_code >= 400:
        raise CollaboratorUnavailable(f"{label} returned {resp.status_code}")
    return resp


async def get_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    label: str = "request",
) -> dict[str, Any]:
    resp = await _send(client, url, params=params, headers=headers, label=label)
    try:
        data = resp.json()
    except ValueError as e:
        raise CollaboratorUnavailable(f"{label} returned invalid JSON") from e
    if not isinstance(data, dict):
        raise CollaboratorUnavailable(f"{label} returned {type(data).__name__}, expected an object")
    return data


async def get_bytes(
    client: httpx.AsyncClient,
    url: str,
    *,
    params: dict[str, Any] | None = None,
    label: str = "request",
) -> bytes:
    resp = await _send(client, url, params=params, headers=None, label=label)
    return resp.content
