"""Pipeline stage events streamed to the caller."""

from __future__ import annotations

import enum
from typing import Any

from pydantic import Field

from plan_overlay.models.base import CamelModel
from plan_overlay.models.geo import Bounds


class Stage(str, enum.Enum):
    IDLE = "idle"
    READING = "reading"
    EXTRACTING = "extracting"
    GEOCODING = "geocoding"
    POSITIONING = "positioning"
    REFINING = "refining"
    SETTLED = "settled"
    FAILED = "failed"


class EventStatus(str, enum.Enum):
    STARTED = "started"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    FAILED = "failed"
    INFO = "info"


class PipelineEvent(CamelModel):
    session_id: str = ""
    stage: Stage
    status: EventStatus
    message: str = ""
    bounds: Bounds | None = None
    data: dict[str, Any] = Field(default_factory=dict)
