"""Plan overlay geo-referencing engine."""

from plan_overlay.engine.collaborators import Collaborators
from plan_overlay.engine.config import PipelineConfig
from plan_overlay.engine.context import PipelineSession
from plan_overlay.engine.pipeline import PositioningPipeline, create_pipeline
from plan_overlay.engine.sessions import SessionStore

__all__ = [
    "Collaborators",
    "PipelineConfig",
    "PipelineSession",
    "PositioningPipeline",
    "SessionStore",
    "create_pipeline",
]
