"""Task → model selection. Frontier for extraction, mid-tier for refinement, cheap for deep loops."""

from __future__ import annotations

from plan_overlay.config import Settings, settings as default_settings

_TASK_MODEL_MAP = {
    "extract": "frontier",
    "refine": "mid",
    "deep_refine": "cheap",
}

_TIER_SETTING = {
    "cheap": "model_cheap",
    "mid": "model_mid",
    "frontier": "model_frontier",
}


def get_model_for_task(task: str, settings: Settings | None = None) -> str:
    """Model id for ``task``. Unknown tasks get the cheap tier."""
    settings = settings or default_settings
    tier = _TASK_MODEL_MAP.get(task, "cheap")
    return getattr(settings, _TIER_SETTING[tier])
