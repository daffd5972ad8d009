"""Pipeline configuration: positioning and refinement tunables."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PipelineConfig:
    """Controls how the positioning pipeline sizes, refines and times out."""

    # Site size clamp (meters)
    default_size_meters: float = 100.0
    min_size_meters: float = 10.0
    max_size_meters: float = 500.0

    # Road geometry lookup around the anchor point
    road_search_radius_meters: float = 1000.0

    # Convergence: stop when confident or when the shift is negligible
    confidence_threshold: float = 0.9
    min_shift_meters: float = 2.0  # either axis

    # Deep refinement defaults
    deep_refine_max_iterations: int = 5
    deep_refine_max_shift_meters: float = 200.0  # from the original anchor

    # Per collaborator call
    collaborator_timeout_seconds: float = 120.0
