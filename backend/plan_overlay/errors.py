"""Domain error taxonomy shared by the engine, collaborators and API."""

from __future__ import annotations


class PlanOverlayError(Exception):
    """Base class for all plan-overlay errors."""


class DocumentReadError(PlanOverlayError):
    """The uploaded document or its overlay image could not be decoded."""


class ExtractionError(PlanOverlayError):
    """The AI returned no usable structured location data."""


class GeocodeNotFound(PlanOverlayError):
    """Every geocoding strategy was exhausted without a match."""


class RoadGeometryUnavailable(PlanOverlayError):
    """Directions lookup produced no polyline for a road."""


class TransientNetworkError(PlanOverlayError):
    """A network round-trip failed in a way that may succeed on retry."""


class RateLimited(TransientNetworkError):
    """The upstream service asked us to slow down."""


class InvalidAdjustment(PlanOverlayError):
    """An AI refinement response did not parse into a usable adjustment."""


class BoundsInvariantViolation(PlanOverlayError):
    """Computed bounds failed ``north > south`` and ``east > west``."""


class CollaboratorUnavailable(PlanOverlayError):
    """A collaborator is not configured (usually a missing API key)."""


class SessionNotPositioned(PlanOverlayError):
    """The session has no bounds yet, so there is nothing to refine."""


class RefinementInProgress(PlanOverlayError):
    """Another refinement is still running on this session."""
