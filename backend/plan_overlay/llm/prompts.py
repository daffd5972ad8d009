"""System prompts and per-call user messages for the three AI tasks."""

from __future__ import annotations

from plan_overlay.models.geo import Bounds

_JSON_ONLY = "Return ONLY a JSON object. No prose before or after it."

_EXTRACTION_TEMPLATE = """You extract location data from construction and site plans.

<task>
Read every piece of text in the document, including the title block, vicinity map and notes. Find:
1. All street/road names visible anywhere in the document, and which side of the site each road is on
2. Intersections of two roads at a corner of the site, and which corner (northwest, northeast, southwest, southeast)
3. The street address (usually in the title block)
4. City, state (two-letter abbreviation) and county
5. Project name and parcel number (APN) if present
6. Scale information if present, and an estimate of the site's longest dimension in meters
</task>

<output>
""" + _JSON_ONLY + """
{
  "projectName": "string or null",
  "parcelNumber": "string or null",
  "address": "string or null",
  "city": "string or null",
  "state": "string or null",
  "county": "string or null",
  "roads": [{"name": "string", "direction": "north|south|east|west|unknown", "isPrimary": false}],
  "intersections": [{"road1": "string", "road2": "string", "corner": "northwest|northeast|southwest|southeast"}],
  "scaleInfo": "string or null",
  "estimatedSizeMeters": 100,
  "siteShape": "rectangular|irregular|L-shaped|triangular|unknown"
}
Use null for anything you cannot find. Never invent an address.
</output>"""

_REFINEMENT_TEMPLATE = """You compare construction plan overlays with satellite imagery to suggest positioning adjustments.

You will receive:
1. A screenshot of the current map with the plan overlay drawn semi-transparently
2. The original plan document

Compare visible features and suggest ADJUSTMENTS (not absolute positions). Look for:
- Street alignments: are roads in the plan parallel to roads in the satellite view?
- Building footprints: do building shapes match?
- Parking lots, driveways and property boundaries
- Scale: is the plan too big or too small compared to actual features?

""" + _JSON_ONLY + """
{
  "shiftMeters": {"north": 0, "east": 0},
  "scaleFactor": 1.0,
  "confidence": 0.7,
  "reasoning": "Brief explanation of what you see"
}

Guidelines:
- shiftMeters: positive north moves the overlay northward, positive east moves it eastward
- scaleFactor: 1.0 = no change, 1.1 = 10% larger, 0.9 = 10% smaller
- confidence: 0.0-1.0, how confident you are in these adjustments
- Keep adjustments small (under 100m shifts, under 20% scale change per iteration)"""

_DEEP_REFINEMENT_TEMPLATE = """You precisely align construction site plans to real terrain by matching visual features.

You will receive TWO SEPARATE IMAGES:
1. The DRAWING (site plan/construction plan)
2. The TERRAIN MAP (terrain view showing topography)

Find matching features and suggest how to shift/scale the overlay to align them.

Features to match, in priority order:
1. TOPOGRAPHY CONTOURS: elevation lines in the drawing against terrain contours
2. PARKING LOTS: rectangular striped areas
3. ROAD CURVES: the specific shape of each road
4. BUILDING FOOTPRINTS: existing buildings only, not planned ones
5. PROPERTY BOUNDARIES: property lines that follow terrain features

Steps:
1. Identify 2-3 distinctive features in the drawing
2. Find where those same features appear on the terrain map
3. Estimate how far off they are, in meters
4. Suggest an adjustment

""" + _JSON_ONLY + """
{
  "shiftMeters": {"north": 0, "east": 0},
  "scaleFactor": 1.0,
  "confidence": 0.7,
  "featuresMatched": ["topography contour", "parking lot"],
  "reasoning": "The 1200ft contour in the drawing matches the contour 30m north of the current position"
}

Guidelines:
- shiftMeters: positive north moves the overlay northward, positive east moves it eastward
- Maximum shift per iteration: {max_step_meters} meters
- The overlay may never move more than {max_shift_meters} meters from where it started
- scaleFactor: 1.0 = no change, keep between 0.9 and 1.1
- If you can't find matching features, set confidence to 0.3 or lower"""

_TEMPLATES = {
    "extract": _EXTRACTION_TEMPLATE,
    "refine": _REFINEMENT_TEMPLATE,
    "deep_refine": _DEEP_REFINEMENT_TEMPLATE,
}


def get_prompt_template(task: str) -> str:
    return _TEMPLATES[task]


def get_all_templates() -> dict[str, str]:
    return dict(_TEMPLATES)


def deep_refinement_system_prompt(max_shift_meters: float, max_step_meters: float = 50) -> str:
    # the template holds literal JSON braces, so no str.format
    return (
        _DEEP_REFINEMENT_TEMPLATE
        .replace("{max_shift_meters}", f"{max_shift_meters:g}")
        .replace("{max_step_meters}", f"{max_step_meters:g}")
    )


def format_bounds(bounds: Bounds) -> str:
    return (
        f"- North: {bounds.north:.6f}\n"
        f"- South: {bounds.south:.6f}\n"
        f"- East: {bounds.east:.6f}\n"
        f"- West: {bounds.west:.6f}"
    )


def extraction_message(filename: str) -> str:
    return f"Document: {filename}\nExtract the location data as JSON."


def refinement_message(current: Bounds) -> str:
    return (
        "Current overlay position (bounds):\n"
        f"{format_bounds(current)}\n\n"
        "Compare the plan overlay (semi-transparent) with the satellite imagery underneath. "
        "Suggest adjustments to improve alignment."
    )


def deep_refinement_message(current: Bounds, original: Bounds, iteration: int) -> str:
    return (
        f"Iteration {iteration}: compare these two images and suggest positioning adjustments.\n\n"
        "IMAGE 1: the construction/site plan drawing\n"
        "IMAGE 2: the terrain map\n\n"
        f"Current overlay position (bounds):\n{format_bounds(current)}\n\n"
        f"Original position (bounds):\n{format_bounds(original)}\n\n"
        "Find matching features (topography contours, parking lots, road shapes, building outlines) "
        "and suggest how to shift the overlay to align them better."
    )
