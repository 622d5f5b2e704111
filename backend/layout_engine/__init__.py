"""Anchor-point layout, preview scaling, and the template registry."""

from .anchor_layout import (
    VERTICAL_CENTERING_FACTOR,
    PlacedText,
    build_layout_nodes,
    is_renderable,
    place,
)
from .geometry import Dimensions, Placement, Point
from .scale import (
    DragSession,
    compute_scale,
    preview_layout,
    scaled_dimensions,
    to_native,
    to_preview,
)
from .template_loader import list_available_templates, load_template

__all__ = [
    "VERTICAL_CENTERING_FACTOR",
    "PlacedText",
    "build_layout_nodes",
    "is_renderable",
    "place",
    "Dimensions",
    "Placement",
    "Point",
    "DragSession",
    "compute_scale",
    "preview_layout",
    "scaled_dimensions",
    "to_native",
    "to_preview",
    "list_available_templates",
    "load_template",
]
