"""
Mapping between preview space and native template space.

Preview space is the template scaled down to fit an editor viewport.
Native space is the template image's true resolution. Dragging happens in
preview space and is converted to native space before an anchor is stored;
export always happens in native space (scale 1).
"""

from dataclasses import dataclass, replace
from typing import Iterable

from .anchor_layout import PlacedText
from .geometry import Dimensions, Point


def compute_scale(viewport: Dimensions, native: Dimensions) -> float:
    """
    Scale that fits the native template into the viewport, never upscaling.

    Raises:
        ValueError: If any dimension is not positive
    """
    if native.width <= 0 or native.height <= 0:
        raise ValueError(f"Native dimensions must be positive, got {native}")
    if viewport.width <= 0 or viewport.height <= 0:
        raise ValueError(f"Viewport dimensions must be positive, got {viewport}")

    return min(viewport.width / native.width, viewport.height / native.height, 1.0)


def _check_scale(scale: float) -> None:
    if not 0 < scale <= 1:
        raise ValueError(f"Scale must be in (0, 1], got {scale}")


def to_preview(point: Point, scale: float) -> Point:
    """Convert a native-space point to preview space."""
    _check_scale(scale)
    return Point(point.x * scale, point.y * scale)


def to_native(point: Point, scale: float) -> Point:
    """Convert a preview-space point to native space."""
    _check_scale(scale)
    return Point(point.x / scale, point.y / scale)


def scaled_dimensions(native: Dimensions, scale: float) -> Dimensions:
    """Size of the template as drawn in the preview."""
    _check_scale(scale)
    return Dimensions(native.width * scale, native.height * scale)


def preview_layout(nodes: Iterable[PlacedText], scale: float) -> list[PlacedText]:
    """
    Scale native placements into preview space.

    Preview nodes are derived from the export placements instead of being
    measured separately, so the preview cannot drift from the output.
    """
    _check_scale(scale)
    return [
        replace(
            node,
            render_x=node.render_x * scale,
            render_y=node.render_y * scale,
            width=node.width * scale,
            height=node.height * scale,
            font_size=node.font_size * scale,
        )
        for node in nodes
    ]


@dataclass(frozen=True)
class DragSession:
    """
    State of one in-progress drag of a field anchor.

    Each drag gets its own session value; moving returns a new session.
    Anchors are clamped to the template bounds in native space.
    """

    field_id: str
    scale: float
    native_bounds: Dimensions
    start_anchor: Point
    current_anchor: Point

    @classmethod
    def start(
        cls, field_id: str, anchor: Point, scale: float, native_bounds: Dimensions
    ) -> "DragSession":
        _check_scale(scale)
        anchor = Point(anchor.x, anchor.y)
        return cls(
            field_id=field_id,
            scale=scale,
            native_bounds=native_bounds,
            start_anchor=anchor,
            current_anchor=anchor,
        )

    @property
    def preview_anchor(self) -> Point:
        return to_preview(self.current_anchor, self.scale)

    def move_to(self, preview_point: Point) -> "DragSession":
        """Move the anchor to a point given in preview space."""
        native = to_native(preview_point, self.scale)
        clamped = Point(
            min(max(native.x, 0.0), self.native_bounds.width),
            min(max(native.y, 0.0), self.native_bounds.height),
        )
        return replace(self, current_anchor=clamped)

    def move_by(self, dx: float, dy: float) -> "DragSession":
        """Move the anchor by a delta given in preview space."""
        preview = self.preview_anchor
        return self.move_to(Point(preview.x + dx, preview.y + dy))

    def finish(self) -> Point:
        """Native anchor to persist on the field."""
        return self.current_anchor
