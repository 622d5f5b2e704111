"""
Anchor-point layout for certificate text fields.

A field's anchor is not the text's top-left corner. Horizontally it is the
alignment reference (left edge, center or right edge of the text);
vertically it is the center of the rendered line. Converting the anchor to
a top-left render position needs the measured size of the filled-in text,
which is supplied by the rendering surface.
"""

import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Mapping

from .geometry import Placement

logger = logging.getLogger(__name__)

# Shared by preview and export so both put a line at the same height.
VERTICAL_CENTERING_FACTOR = 0.5

VALID_ALIGNMENTS = ("left", "center", "right")

MeasureFn = Callable[[str, float, str], Awaitable[tuple[float, float]]]


@dataclass(frozen=True)
class PlacedText:
    """One positioned text node of a layout tree, in native pixels."""

    field_id: str
    text: str
    render_x: float
    render_y: float
    width: float
    height: float
    font_size: float
    font_family: str
    color: str
    text_align: str


def place(
    field: Any,
    measured_width: float,
    measured_height: float,
    vertical_factor: float = VERTICAL_CENTERING_FACTOR,
) -> Placement:
    """
    Compute the top-left render position of a field's text.

    Args:
        field: Object with ``anchor.x``, ``anchor.y`` and ``text_align``
        measured_width: Rendered text width in native pixels
        measured_height: Rendered line height in native pixels
        vertical_factor: Fraction of the line height above the anchor

    Returns:
        Placement with render_x and render_y in native pixels

    Raises:
        ValueError: If text_align is not left, center or right
    """
    anchor_x = field.anchor.x
    anchor_y = field.anchor.y
    text_align = field.text_align

    if text_align == "center":
        render_x = anchor_x - measured_width / 2
    elif text_align == "left":
        render_x = anchor_x
    elif text_align == "right":
        render_x = anchor_x - measured_width
    else:
        raise ValueError(
            f"Invalid text alignment '{text_align}'. "
            f"Valid alignments: {', '.join(VALID_ALIGNMENTS)}"
        )

    render_y = anchor_y - measured_height * vertical_factor
    return Placement(render_x=render_x, render_y=render_y)


def is_renderable(field: Any, value: str | None) -> bool:
    """Hidden fields and empty values are never placed."""
    return bool(field.show_in_output) and bool(value)


async def build_layout_nodes(
    fields: Iterable[Any],
    values: Mapping[str, str],
    measure: MeasureFn,
) -> list[PlacedText]:
    """
    Place every renderable field of a template.

    Args:
        fields: Field definitions in drawing order
        values: Field values keyed by field id
        measure: Async callable (text, font_size, font_family) -> (width, height)

    Returns:
        list[PlacedText]: One node per visible, non-empty field
    """
    nodes: list[PlacedText] = []
    for field in fields:
        value = values.get(field.id)
        if not is_renderable(field, value):
            logger.debug(f"Skipping field {field.id}: hidden or empty")
            continue

        width, height = await measure(value, field.font_size, field.font_family)
        placement = place(field, width, height)
        nodes.append(
            PlacedText(
                field_id=field.id,
                text=value,
                render_x=placement.render_x,
                render_y=placement.render_y,
                width=width,
                height=height,
                font_size=field.font_size,
                font_family=field.font_family,
                color=field.color,
                text_align=field.text_align,
            )
        )
    return nodes
