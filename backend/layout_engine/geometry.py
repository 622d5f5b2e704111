"""Small value types shared by the layout and scale modules."""

from typing import NamedTuple


class Point(NamedTuple):
    """A 2D point in either native or preview pixel space."""

    x: float
    y: float


class Dimensions(NamedTuple):
    """Width and height in pixels."""

    width: float
    height: float


class Placement(NamedTuple):
    """Top-left render position of a text node in native pixels."""

    render_x: float
    render_y: float
