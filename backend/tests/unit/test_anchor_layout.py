"""
Unit tests for anchor-point layout.

Covers the alignment rules, vertical centering and which fields are
placed at all.
"""

import pytest

from app.models import FieldDefinition, Point
from layout_engine import (
    VERTICAL_CENTERING_FACTOR,
    build_layout_nodes,
    is_renderable,
    place,
)


def make_field(text_align="center", x=100, y=100, **overrides) -> FieldDefinition:
    return FieldDefinition(
        id=overrides.pop("id", "name"),
        label="Name",
        anchor=Point(x=x, y=y),
        text_align=text_align,
        **overrides,
    )


async def fixed_measure(text, font_size, font_family):
    return 40.0, 20.0


class TestPlace:
    """Alignment rules for place()."""

    def test_center_alignment(self):
        placement = place(make_field("center"), 40, 20)
        assert placement.render_x == 80
        assert placement.render_y == 90

    def test_left_alignment(self):
        placement = place(make_field("left"), 40, 20)
        assert placement.render_x == 100
        assert placement.render_y == 90

    def test_right_alignment(self):
        placement = place(make_field("right"), 40, 20)
        assert placement.render_x == 60
        assert placement.render_y == 90

    def test_vertical_centering_uses_shared_factor(self):
        assert VERTICAL_CENTERING_FACTOR == 0.5
        placement = place(make_field("left", y=50), 10, 30)
        assert placement.render_y == 50 - 30 * VERTICAL_CENTERING_FACTOR

    def test_unknown_alignment_raises(self):
        field = make_field("center").model_copy(update={"text_align": "justify"})
        with pytest.raises(ValueError, match="justify"):
            place(field, 40, 20)

    def test_zero_size_text_sits_on_anchor(self):
        placement = place(make_field("center", x=7, y=9), 0, 0)
        assert (placement.render_x, placement.render_y) == (7, 9)


class TestRenderable:
    def test_hidden_field_not_renderable(self):
        assert not is_renderable(make_field(show_in_output=False), "value")

    @pytest.mark.parametrize("value", ["", None])
    def test_empty_value_not_renderable(self, value):
        assert not is_renderable(make_field(), value)

    def test_visible_filled_field_renderable(self):
        assert is_renderable(make_field(), "Ada")


class TestBuildLayoutNodes:
    @pytest.mark.asyncio
    async def test_skips_hidden_and_empty_fields(self):
        fields = [
            make_field(id="name"),
            make_field(id="note", show_in_output=False),
            make_field(id="course", text_align="left"),
        ]
        nodes = await build_layout_nodes(
            fields, {"name": "Ada", "note": "secret", "course": ""}, fixed_measure
        )
        assert [node.field_id for node in nodes] == ["name"]

    @pytest.mark.asyncio
    async def test_nodes_carry_measured_size_and_style(self):
        field = make_field(id="name", font_size=24, font_family="serif", color="#112233")
        nodes = await build_layout_nodes([field], {"name": "Ada"}, fixed_measure)

        node = nodes[0]
        assert node.text == "Ada"
        assert (node.render_x, node.render_y) == (80, 90)
        assert (node.width, node.height) == (40, 20)
        assert node.font_size == 24
        assert node.color == "#112233"

    @pytest.mark.asyncio
    async def test_measure_receives_field_font(self):
        calls = []

        async def recording_measure(text, font_size, font_family):
            calls.append((text, font_size, font_family))
            return 10.0, 10.0

        field = make_field(font_size=18, font_family="monospace")
        await build_layout_nodes([field], {"name": "X"}, recording_measure)
        assert calls == [("X", 18, "monospace")]
