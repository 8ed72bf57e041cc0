# tests/test_overlay.py
"""Tests for overlay position resolution, spec coercion and text rendering"""
import io

import pytest
from PIL import Image

from media_saver.core.domain import Gravity, OverlaySpec, PercentPosition, Placement, TextStyle
from media_saver.infra.image_engine import gravity_offset
from media_saver.infra.text_renderer import PillowTextRenderer
from media_saver.savers.overlay import as_overlay_spec, resolve_position


class TestResolvePosition:
    def test_gravity_string(self):
        assert resolve_position("south", 100, 50) == Placement(gravity=Gravity.SOUTH)

    def test_gravity_string_is_case_insensitive(self):
        assert resolve_position("NorthEast", 100, 50).gravity is Gravity.NORTHEAST

    def test_centre_spelling(self):
        assert resolve_position("centre", 100, 50).gravity is Gravity.CENTER

    def test_gravity_enum(self):
        assert resolve_position(Gravity.WEST, 100, 50).gravity is Gravity.WEST

    def test_unknown_gravity_falls_back_to_default(self):
        assert resolve_position("upside-down", 100, 50) == Placement()

    def test_percent_mapping(self):
        placement = resolve_position({"x": 50, "y": 50}, 200, 100)
        assert (placement.left, placement.top) == (100, 50)
        assert placement.is_absolute

    def test_percent_rounding(self):
        placement = resolve_position({"x": 33, "y": 10}, 101, 7)
        assert (placement.left, placement.top) == (33, 1)

    def test_percent_position_object(self):
        placement = resolve_position(PercentPosition(x=100, y=0), 640, 480)
        assert (placement.left, placement.top) == (640, 0)

    def test_out_of_range_percent_ignored(self):
        assert resolve_position({"x": 150, "y": 0}, 100, 100) == Placement()

    def test_incomplete_mapping_ignored(self):
        assert resolve_position({"x": 10}, 100, 100) == Placement()

    @pytest.mark.parametrize("position", [None, 42, [10, 10], (1, 2)])
    def test_other_shapes_use_default(self, position):
        placement = resolve_position(position, 100, 100)
        assert placement == Placement()
        assert not placement.is_absolute


class TestGravityOffset:
    @pytest.mark.parametrize("gravity,expected", [
        (Gravity.NORTHWEST, (0, 0)),
        (Gravity.NORTH, (45, 0)),
        (Gravity.NORTHEAST, (90, 0)),
        (Gravity.WEST, (0, 20)),
        (Gravity.CENTER, (45, 20)),
        (Gravity.EAST, (90, 20)),
        (Gravity.SOUTHWEST, (0, 40)),
        (Gravity.SOUTH, (45, 40)),
        (Gravity.SOUTHEAST, (90, 40)),
    ])
    def test_offsets(self, gravity, expected):
        assert gravity_offset(gravity, (100, 50), (10, 10)) == expected


class TestAsOverlaySpec:
    def test_spec_passes_through(self):
        spec = OverlaySpec("hi")
        assert as_overlay_spec(spec) is spec

    def test_plain_string(self):
        assert as_overlay_spec("hi") == OverlaySpec(text="hi")

    def test_mapping_with_style(self):
        spec = as_overlay_spec({"text": "hi", "style": {"font_size": 12}, "position": "north"})
        assert spec.style == TextStyle(font_size=12)
        assert spec.position == "north"

    def test_mapping_without_text(self):
        with pytest.raises(TypeError):
            as_overlay_spec({"position": "north"})


class TestPercentPosition:
    def test_bounds(self):
        with pytest.raises(ValueError):
            PercentPosition(x=-1, y=0)
        with pytest.raises(ValueError):
            PercentPosition(x=0, y=101)


class TestPillowTextRenderer:
    def test_renders_transparent_png(self):
        data = PillowTextRenderer(font_size=20).render(OverlaySpec("Hello"))

        with Image.open(io.BytesIO(data)) as img:
            assert img.format == "PNG"
            assert img.mode == "RGBA"
            assert img.width > img.height > 0
            alpha = img.getchannel("A")
            assert alpha.getextrema() == (0, 255)

    def test_background_and_padding(self):
        style = TextStyle(background="black", padding=10, color="white")
        data = PillowTextRenderer(font_size=20).render(OverlaySpec("Hi", style=style))

        with Image.open(io.BytesIO(data)) as img:
            assert img.convert("RGB").getpixel((0, 0)) == (0, 0, 0)
            assert img.height >= 20

    def test_multiline_is_taller(self):
        renderer = PillowTextRenderer(font_size=20)
        one = Image.open(io.BytesIO(renderer.render(OverlaySpec("line"))))
        two = Image.open(io.BytesIO(renderer.render(OverlaySpec("line\nline"))))
        assert two.height > one.height
