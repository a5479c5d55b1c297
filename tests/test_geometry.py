"""Tests for avatar and label placement."""

import pytest

from doctor_video.render.geometry import (
    GeometrySpec,
    LabelLayout,
    compute_geometry,
    estimate_label_width,
)

CANVAS_W = 1920
CANVAS_H = 1080


class TestLabelWidth:
    """Tests for the label width estimate."""

    def test_short_name_uses_min_width(self):
        """A short name is widened to the minimum box width."""
        assert estimate_label_width("Dr", LabelLayout()) == 240

    def test_width_follows_text_length(self):
        """8 chars * 28.8px rounded up, plus 40px padding."""
        assert estimate_label_width("A. Smith", LabelLayout()) == 271

    def test_long_name_clamped_to_max_width(self):
        """Very long names never exceed the maximum box width."""
        assert estimate_label_width("X" * 100, LabelLayout()) == 800

    def test_empty_text(self):
        """Empty text still yields the minimum box."""
        assert estimate_label_width("", LabelLayout()) == 240


class TestComputeGeometry:
    """Tests for compute_geometry."""

    def test_reference_layout(self):
        """A. Smith at (0.75, 0.6) on 1920x1080."""
        geo = compute_geometry("A. Smith", 0.75, 0.6, CANVAS_W, CANVAS_H)

        assert geo.anchor_x == 1440
        assert geo.anchor_y == 648
        assert geo.avatar_center_x == 1555
        assert geo.label_y == 895
        assert geo.label_width == 271
        assert geo.label_height == 80
        assert geo.label_x == 1555 - 271 // 2

    def test_label_centered_under_avatar(self):
        """Without overflow, the label is centered on the avatar."""
        geo = compute_geometry("Dr. Name", 0.5, 0.3, CANVAS_W, CANVAS_H)
        assert geo.label_x + geo.label_width // 2 == geo.avatar_center_x

    def test_right_edge_correction(self):
        """A label past the right edge is pulled back inside with a margin."""
        geo = compute_geometry("Dr. Bartholomew Featherstonehaugh", 0.95, 0.5, CANVAS_W, CANVAS_H)

        assert geo.label_x + geo.label_width == CANVAS_W - 10

    def test_left_edge_correction(self):
        """A label past the left edge is clamped to the margin."""
        geo = compute_geometry("Dr. Bartholomew Featherstonehaugh", 0.0, 0.5, CANVAS_W, CANVAS_H)

        assert geo.label_x == 10

    def test_zero_anchor_accepted(self):
        """Zero is a valid anchor, not a missing value."""
        geo = compute_geometry("Dr. Name", 0.0, 0.0, CANVAS_W, CANVAS_H)
        assert geo.anchor_x == 0
        assert geo.anchor_y == 0
        assert geo.label_y == 230 + 17

    def test_out_of_range_anchor_passed_through(self):
        """Anchors outside [0, 1] are not clamped."""
        geo = compute_geometry("Dr. Name", 1.2, -0.1, CANVAS_W, CANVAS_H)
        assert geo.anchor_x == 2304
        assert geo.anchor_y == -108

    def test_half_pixel_rounds_up(self):
        """Fractional pixels round half up, like the browser preview."""
        geo = compute_geometry("Dr. Name", 0.5, 0.5, 101, 101)
        assert geo.anchor_x == 51
        assert geo.anchor_y == 51

    def test_custom_layout(self):
        """Layout constants are taken from the given LabelLayout."""
        layout = LabelLayout(avatar_diameter=100, gap=5, height=40)
        geo = compute_geometry("Dr. Name", 0.1, 0.1, CANVAS_W, CANVAS_H, layout)

        assert geo.avatar_diameter == 100
        assert geo.label_height == 40
        assert geo.label_y == geo.anchor_y + 105

    def test_label_narrower_than_tiny_canvas(self):
        """On a canvas narrower than the minimum width the label still fits."""
        geo = compute_geometry("Dr. Name", 0.5, 0.5, 200, 200)
        assert geo.label_width == 180
        assert 0 <= geo.label_x
        assert geo.label_x + geo.label_width <= 200

    @pytest.mark.parametrize("text", ["A", "Dr. Name", "Dr. Maria-Luisa Fernandez", "W" * 60])
    def test_label_always_within_canvas(self, text):
        """The label box stays on canvas for every anchor in [0, 1]."""
        steps = [i / 20 for i in range(21)]
        for x in steps:
            for y in steps:
                geo = compute_geometry(text, x, y, CANVAS_W, CANVAS_H)
                assert geo.label_x >= 0, (text, x, y)
                assert geo.label_x + geo.label_width <= CANVAS_W, (text, x, y)

    def test_to_dict(self):
        """Serialization carries every coordinate."""
        geo = compute_geometry("A. Smith", 0.75, 0.6, CANVAS_W, CANVAS_H)
        data = geo.to_dict()

        assert data["anchor_x"] == 1440
        assert data["label_y"] == 895
        assert GeometrySpec(**data) == geo
