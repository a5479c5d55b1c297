"""Pixel layout of the avatar and name label on the base video.

The label width is an estimate: ``len(text) * font_size * 0.6`` plus padding,
clamped to a fixed range. It mirrors the CSS preview shown to the user before
upload, so the rendered video lines up with what they positioned.
"""

import math
from dataclasses import dataclass

from doctor_video.config import get_settings


@dataclass(frozen=True)
class LabelLayout:
    """Fixed sizing constants for the avatar and label box."""

    avatar_diameter: int = 230
    font_size: int = 48
    char_width_ratio: float = 0.6
    padding: int = 40  # 20px on each side
    min_width: int = 240
    max_width: int = 800
    height: int = 80
    gap: int = 17
    edge_margin: int = 10

    @property
    def char_width(self) -> float:
        return self.font_size * self.char_width_ratio

    @classmethod
    def from_settings(cls) -> "LabelLayout":
        settings = get_settings()
        return cls(
            avatar_diameter=settings.avatar_diameter,
            font_size=settings.label_font_size,
            char_width_ratio=settings.label_char_width_ratio,
            padding=settings.label_padding,
            min_width=settings.label_min_width,
            max_width=settings.label_max_width,
            height=settings.label_height,
            gap=settings.label_gap,
            edge_margin=settings.label_edge_margin,
        )


@dataclass(frozen=True)
class GeometrySpec:
    """Placement of every visual element, in canvas pixels."""

    canvas_width: int
    canvas_height: int
    avatar_diameter: int
    anchor_x: int
    anchor_y: int
    label_width: int
    label_height: int
    label_x: int
    label_y: int

    @property
    def avatar_center_x(self) -> int:
        return self.anchor_x + self.avatar_diameter // 2

    @property
    def avatar_center_y(self) -> int:
        return self.anchor_y + self.avatar_diameter // 2

    def to_dict(self) -> dict[str, int]:
        """Serialize to dictionary."""
        return {
            "canvas_width": self.canvas_width,
            "canvas_height": self.canvas_height,
            "avatar_diameter": self.avatar_diameter,
            "anchor_x": self.anchor_x,
            "anchor_y": self.anchor_y,
            "label_width": self.label_width,
            "label_height": self.label_height,
            "label_x": self.label_x,
            "label_y": self.label_y,
        }


def _round_half_up(value: float) -> int:
    # Same rounding as the browser preview (Math.round)
    return math.floor(value + 0.5)


def estimate_label_width(label_text: str, layout: LabelLayout) -> int:
    """Approximate label box width for a text, clamped to [min_width, max_width]."""
    text_width = math.ceil(len(label_text) * layout.char_width)
    return min(max(text_width + layout.padding, layout.min_width), layout.max_width)


def compute_geometry(
    label_text: str,
    anchor_x_frac: float,
    anchor_y_frac: float,
    canvas_width: int,
    canvas_height: int,
    layout: LabelLayout = LabelLayout(),
) -> GeometrySpec:
    """Map request parameters to pixel placement.

    Args:
        label_text: Name shown under the avatar
        anchor_x_frac: Avatar top-left x as a fraction of canvas width
        anchor_y_frac: Avatar top-left y as a fraction of canvas height
        canvas_width: Base video width
        canvas_height: Base video height
        layout: Sizing constants

    Returns:
        GeometrySpec with avatar and label box coordinates
    """
    anchor_x = _round_half_up(anchor_x_frac * canvas_width)
    anchor_y = _round_half_up(anchor_y_frac * canvas_height)

    label_width = estimate_label_width(label_text, layout)
    # Narrower than min_width on canvases under min_width + 2 * margin.
    # Otherwise both edge corrections could not hold at once.
    label_width = min(label_width, max(canvas_width - 2 * layout.edge_margin, 1))

    center_x = anchor_x + layout.avatar_diameter // 2
    label_x = center_x - label_width // 2
    label_y = anchor_y + layout.avatar_diameter + layout.gap

    # Right overflow is corrected first; the left clamp may then override it.
    if label_x + label_width > canvas_width:
        label_x = canvas_width - label_width - layout.edge_margin
    if label_x < 0:
        label_x = layout.edge_margin

    return GeometrySpec(
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        avatar_diameter=layout.avatar_diameter,
        anchor_x=anchor_x,
        anchor_y=anchor_y,
        label_width=label_width,
        label_height=layout.height,
        label_x=label_x,
        label_y=label_y,
    )
