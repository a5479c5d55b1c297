"""Raster layers composited onto the base video.

Three transparent PNGs are generated per job with Pillow:
- avatar: the uploaded photo, cover-fit to a square and masked to a circle
- label background: semi-transparent rounded rectangle sized to the label box
- label text: the name, centered on a canvas the size of the label box
"""

import asyncio
import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache, partial
from pathlib import Path
from typing import Callable, Iterator, Optional

from PIL import Image, ImageChops, ImageDraw, ImageFont, ImageOps

from doctor_video.config import get_settings
from doctor_video.exceptions import AssetGenerationError
from doctor_video.render.geometry import GeometrySpec
from doctor_video.services.artifacts import ArtifactLifecycleManager
from doctor_video.services.workspace import WorkspaceProvider

logger = logging.getLogger(__name__)

FONT_CANDIDATES = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",  # Debian/Ubuntu (fonts-dejavu)
    "/usr/share/fonts/dejavu/DejaVuSans-Bold.ttf",  # Fedora/Alpine
    "/System/Library/Fonts/Supplemental/Arial Bold.ttf",  # macOS
    "/Library/Fonts/Arial Bold.ttf",
    "C:/Windows/Fonts/arialbd.ttf",
]


class AssetRole(str, Enum):
    """Raster layers, in the order they are generated."""

    AVATAR = "avatar"
    LABEL_BACKGROUND = "label_background"
    LABEL_TEXT = "label_text"


@dataclass(frozen=True)
class GeneratedAsset:
    role: AssetRole
    path: Path
    width: int
    height: int


@dataclass
class AssetSet:
    """Generated layers for one job, keyed by role."""

    assets: dict[AssetRole, GeneratedAsset]

    def __getitem__(self, role: AssetRole) -> GeneratedAsset:
        return self.assets[role]

    def __contains__(self, role: object) -> bool:
        return role in self.assets

    def __iter__(self) -> Iterator[GeneratedAsset]:
        return iter(self.assets.values())

    def path(self, role: AssetRole) -> Path:
        return self.assets[role].path


@dataclass(frozen=True)
class LabelStyle:
    """Label look. Defaults match the upload page preview."""

    font_path: str = ""
    font_size: int = 48
    text_color: tuple[int, int, int, int] = (255, 255, 255, 255)
    corner_radius: int = 8
    background_opacity: float = 0.7

    @classmethod
    def from_settings(cls) -> "LabelStyle":
        settings = get_settings()
        return cls(
            font_path=settings.label_font_path,
            font_size=settings.label_font_size,
            corner_radius=settings.label_corner_radius,
            background_opacity=settings.label_background_opacity,
        )


@lru_cache(maxsize=8)
def load_font(font_path: str, font_size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load the configured font, falling back to common system fonts."""
    candidates = ([font_path] if font_path else []) + FONT_CANDIDATES
    for candidate in candidates:
        try:
            font = ImageFont.truetype(candidate, font_size)
            logger.info(f"[ASSET] Loaded font: {candidate}")
            return font
        except OSError:
            continue

    logger.warning("[ASSET] No TrueType font found, using Pillow default font")
    return ImageFont.load_default(size=font_size)


def clean_label_text(text: str) -> str:
    """Drop control characters; Pillow would draw them as boxes."""
    return "".join(ch for ch in text if unicodedata.category(ch) != "Cc").strip()


def render_avatar(source_image: Path, output_path: Path, diameter: int) -> tuple[int, int]:
    """Cover-fit the source photo to a square and cut it to a circle."""
    with Image.open(source_image) as img:
        img = ImageOps.exif_transpose(img).convert("RGBA")
        avatar = ImageOps.fit(img, (diameter, diameter), method=Image.Resampling.LANCZOS)

    mask = Image.new("L", (diameter, diameter), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, diameter - 1, diameter - 1), fill=255)
    # Keep any transparency the photo already had inside the circle
    avatar.putalpha(ImageChops.multiply(avatar.getchannel("A"), mask))

    avatar.save(output_path, "PNG")
    return avatar.size


def render_label_background(
    output_path: Path,
    width: int,
    height: int,
    style: LabelStyle,
) -> tuple[int, int]:
    """Semi-transparent rounded rectangle filling the whole canvas."""
    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    alpha = round(255 * style.background_opacity)
    ImageDraw.Draw(img).rounded_rectangle(
        (0, 0, width - 1, height - 1),
        radius=style.corner_radius,
        fill=(0, 0, 0, alpha),
    )
    img.save(output_path, "PNG")
    return img.size


def render_label_text(
    output_path: Path,
    text: str,
    width: int,
    height: int,
    style: LabelStyle,
) -> tuple[int, int]:
    """Draw the text centered on a transparent canvas of the label box size."""
    font = load_font(style.font_path, style.font_size)
    img = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)

    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (width - (right - left)) / 2 - left
    y = (height - (bottom - top)) / 2 - top
    draw.text((x, y), text, font=font, fill=style.text_color)

    img.save(output_path, "PNG")
    return img.size


class AssetGenerator:
    """Builds the per-job raster layers."""

    def __init__(self, workspace: WorkspaceProvider, style: Optional[LabelStyle] = None):
        self.workspace = workspace
        self.style = style or LabelStyle.from_settings()

    async def generate(
        self,
        source_image: Path,
        geometry: GeometrySpec,
        label_text: str,
        artifacts: ArtifactLifecycleManager,
        on_stage: Optional[Callable[[AssetRole], None]] = None,
    ) -> AssetSet:
        """Generate avatar, label background and label text.

        Either all three layers are returned or AssetGenerationError is
        raised; files written before the failure stay registered with
        ``artifacts`` and are removed at job end.
        """
        text = clean_label_text(label_text)
        style = self.style
        width, height = geometry.label_width, geometry.label_height

        avatar = await self._build(
            AssetRole.AVATAR, "circle", artifacts, on_stage,
            partial(render_avatar, source_image, diameter=geometry.avatar_diameter),
        )
        background = await self._build(
            AssetRole.LABEL_BACKGROUND, "textbg", artifacts, on_stage,
            partial(render_label_background, width=width, height=height, style=style),
        )
        label = await self._build(
            AssetRole.LABEL_TEXT, "text", artifacts, on_stage,
            partial(render_label_text, text=text, width=width, height=height, style=style),
        )
        return AssetSet({asset.role: asset for asset in (avatar, background, label)})

    async def _build(
        self,
        role: AssetRole,
        prefix: str,
        artifacts: ArtifactLifecycleManager,
        on_stage: Optional[Callable[[AssetRole], None]],
        render_fn: Callable[..., tuple[int, int]],
    ) -> GeneratedAsset:
        if on_stage:
            on_stage(role)
        path = artifacts.register(self.workspace.temp_path(prefix))
        try:
            width, height = await asyncio.to_thread(render_fn, output_path=path)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            logger.error(f"[ASSET] Failed to generate {role.value}: {e}")
            raise AssetGenerationError(role.value, str(e)) from e

        logger.info(f"[ASSET] Generated {role.value}: {path} ({width}x{height})")
        return GeneratedAsset(role=role, path=path, width=width, height=height)
