"""Render job built from the upload form."""

import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

from doctor_video.config import get_settings

logger = logging.getLogger(__name__)


def parse_fraction(raw: Optional[str], default: float) -> float:
    """Parse an anchor fraction from a form field.

    Missing or unparsable values fall back to ``default`` instead of failing
    the request; callers rely on omitting the fields. The whole string must
    be a number: a value with trailing text such as ``"0.5px"`` is unparsable
    and gets the default, it is not read as 0.5. Values outside [0, 1] are
    passed through unchanged.
    """
    if raw is None:
        return default
    try:
        value = float(raw.strip())
    except (ValueError, AttributeError):
        logger.info(f"[JOB] Unparsable anchor value {raw!r}, using default {default}")
        return default
    if not math.isfinite(value):
        logger.info(f"[JOB] Non-finite anchor value {raw!r}, using default {default}")
        return default
    return value


@dataclass
class RenderJob:
    """One video request. Lives only for the duration of its pipeline run."""

    label_text: str
    source_image_path: Path
    base_video_path: Path
    anchor_x: float
    anchor_y: float
    id: str = field(default_factory=lambda: uuid4().hex)

    @classmethod
    def from_form(
        cls,
        source_image_path: Path,
        doctor_name: Optional[str] = None,
        overlay_x: Optional[str] = None,
        overlay_y: Optional[str] = None,
    ) -> "RenderJob":
        """Build a job from raw multipart form values, applying defaults."""
        settings = get_settings()
        label_text = doctor_name.strip() if doctor_name else ""
        return cls(
            label_text=label_text or settings.default_doctor_name,
            source_image_path=Path(source_image_path),
            base_video_path=Path(settings.base_video_path),
            anchor_x=parse_fraction(overlay_x, settings.default_overlay_x),
            anchor_y=parse_fraction(overlay_y, settings.default_overlay_y),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "label_text": self.label_text,
            "source_image_path": str(self.source_image_path),
            "base_video_path": str(self.base_video_path),
            "anchor_x": self.anchor_x,
            "anchor_y": self.anchor_y,
        }
