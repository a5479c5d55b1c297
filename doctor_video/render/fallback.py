"""Degrade-and-retry around the render executor.

Two attempts at most: the full graph with the name text, then, if the
encoder fails, the same graph without the text layer (text rendering is the
fragile part: fonts and glyph coverage). A second failure is fatal.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from doctor_video.exceptions import RenderFailedError
from doctor_video.render.assets import AssetSet
from doctor_video.render.composition import build_graph
from doctor_video.render.executor import RenderExecutor, RenderResult
from doctor_video.render.geometry import GeometrySpec

logger = logging.getLogger(__name__)

STATUS_RENDERING = "Rendering..."
STATUS_RENDERING_FALLBACK = "Rendering (Fallback mode)..."

StatusProgressCallback = Callable[[int, str], None]


class DegradeRetryController:
    """Attempting-With-Text -> Attempting-Fallback -> Success | Fatal."""

    def __init__(self, executor: RenderExecutor):
        self.executor = executor

    async def render_with_fallback(
        self,
        base_video: Path,
        geometry: GeometrySpec,
        assets: AssetSet,
        output_path: Path,
        on_progress: Optional[StatusProgressCallback] = None,
    ) -> RenderResult:
        """Render with text, falling back to a text-less graph once.

        Both attempts use the same asset files and the same output path.

        Returns:
            Successful RenderResult (``used_fallback`` tells which graph won),
            or a failed one whose error carries both diagnostics
        """
        primary = await self.executor.render(
            base_video,
            build_graph(geometry, include_text=True),
            assets,
            output_path,
            on_progress=_with_status(on_progress, STATUS_RENDERING),
        )
        if primary.ok:
            logger.info("[RENDER] Render success (with text)")
            return primary

        primary_message = primary.error.message if primary.error else "unknown error"
        logger.warning(f"[RENDER] Text render failed: {primary_message}")
        logger.info("[RENDER] Retrying without text (fallback)")

        fallback = await self.executor.render(
            base_video,
            build_graph(geometry, include_text=False),
            assets,
            output_path,
            on_progress=_with_status(on_progress, STATUS_RENDERING_FALLBACK),
        )
        if fallback.ok:
            logger.info("[RENDER] Render success (fallback)")
            return RenderResult.success(fallback.output_path, used_fallback=True)

        fallback_message = fallback.error.message if fallback.error else "unknown error"
        logger.error(f"[RENDER] Fallback render failed: {fallback_message}")
        error = RenderFailedError(
            f"Render failed completely: {fallback_message}",
            primary_message=primary_message,
            fallback_message=fallback_message,
        )
        return RenderResult.failure(error, used_fallback=True)


def _with_status(
    on_progress: Optional[StatusProgressCallback], status: str
) -> Optional[Callable[[int], None]]:
    if on_progress is None:
        return None
    return lambda percent: on_progress(percent, status)
